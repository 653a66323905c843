import json
import logging
from pathlib import Path

import pytest
from dmojcli import utils
from dmojcli.utils import (
    ConfigError, DMOJAPIError, Language, LanguageError,
    fetch_languages, fetch_submission, language_key_for_file, load_config, parse_language_arg,
    resolve_language_id, save_config, submit_solution, unwrap_response,
)


class FakeResponse:
    def __init__(self, status_code=200, json_data=None, headers=None):
        self.status_code = status_code
        self._json = json_data
        self.headers = headers or {}

    def json(self):
        if self._json is None:
            raise ValueError("No JSON object could be decoded")
        return self._json


class FakeSession:
    """Replays canned responses and records the requests made."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append(("GET", url, kwargs))
        return self.responses.pop(0)

    def post(self, url, **kwargs):
        self.calls.append(("POST", url, kwargs))
        return self.responses.pop(0)


def envelope(data=None, error=None):
    return {"api_version": "2.0", "method": "get", "fetched": "2024-01-01T00:00:00+00:00", "data": data, "error": error}


def language_page(objects, has_more=False):
    return envelope({"has_more": has_more, "objects": objects})


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    path = tmp_path / "dmojcli" / "config.json"
    monkeypatch.setattr(utils, "CONFIG_FILE", path)
    return path


def test_load_missing_config(config_file):
    assert load_config() == {}


def test_save_and_load_config(config_file):
    save_config({"token": "abc", "ext_key_map": {"cpp": "cpp17"}})

    assert json.loads(config_file.read_text())["token"] == "abc"
    assert load_config() == {"token": "abc", "ext_key_map": {"cpp": "cpp17"}}


def test_load_corrupt_config(config_file, capsys):
    config_file.parent.mkdir(parents=True)
    config_file.write_text("{not json")

    assert load_config() == {}
    assert "could not be read" in capsys.readouterr().err


def test_parse_language_arg():
    assert parse_language_arg("cpp:cpp20,py:pypy3, .java:java8") == {"cpp": "cpp20", "py": "pypy3", "java": "java8"}


@pytest.mark.parametrize("value", ["cpp", "cpp:cpp20,py", "a:b:c", ":cpp20"])
def test_parse_bad_language_arg(value):
    with pytest.raises(ConfigError):
        parse_language_arg(value)


def test_language_key_prefers_config():
    assert language_key_for_file(Path("a.cpp"), {"ext_key_map": {"cpp": "cpp17"}}) == "cpp17"


def test_language_key_falls_back_to_defaults(caplog):
    with caplog.at_level(logging.WARNING, logger="dmojcli.utils"):
        assert language_key_for_file(Path("a.py"), {}) == "pypy3"
    assert "Defaulting to pypy3" in caplog.text


@pytest.mark.parametrize("name", ["a.unknown", "Makefile"])
def test_language_key_unknown(name):
    with pytest.raises(LanguageError):
        language_key_for_file(Path(name), {})


def test_unwrap_error_envelope():
    response = FakeResponse(404, envelope(error={"code": 404, "message": "submission not found"}))
    with pytest.raises(DMOJAPIError, match="code 404 and message `submission not found`"):
        unwrap_response(response)


def test_unwrap_empty_envelope():
    with pytest.raises(DMOJAPIError, match="Neither data nor error"):
        unwrap_response(FakeResponse(200, envelope()))


def test_unwrap_non_json():
    with pytest.raises(DMOJAPIError, match="HTTP 502"):
        unwrap_response(FakeResponse(502))


def test_fetch_languages_follows_pages():
    session = FakeSession(
        FakeResponse(200, language_page([{"id": 1, "key": "CPP20", "common_name": "C++", "short_name": "C++20"}], has_more=True)),
        FakeResponse(200, language_page([{"id": 8, "key": "PYPY3", "common_name": "Python"}])),
    )

    languages = fetch_languages(session)

    assert languages == [Language(1, "CPP20", "C++", "C++20"), Language(8, "PYPY3", "Python")]
    assert [call[2]["params"]["page"] for call in session.calls] == [1, 2]


def test_resolve_language_id():
    languages = [Language(1, "CPP20", "C++"), Language(8, "PYPY3", "Python")]
    assert resolve_language_id(languages, "pypy3") == 8
    with pytest.raises(LanguageError):
        resolve_language_id(languages, "cobol")


def test_submit_solution():
    session = FakeSession(FakeResponse(302, headers={"Location": "https://dmoj.ca/submission/6000123"}))

    assert submit_solution(session, "aplusb", "print(1)", 8, "tok") == "6000123"

    method, url, kwargs = session.calls[0]
    assert (method, url) == ("POST", "https://dmoj.ca/problem/aplusb/submit")
    assert kwargs["data"] == {"problem": "aplusb", "source": "print(1)", "language": "8"}
    assert kwargs["headers"] == {"Authorization": "Bearer tok"}
    assert kwargs["allow_redirects"] is False


@pytest.mark.parametrize("status, message", [
    (401, "token you provided is invalid"),
    (404, "problem does not exist"),
    (418, "Code 418, unknown network error"),
])
def test_submit_solution_http_errors(status, message):
    session = FakeSession(FakeResponse(status))
    with pytest.raises(DMOJAPIError, match=message):
        submit_solution(session, "aplusb", "print(1)", 8, "tok")


def test_submit_solution_without_redirect():
    session = FakeSession(FakeResponse(302))
    with pytest.raises(DMOJAPIError, match="did not get redirected"):
        submit_solution(session, "aplusb", "print(1)", 8, "tok")


def test_fetch_submission():
    snapshot = {"id": 6000123, "status": "G", "result": None, "cases": []}
    session = FakeSession(FakeResponse(200, envelope({"object": snapshot})))

    assert fetch_submission(session, "6000123", "tok") == snapshot
    method, url, kwargs = session.calls[0]
    assert url == "https://dmoj.ca/api/v2/submission/6000123"
    assert kwargs["headers"] == {"Authorization": "Bearer tok"}


def test_unwrap_non_object_body():
    with pytest.raises(DMOJAPIError, match="malformed API response"):
        unwrap_response(FakeResponse(200, ["not", "an", "envelope"]))


def test_fetch_submission_without_object():
    session = FakeSession(FakeResponse(200, envelope({"objects": []})))
    with pytest.raises(DMOJAPIError, match="no submission object"):
        fetch_submission(session, "6000123", "tok")


def test_fetch_languages_missing_fields():
    session = FakeSession(FakeResponse(200, language_page([{"id": 1, "common_name": "C++"}])))
    with pytest.raises(DMOJAPIError, match="malformed API response for languages"):
        fetch_languages(session)
