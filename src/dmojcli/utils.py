import logging
import sys
from typing import NamedTuple
import json
import requests
from pathlib import Path
import platformdirs

DMOJ_URL = "https://dmoj.ca"

# Config lives in the platform-appropriate directory
CONFIG_DIR = Path(platformdirs.user_config_dir("dmojcli"))
CONFIG_FILE = CONFIG_DIR / "config.json"

# file extension -> language key, used when the config has no entry for an extension
DEFAULT_EXT_KEY_MAP = {
	"c": "c",
	"cpp": "cpp20",
	"java": "java",
	"kt": "kotlin",
	"py": "pypy3",
	"lua": "lua",
	"rs": "rust",
	"txt": "text",
	"go": "go",
	"hs": "hask",
	"js": "v8js",
	"nim": "nim",
	"ml": "ocaml",
	"zig": "zig",
}

logger = logging.getLogger(__name__)


class DMOJCLIError(Exception):
	def __init__(self, message: str):
		super().__init__(message)
		self.message = message

class DMOJAPIError(DMOJCLIError):
	"""The DMOJ site or API refused or failed a request."""

class ConfigError(DMOJCLIError):
	"""Invalid configuration value."""

class LanguageError(DMOJCLIError):
	"""A language key could not be determined or resolved."""


def load_config() -> dict:
	"""Load the stored config. A missing or unreadable file gives an empty config."""
	if not CONFIG_FILE.exists():
		return {}

	try:
		config = json.loads(CONFIG_FILE.read_text())
	except (OSError, ValueError) as e:
		print(
			f"WARNING: Config file {CONFIG_FILE} could not be read: {e}",
			flush=True,
			file=sys.stderr
		)
		return {}

	if not isinstance(config, dict):
		print(f"WARNING: Ignoring malformed config file {CONFIG_FILE}", flush=True, file=sys.stderr)
		return {}
	return config


def save_config(config: dict) -> None:
	"""Saves the config to ~/.config/dmojcli for future use."""
	CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
	CONFIG_FILE.write_text(json.dumps(config, indent=2))

	# The token is a secret, restrict the file to the user (may fail on Windows)
	try:
		CONFIG_FILE.chmod(0o600)
	except OSError as e:
		print(
			f"WARNING: Could not set file permissions on config file: {e}",
			flush=True,
			file=sys.stderr
		)


def parse_language_arg(value: str) -> dict[str, str]:
	"""Parse an extension mapping such as `cpp:cpp20,py:pypy3`."""
	mapping = {}
	for pair in value.split(","):
		parts = pair.split(":")
		if len(parts) != 2 or not all(p.strip() for p in parts):
			raise ConfigError(f"couldn't parse language argument `{value}`, expected ext:key pairs like cpp:cpp20,py:pypy3")
		ext, key = (p.strip() for p in parts)
		mapping[ext.lstrip(".")] = key
	return mapping


def language_key_for_file(path: Path, config: dict) -> str:
	"""Choose a language key from the file extension, preferring the configured mapping."""
	ext = path.suffix.lstrip(".")
	if not ext:
		raise LanguageError(f"no file extension on {path}, pass --language")

	configured = config.get("ext_key_map") or {}
	if ext in configured:
		return configured[ext]
	if ext in DEFAULT_EXT_KEY_MAP:
		key = DEFAULT_EXT_KEY_MAP[ext]
		logger.warning("Defaulting to %s", key)
		return key
	raise LanguageError("could not determine language")


class Language(NamedTuple):
    id: int
    key: str
    common_name: str
    short_name: str | None = None


def auth_header(token: str) -> dict[str, str]:
	return {"Authorization": f"Bearer {token}"}


def unwrap_response(response: requests.Response):
	"""Return the `data` of a DMOJ API envelope, raising on an `error` envelope."""
	try:
		json_data = response.json()
	except ValueError as e:
		raise DMOJAPIError(f"converting API response to json failed (HTTP {response.status_code})") from e

	if not isinstance(json_data, dict):
		raise DMOJAPIError(f"malformed API response, expected a JSON object but got {type(json_data).__name__}")

	error = json_data.get("error")
	if error:
		if not isinstance(error, dict):
			raise DMOJAPIError(f"API request failed with error `{error}`")
		raise DMOJAPIError(
			f"API request failed with code {error.get('code')} and message `{error.get('message')}`"
		)
	data = json_data.get("data")
	if data is None:
		raise DMOJAPIError("Neither data nor error were defined in the API response")
	return data


def fetch_languages(session: requests.Session) -> list[Language]:
	"""Fetch every language the judge accepts, following pagination."""
	languages = []
	page = 1
	while True:
		logger.info("Fetching languages page %d ...", page)
		response = session.get(f"{DMOJ_URL}/api/v2/languages", params={"page": page})
		data = unwrap_response(response)
		try:
			for obj in data["objects"]:
				languages.append(Language(
					id=int(obj["id"]),
					key=str(obj["key"]),
					common_name=str(obj["common_name"]),
					short_name=obj.get("short_name"),
				))
		except (KeyError, TypeError, ValueError, AttributeError) as e:
			raise DMOJAPIError(f"malformed API response for languages: {e!r}") from e
		if not data.get("has_more"):
			return languages
		page += 1


def resolve_language_id(languages: list[Language], key: str) -> int:
	"""Find the numeric id of a language key, ignoring case."""
	key_id_map = {lang.key.lower(): lang.id for lang in languages}
	try:
		return key_id_map[key.lower()]
	except KeyError:
		raise LanguageError(f"could not determine language id for `{key}`") from None


SUBMIT_ERRORS = {
	400: "Error 400, bad request, the header you provided is invalid",
	401: "Error 401, unauthorized, the token you provided is invalid",
	403: "Error 403, forbidden, you are trying to access the admin portion of the site",
	404: "Error 404, not found, the problem does not exist",
	500: "Error 500, internal server error",
}


def submit_solution(session: requests.Session, problem: str, source: str, language_id: int, token: str) -> str:
	"""Submit source code to a problem and return the new submission id."""
	url = f"{DMOJ_URL}/problem/{problem}/submit"
	logger.info("Fetching %s ...", url)
	response = session.post(
		url,
		data={"problem": problem, "source": source, "language": str(language_id)},
		headers=auth_header(token),
		allow_redirects=False,
	)

	if response.status_code != 302:
		message = SUBMIT_ERRORS.get(response.status_code, f"Code {response.status_code}, unknown network error")
		raise DMOJAPIError(message)

	redirect_url = response.headers.get("Location")
	if not redirect_url:
		raise DMOJAPIError("Submission request did not get redirected to the submission page")
	logger.info("submission url: %s", redirect_url)

	submission_id = redirect_url.rstrip("/").split("/")[-1]
	if not submission_id:
		raise DMOJAPIError("could not determine submission id")
	logger.info("submission id: %s", submission_id)
	return submission_id


def fetch_submission(session: requests.Session, submission_id: str, token: str) -> dict:
	"""Fetch the current grading snapshot of a submission."""
	response = session.get(f"{DMOJ_URL}/api/v2/submission/{submission_id}", headers=auth_header(token))
	data = unwrap_response(response)
	submission = data.get("object") if isinstance(data, dict) else None
	if not isinstance(submission, dict):
		raise DMOJAPIError(f"malformed API response for submission {submission_id}, no submission object")
	return submission
