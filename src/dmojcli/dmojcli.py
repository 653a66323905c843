"""CLI commands."""
import json
import logging
import sys
import time
from pathlib import Path
from rich import print
from rich.console import Console
from rich.markup import escape
import requests
import typer
from typing_extensions import Annotated
from . import utils
from .codes import describe
from .progress import ProgressTracker
from .submission import SubmissionOutcome, parse_cases, parse_outcome, render_outcome
from .utils import (
  DMOJ_URL, DMOJCLIError, DMOJAPIError, load_config, save_config, parse_language_arg,
  language_key_for_file, fetch_languages, resolve_language_id, submit_solution, fetch_submission
)

# seconds between submission snapshots
POLL_INTERVAL = 1.0

logger = logging.getLogger(__name__)

console = Console()

def print_err(e: Exception | str, color: bool = True) -> None:
    """Print an error message."""
    message = e.message if hasattr(e, 'message') else str(e)
    if color:
        print(f"[red]{escape(message)}[/red]", file=sys.stderr)
    else:
        print(message, file=sys.stderr)

def watch_submission(session: requests.Session, submission_id: str, token: str) -> SubmissionOutcome:
    """Poll a submission until it is graded, printing case results as they come in."""
    with ProgressTracker(console, text="Waiting for judge...") as tracker:
        while True:
            before_request = time.monotonic()
            snapshot = fetch_submission(session, submission_id, token)
            try:
                tree = parse_cases(snapshot.get('cases') or [])
                outcome = parse_outcome(snapshot)
            except (AttributeError, TypeError, ValueError) as e:
                raise DMOJAPIError(f"malformed API response for submission {submission_id}: {e}") from e

            tracker.extend(tree)
            if outcome is not None:
                break

            status = snapshot.get('status')
            tracker.update_status(f"{describe(status) or 'Waiting for judge'}...")
            # the request itself counts towards the interval
            elapsed = time.monotonic() - before_request
            time.sleep(max(0.0, POLL_INTERVAL - elapsed))

    console.print()
    for line in render_outcome(outcome):
        console.print(line, highlight=False)
    return outcome

def config(
    token: Annotated[str | None, typer.Option("-t", "--token", help="Set API token")] = None,
    language: Annotated[str | None, typer.Option("-l", "--language", help="File extension -> language key mapping, e.g. cpp:cpp20,py:pypy3,java:java8")] = None,
) -> None:
    """Set default API token and languages."""
    if token is None and language is None:
        print_err("Nothing to set. Pass --token and/or --language.")
        raise typer.Exit(1)

    cfg = load_config()
    if language is not None:
        try:
            mapping = parse_language_arg(language)
        except DMOJCLIError as e:
            print_err(e)
            raise typer.Exit(1)
        ext_key_map = cfg.get('ext_key_map') or {}
        for ext, key in mapping.items():
            logger.info("Set extension %s to language key %s", ext, key)
            ext_key_map[ext] = key
        cfg['ext_key_map'] = ext_key_map

    if token is not None:
        logger.info("Setting API token")
        cfg['token'] = token

    save_config(cfg)
    print("[blue]Configuration saved.[/blue]")

def show_config() -> None:
    """Print the config file location and its contents."""
    console.print(str(utils.CONFIG_FILE), markup=False, highlight=False, soft_wrap=True)
    console.print(json.dumps(load_config(), indent=2), markup=False, highlight=False, soft_wrap=True)

def list_languages() -> None:
    """List languages available on DMOJ as `common name: language key` pairs."""
    try:
        languages = fetch_languages(requests.Session())
    except (DMOJCLIError, requests.RequestException) as e:
        print_err(e)
        raise typer.Exit(1)

    print("[bold underline]Common name[/bold underline]: [bold underline]Language key[/bold underline]")
    for line in sorted(f"{lang.common_name}: {lang.key.lower()}" for lang in languages):
        console.print(line, markup=False, highlight=False)

def submit(
    file: Annotated[Path, typer.Argument(exists=True, dir_okay=False, readable=True, help="File to submit")],
    problem: Annotated[str | None, typer.Option("-p", "--problem", help="Problem code (default: file name without extension)")] = None,
    token: Annotated[str | None, typer.Option("-t", "--token", envvar="DMOJ_API_TOKEN", help="API token (default: from config)")] = None,
    language: Annotated[str | None, typer.Option("-l", "--language", help="Language key (default: from file extension)")] = None,
) -> None:
    """Submit a solution to a problem and watch it get graded."""
    try:
        source = file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        print_err(f"could not read file {file}: {e}")
        raise typer.Exit(1)

    if not source.strip():
        print_err(f"file {file} is empty")
        raise typer.Exit(1)

    cfg = load_config()
    problem = problem if problem is not None else file.stem
    token = token if token is not None else cfg.get('token')
    if not token:
        print_err("API token not defined in configuration. Run [bold]dmojcli config --token[/bold] or pass --token.", color=False)
        raise typer.Exit(1)

    session = requests.Session()
    try:
        if language is None:
            language = language_key_for_file(file, cfg)
        logger.info("Submitting to problem %s with file %s and language %s", problem, file, language)

        language_id = resolve_language_id(fetch_languages(session), language)
        submission_id = submit_solution(session, problem, source, language_id, token)
        print(f"[blue]Submitted to {escape(problem)}: {DMOJ_URL}/submission/{submission_id}[/blue]")

        watch_submission(session, submission_id, token)
    except (DMOJCLIError, requests.RequestException) as e:
        print_err(e)
        raise typer.Exit(1)
