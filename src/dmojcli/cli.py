"""CLI application entry point."""

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler
from typing_extensions import Annotated

from .dmojcli import config, show_config, submit, list_languages


app = typer.Typer(
    name="dmojcli",
    help="Submit solutions to DMOJ and watch them get graded.",
    # Disable showing local variables in exceptions, because it may reveal the API token
    pretty_exceptions_show_locals=False,
    no_args_is_help=True,
)

app.command()(config)
app.command(name="show-config")(show_config)
app.command(no_args_is_help=True)(submit)
app.command(name="list-languages")(list_languages)


def setup_logging(verbose: int, quiet: bool) -> None:
    if quiet:
        level = logging.ERROR
    elif verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_time=False, show_path=False)],
        force=True,
    )


@app.callback()
def main(
    verbose: Annotated[int, typer.Option("-v", "--verbose", count=True, help="More output (-v info, -vv debug)")] = 0,
    quiet: Annotated[bool, typer.Option("-q", "--quiet", help="Only show errors")] = False,
) -> None:
    """Submit solutions to DMOJ and watch them get graded."""
    setup_logging(verbose, quiet)
