"""Live per-case progress while a submission is being graded."""

import logging

from rich.console import Console
from rich.live import Live
from rich.spinner import Spinner

from .submission import GradingUnit, flatten_cases, render_unit

logger = logging.getLogger(__name__)


class ProgressTracker:
    """Prints case lines as they appear across successive snapshots.

    Lines are only ever appended: a unit that has been printed once is never
    printed again, even if a later snapshot renders it differently. The
    spinner starts on creation and is stopped by `finish()`, which the
    context manager calls on every exit path.
    """

    def __init__(self, console: Console | None = None, text: str = "Submitting...") -> None:
        self.console = console if console is not None else Console()
        self.spinner = Spinner("dots", text=text)
        # 125 ms per frame
        self.live = Live(self.spinner, console=self.console, refresh_per_second=8, transient=True)
        self.emitted = 0
        self.finished = False
        self.live.start()

    def __enter__(self) -> "ProgressTracker":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.finish()

    def update_status(self, text: str) -> None:
        """Change the text next to the spinner."""
        self.spinner.update(text=text)

    def extend(self, tree: list[GradingUnit]) -> int:
        """Print the lines of `tree` that have not been printed yet. Returns how many were printed."""
        units = flatten_cases(tree)
        new_units = units[self.emitted:]
        for unit in new_units:
            self.console.print(render_unit(unit), highlight=False)
        self.emitted += len(new_units)
        if new_units:
            logger.debug("Printed %d new case line(s), %d total", len(new_units), self.emitted)
        return len(new_units)

    def finish(self) -> None:
        """Stop and clear the spinner."""
        if self.finished:
            return
        self.finished = True
        self.live.stop()
