"""Submission results: parsing API snapshots, flattening the case tree, and formatting lines."""

import logging
from typing import NamedTuple, Union

from rich.markup import escape

from .codes import describe

logger = logging.getLogger(__name__)


class Case(NamedTuple):
    status: str
    time: float = 0.0
    memory: float = 0.0
    points: float = 0.0
    total: float = 0.0
    case_id: int | None = None


class Batch(NamedTuple):
    total: float
    cases: tuple[Case, ...] = ()
    points: float | None = None
    batch_id: int | None = None


GradingUnit = Union[Case, Batch]


class DisplayUnit(NamedTuple):
    """A numbered line of the flattened case tree.

    Top-level cases and batch headers share one counter. Cases inside a
    batch are numbered from 1 within their batch.
    """
    is_batched_case: bool
    ordinal: int
    unit: GradingUnit


class SubmissionOutcome(NamedTuple):
    result: str
    time: float | None
    memory: float | None
    points: float | None
    case_points: float
    case_total: float


def _number(value, default: float = 0.0) -> float:
    return default if value is None else float(value)


def parse_case(data: dict) -> Case:
    return Case(
        status=data.get('status') or "",
        time=_number(data.get('time')),
        memory=_number(data.get('memory')),
        points=_number(data.get('points')),
        total=_number(data.get('total')),
        case_id=data.get('case_id'),
    )


def parse_cases(json_data: list) -> list[GradingUnit]:
    """Parse the `cases` list of a submission snapshot into cases and batches."""
    units = []
    for item in json_data:
        kind = item.get('type')
        if kind == 'batch' or (kind is None and isinstance(item.get('cases'), list)):
            units.append(Batch(
                total=_number(item.get('total')),
                cases=tuple(parse_case(c) for c in item.get('cases') or []),
                points=item.get('points'),
                batch_id=item.get('batch_id'),
            ))
        else:
            units.append(parse_case(item))
    return units


def parse_outcome(json_data: dict) -> SubmissionOutcome | None:
    """Return the final outcome of a snapshot, or None while the submission is still grading."""
    result = json_data.get('result')
    if not result:
        return None
    return SubmissionOutcome(
        result=result,
        time=json_data.get('time'),
        memory=json_data.get('memory'),
        points=json_data.get('points'),
        case_points=_number(json_data.get('case_points')),
        case_total=_number(json_data.get('case_total')),
    )


def flatten_cases(tree: list[GradingUnit]) -> list[DisplayUnit]:
    """Flatten cases and batches into display order.

    Each batch becomes a header unit with no cases, immediately followed by
    one unit per case of that batch.
    """
    flattened = []
    number = 1
    for unit in tree:
        if isinstance(unit, Batch):
            flattened.append(DisplayUnit(False, number, unit._replace(cases=())))
            flattened.extend(
                DisplayUnit(True, case_number, case)
                for case_number, case in enumerate(unit.cases, start=1)
            )
        else:
            flattened.append(DisplayUnit(False, number, unit))
        number += 1
    return flattened


def format_status(case: Case) -> str:
    """Colored status marker for a single case."""
    status = case.status
    if status == 'AC':
        return "[green]AC[/green]" if case.points == case.total else "[bright_yellow]AC[/bright_yellow]"
    if status == 'WA':
        return "[bright_red]WA[/bright_red]"
    if status == 'TLE':
        return "[bright_black]TLE[/bright_black]"
    if status == 'SC':
        return "[bright_black]—[/bright_black]"
    if status in ('MLE', 'OLE', 'RTE', 'IR'):
        return f"[red]{status}[/red]"
    logger.warning("Unexpected case status code %r", status)
    return escape(status)


def render_unit(item: DisplayUnit) -> str:
    """Format a display unit as a line of rich markup."""
    if isinstance(item.unit, Batch):
        return f"[bold]Batch #{item.ordinal}[/bold] (?/{item.unit.total:.0f} points)"

    case = item.unit
    # '#' + up to 3 digits + ':' keeps the columns lined up
    number = f"#{item.ordinal}:".ljust(5)
    if item.is_batched_case:
        title = f"  Case {number}"
    else:
        title = f"[bold]Test case {number}[/bold]"

    parts = [title, format_status(case)]
    # short-circuited cases never ran, so there is nothing else to show
    if case.status != 'SC':
        parts.append(escape(f"[{case.time:.3f}s, {case.memory / 1024:.2f} MB]"))
        if not item.is_batched_case:
            parts.append(f"({case.points:.0f}/{case.total:.0f})")
    return " ".join(parts)


def render_outcome(outcome: SubmissionOutcome) -> list[str]:
    """Format the final summary of a graded submission."""
    if outcome.result == 'IE':
        return [
            "[bright_red]An internal error occurred while grading, and the DMOJ administrators have been notified.\n"
            "In the meantime, try resubmitting in a few seconds.[/bright_red]"
        ]
    if outcome.result == 'CE':
        return ["Compilation error"]
    if outcome.result == 'AB':
        return ["Submission aborted!"]

    if outcome.result == 'TLE' or outcome.time is None:
        time_str = "---"
    else:
        time_str = f"{outcome.time:.3f}s"
    memory_str = f"{_number(outcome.memory) / 1024:.2f} MB"
    return [
        f"[bold]Resources:[/bold] {time_str}, {memory_str}",
        f"[bold]Final score:[/bold] {outcome.case_points:.0f}/{outcome.case_total:.0f}",
        f"[bold]Result:[/bold] {escape(describe(outcome.result))}",
    ]
