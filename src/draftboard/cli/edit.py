from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from draftboard.core.writer import (
    WriteResult,
    delete_node_at_location,
    insert_child_at_location,
    swap_sibling_at_location,
    update_text_at_location,
)
from draftboard.errors import INFORMATIONAL_FAILURES
from draftboard.models import SourceLocation

console = Console()

_FileArg = Annotated[Path, typer.Argument(help="TSX/JSX file to edit.", exists=True, dir_okay=False)]
_LineOpt = Annotated[int, typer.Option(help="1-based line of the element's opening tag.", min=1)]
_ColumnOpt = Annotated[int, typer.Option(help="0-based column of the element's opening tag.", min=0)]


def _finish(path: Path, result: WriteResult, dry_run: bool) -> None:
    if not result.success:
        color = "yellow" if result.reason in INFORMATIONAL_FAILURES else "red"
        reason = result.reason.value if result.reason is not None else "UNKNOWN"
        console.print(f"[{color}]{reason}[/{color}] {result.error}")
        raise typer.Exit(code=1)
    if dry_run:
        console.print(result.code, markup=False, highlight=False, emoji=False, soft_wrap=True, end="")
        return
    path.write_text(result.code, encoding="utf-8")
    if result.location is None:
        console.print(f"[green]Updated[/green] {path}")
    else:
        console.print(f"[green]Updated[/green] {path} (element now at {result.location})")


def insert(
    path: _FileArg,
    line: _LineOpt,
    column: _ColumnOpt,
    markup: Annotated[str, typer.Option(help="JSX to insert as a child.")],
    position: Annotated[str, typer.Option(help="'first' or 'last' child.")] = "last",
    dry_run: Annotated[bool, typer.Option(help="Print the result instead of writing it.")] = False,
) -> None:
    """Insert JSX as the first or last child of the element at LINE:COLUMN."""
    if position not in ("first", "last"):
        raise typer.BadParameter("position must be 'first' or 'last'", param_hint="--position")
    location = SourceLocation(file=f"/{path.name}", line=line, column=column)
    result = insert_child_at_location(path.read_text(encoding="utf-8"), location, markup, position)  # type: ignore[arg-type]
    _finish(path, result, dry_run)


def swap(
    path: _FileArg,
    line: _LineOpt,
    column: _ColumnOpt,
    direction: Annotated[str, typer.Option(help="'prev' or 'next' sibling.")],
    dry_run: Annotated[bool, typer.Option(help="Print the result instead of writing it.")] = False,
) -> None:
    """Swap the element at LINE:COLUMN with its previous or next sibling element."""
    if direction not in ("prev", "next"):
        raise typer.BadParameter("direction must be 'prev' or 'next'", param_hint="--direction")
    location = SourceLocation(file=f"/{path.name}", line=line, column=column)
    result = swap_sibling_at_location(path.read_text(encoding="utf-8"), location, direction)  # type: ignore[arg-type]
    _finish(path, result, dry_run)


def delete(
    path: _FileArg,
    line: _LineOpt,
    column: _ColumnOpt,
    dry_run: Annotated[bool, typer.Option(help="Print the result instead of writing it.")] = False,
) -> None:
    """Remove the element at LINE:COLUMN together with its children."""
    location = SourceLocation(file=f"/{path.name}", line=line, column=column)
    _finish(path, delete_node_at_location(path.read_text(encoding="utf-8"), location), dry_run)


def set_text(
    path: _FileArg,
    line: _LineOpt,
    column: _ColumnOpt,
    text: Annotated[str, typer.Option(help="New text content; it is escaped for JSX.")],
    dry_run: Annotated[bool, typer.Option(help="Print the result instead of writing it.")] = False,
) -> None:
    """Replace the text inside the element at LINE:COLUMN."""
    location = SourceLocation(file=f"/{path.name}", line=line, column=column)
    _finish(path, update_text_at_location(path.read_text(encoding="utf-8"), location, text), dry_run)
