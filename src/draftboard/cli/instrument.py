from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from draftboard.core.instrument import instrument_code

console = Console()
err_console = Console(stderr=True)


def instrument(
    path: Annotated[Path, typer.Argument(help="TSX/JSX file to instrument.", exists=True, dir_okay=False)],
    as_path: Annotated[
        str | None, typer.Option("--as", help="Project path to stamp into locations (default: the file name).")
    ] = None,
    write: Annotated[bool, typer.Option(help="Overwrite the file instead of printing the result.")] = False,
) -> None:
    """Stamp every element with its data-source-loc attribute."""
    stamp_path = as_path or f"/{path.name}"
    result = instrument_code(path.read_text(encoding="utf-8"), stamp_path)
    if not result.success:
        err_console.print(f"[red]Could not instrument {path}:[/red] {result.error}")
        raise typer.Exit(code=1)
    if write:
        path.write_text(result.code, encoding="utf-8")
        console.print(f"[green]Instrumented[/green] {path}")
    else:
        console.print(result.code, markup=False, highlight=False, emoji=False, soft_wrap=True, end="")
