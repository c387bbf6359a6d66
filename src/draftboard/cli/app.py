import logging

import typer

from draftboard.cli.edit import delete, insert, set_text, swap
from draftboard.cli.instrument import instrument
from draftboard.cli.serve import serve_app
from draftboard.config import get_settings

app = typer.Typer(
    name="draftboard",
    help="Draftboard CLI: instrument TSX, edit it by source location, serve the canvas host.",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)

app.command("instrument")(instrument)
app.command("insert")(insert)
app.command("swap")(swap)
app.command("delete")(delete)
app.command("set-text")(set_text)
app.add_typer(serve_app, name="serve")


def main() -> None:
    logging.basicConfig(level=get_settings().log_level, format="%(levelname)s %(name)s: %(message)s")
    app()
