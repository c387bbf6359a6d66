from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

serve_app = typer.Typer(help="Start servers.")
console = Console(stderr=True)

_RootOpt = Annotated[
    Path, typer.Option(help="Project directory to edit.", exists=True, file_okay=False, resolve_path=True)
]


@serve_app.command("api")
def api(
    root: _RootOpt = Path("."),
    host: str = "127.0.0.1",
    port: int = 8000,
) -> None:
    """Start the canvas host API (scene, materialize, preview frame websockets)."""
    import uvicorn

    from draftboard.api.app import create_app
    from draftboard.session import Session
    from draftboard.vfs import DirectoryVFS

    app = create_app(Session(DirectoryVFS(root)))
    console.print(f"[green]Starting API server on {host}:{port} for {root}[/green]")
    uvicorn.run(app, host=host, port=port)


@serve_app.command("mcp")
def mcp(
    root: _RootOpt = Path("."),
    transport: str = "stdio",
) -> None:
    """Start the MCP server exposing the source writer."""
    from draftboard.mcp.server import create_mcp_server
    from draftboard.vfs import DirectoryVFS

    server = create_mcp_server(DirectoryVFS(root))
    console.print(f"[green]Starting MCP server (transport: {transport})[/green]")
    server.run(transport=transport)  # type: ignore[arg-type]
