"""FastMCP server exposing draftboard's source tools over a project VFS."""

from __future__ import annotations

from typing import Any, Literal

from fastmcp import FastMCP

from draftboard.core.imports import add_imports_if_missing
from draftboard.core.instrument import instrument_code
from draftboard.core.ports.vfs import VirtualFileSystem
from draftboard.core.writer import (
    WriteResult,
    delete_node_at_location,
    insert_child_at_location,
    swap_sibling_at_location,
    update_text_at_location,
)
from draftboard.models import ImportRequirement, SourceLocation


def _describe(result: WriteResult) -> dict[str, Any]:
    body: dict[str, Any] = {"success": result.success}
    if result.success:
        body["location"] = str(result.location) if result.location is not None else None
    else:
        body["reason"] = result.reason.value if result.reason is not None else None
        body["error"] = result.error
    return body


def create_mcp_server(vfs: VirtualFileSystem) -> FastMCP:
    """Create a FastMCP server editing files through ``vfs``."""

    mcp = FastMCP("draftboard", instructions="Edit React/TSX source by element location.")

    @mcp.tool()
    async def list_files(suffix: str | None = None) -> list[str]:
        """List project files, optionally filtered by suffix (e.g. '.tsx')."""
        files = await vfs.list_files()
        return sorted(path for path in files if suffix is None or path.endswith(suffix))

    @mcp.tool()
    async def instrument(path: str) -> str:
        """Return the file with data-source-loc stamps on every element."""
        code = await vfs.read_file(path)
        if code is None:
            return f"Error: file not found: {path}"
        result = instrument_code(code, path)
        if not result.success:
            return f"Error: {result.error}"
        return result.code

    @mcp.tool()
    async def insert_child(
        path: str, line: int, column: int, markup: str, position: Literal["first", "last"] = "last"
    ) -> dict[str, Any]:
        """Insert JSX as a child of the element starting at line (1-based), column (0-based)."""
        code = await vfs.read_file(path)
        if code is None:
            return {"success": False, "reason": "SOURCE_NOT_FOUND", "error": f"File not found: {path}"}
        result = insert_child_at_location(code, SourceLocation(file=path, line=line, column=column), markup, position)
        if result.success:
            await vfs.write_file(path, result.code)
        return _describe(result)

    @mcp.tool()
    async def swap_sibling(path: str, line: int, column: int, direction: Literal["prev", "next"]) -> dict[str, Any]:
        """Swap the element at line:column with its previous or next sibling element."""
        code = await vfs.read_file(path)
        if code is None:
            return {"success": False, "reason": "SOURCE_NOT_FOUND", "error": f"File not found: {path}"}
        result = swap_sibling_at_location(code, SourceLocation(file=path, line=line, column=column), direction)
        if result.success:
            await vfs.write_file(path, result.code)
        return _describe(result)

    @mcp.tool()
    async def delete_element(path: str, line: int, column: int) -> dict[str, Any]:
        """Remove the element starting at line:column, along with its children."""
        code = await vfs.read_file(path)
        if code is None:
            return {"success": False, "reason": "SOURCE_NOT_FOUND", "error": f"File not found: {path}"}
        result = delete_node_at_location(code, SourceLocation(file=path, line=line, column=column))
        if result.success:
            await vfs.write_file(path, result.code)
        return _describe(result)

    @mcp.tool()
    async def update_text(path: str, line: int, column: int, text: str) -> dict[str, Any]:
        """Replace the plain-text content of the element at line:column."""
        code = await vfs.read_file(path)
        if code is None:
            return {"success": False, "reason": "SOURCE_NOT_FOUND", "error": f"File not found: {path}"}
        result = update_text_at_location(code, SourceLocation(file=path, line=line, column=column), text)
        if result.success:
            await vfs.write_file(path, result.code)
        return _describe(result)

    @mcp.tool()
    async def add_imports(path: str, imports: list[dict[str, Any]]) -> dict[str, Any]:
        """Add named imports ({componentName, importPath}) that the file does not bind yet."""
        code = await vfs.read_file(path)
        if code is None:
            return {"success": False, "error": f"File not found: {path}"}
        requirements = [ImportRequirement.model_validate(item) for item in imports]
        result = add_imports_if_missing(code, requirements, path)
        if not result.success:
            return {"success": False, "error": result.error}
        if result.added:
            await vfs.write_file(path, result.code)
        return {"success": True, "added": list(result.added), "lineOffset": result.line_offset}

    return mcp
