"""Merge required component imports into a file's import block."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import PurePosixPath

from tree_sitter import Node

from draftboard.core.ast import ParsedSource, parse_source
from draftboard.errors import SourceParseError
from draftboard.models import ImportRequirement

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImportMergeResult:
    success: bool
    code: str
    error: str | None = None
    line_offset: int = 0
    added: list[str] = field(default_factory=list)


@dataclass
class ImportDeclaration:
    node: Node
    source: str
    bindings: list[str]
    named_imports: Node | None
    type_only: bool = False


def resolve_import_path(import_path: str, target_file: str | None) -> str:
    """Re-base a project-root ``./`` path for a file nested below the root.

    ``./components/ui/button`` seen from ``/components/dashboard/Dashboard.tsx``
    becomes ``../../components/ui/button``.
    """
    if not target_file or not import_path.startswith("./"):
        return import_path
    depth = len(PurePosixPath(target_file.lstrip("/")).parts) - 1
    if depth <= 0:
        return import_path
    return "../" * depth + import_path[2:]


def _string_value(parsed: ParsedSource, node: Node) -> str:
    return parsed.text_of(node)[1:-1]


def _parse_declaration(parsed: ParsedSource, node: Node) -> ImportDeclaration | None:
    source_node = node.child_by_field_name("source")
    if source_node is None:
        return None
    decl = ImportDeclaration(node=node, source=_string_value(parsed, source_node), bindings=[], named_imports=None)
    for child in node.children:
        if child.type == "type":
            decl.type_only = True
        if child.type != "import_clause":
            continue
        for part in child.children:
            if part.type == "identifier":
                decl.bindings.append(parsed.text_of(part))
            elif part.type == "namespace_import":
                decl.bindings.extend(parsed.text_of(n) for n in part.children if n.type == "identifier")
            elif part.type == "named_imports":
                decl.named_imports = part
                for spec in part.children:
                    if spec.type != "import_specifier":
                        continue
                    local = spec.child_by_field_name("alias") or spec.child_by_field_name("name")
                    if local is not None:
                        decl.bindings.append(parsed.text_of(local))
    return decl


def import_declarations(parsed: ParsedSource) -> list[ImportDeclaration]:
    declarations: list[ImportDeclaration] = []
    for node in parsed.root.children:
        if node.type == "import_statement":
            decl = _parse_declaration(parsed, node)
            if decl is not None:
                declarations.append(decl)
    return declarations


def bound_names(text: str, path: str | None = None) -> set[str]:
    """Every local name bound by an import declaration in ``text``."""
    parsed = parse_source(text, path)
    return {name for decl in import_declarations(parsed) for name in decl.bindings}


def _directive_end(parsed: ParsedSource) -> int | None:
    """End of the leading ``"use client"``-style directive prologue, if any."""
    end = None
    for node in parsed.root.children:
        if node.type == "comment":
            continue
        if node.type == "expression_statement" and node.named_child_count == 1 and node.named_children[0].type == "string":
            end = node.end_byte
            continue
        break
    return end


def _import_line(names: list[str], path: str, named: bool) -> str:
    if named:
        return f'import {{ {", ".join(names)} }} from "{path}";'
    return f'import {names[0]} from "{path}";'


def add_imports_if_missing(
    text: str, imports: Iterable[ImportRequirement], target_file: str | None = None
) -> ImportMergeResult:
    """Add each requirement not already bound, merging into same-path named imports.

    ``line_offset`` is how many lines were inserted above the first line of
    code, which callers add to any ``SourceLocation`` they hold in ``text``.
    """
    try:
        parsed = parse_source(text, target_file)
    except SourceParseError as exc:
        logger.warning("Cannot merge imports into %s: %s", target_file or "<text>", exc)
        return ImportMergeResult(success=False, code=text, error=str(exc))

    declarations = import_declarations(parsed)
    bound = {name for decl in declarations for name in decl.bindings}
    merges: dict[int, list[str]] = {}
    new_lines: dict[tuple[str, bool], list[str]] = {}
    added: list[str] = []

    for requirement in imports:
        name = requirement.component_name
        if name in bound:
            continue
        path = resolve_import_path(requirement.import_path, target_file)
        existing = next(
            (
                d
                for d in declarations
                if d.source == path and d.named_imports is not None and not d.type_only
            ),
            None,
        )
        if existing is not None and requirement.is_named_export:
            merges.setdefault(existing.node.start_byte, []).append(name)
        elif requirement.is_named_export:
            new_lines.setdefault((path, True), []).append(name)
        else:
            new_lines[(path, False)] = [name]
        bound.add(name)
        added.append(name)

    if not added:
        return ImportMergeResult(success=True, code=text)

    edits: list[tuple[int, bytes]] = []
    for decl in declarations:
        names = merges.get(decl.node.start_byte)
        if not names or decl.named_imports is None:
            continue
        specifiers = [c for c in decl.named_imports.children if c.type == "import_specifier"]
        if specifiers:
            edits.append((specifiers[-1].end_byte, "".join(f", {n}" for n in names).encode()))
        else:
            brace = decl.named_imports.children[0]
            edits.append((brace.end_byte, f" {', '.join(names)} ".encode()))

    lines = [_import_line(names, path, named) for (path, named), names in new_lines.items()]
    if lines:
        block = "\n".join(lines)
        if declarations:
            edits.append((declarations[-1].node.end_byte, f"\n{block}".encode()))
        else:
            directive_end = _directive_end(parsed)
            if directive_end is not None:
                edits.append((directive_end, f"\n{block}".encode()))
            else:
                edits.append((0, f"{block}\n".encode()))

    source = parsed.source
    for offset, chunk in sorted(edits, key=lambda edit: edit[0], reverse=True):
        source = source[:offset] + chunk + source[offset:]
    logger.debug("Added imports %s to %s", added, target_file or "<text>")
    return ImportMergeResult(success=True, code=source.decode("utf-8"), line_offset=len(lines), added=added)
