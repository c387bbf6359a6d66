"""Location-anchored text mutations on markup source.

Every function takes the whole file text and returns a ``WriteResult``; on
failure ``code`` is the untouched input. Edits splice bytes into the original
text so formatting outside the edited span is preserved exactly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from tree_sitter import Node

from draftboard.core.ast import (
    ParsedSource,
    closing_tag,
    content_children,
    element_children,
    find_root_element,
    line_indent,
    location_for_offset,
    opening_tag,
    parse_source,
    tag_name_node,
)
from draftboard.core.synthesis import INDENT, escape_text
from draftboard.errors import SourceParseError, WriteFailure, failure_message
from draftboard.models import SourceLocation

logger = logging.getLogger(__name__)

Position = Literal["first", "last"]
Direction = Literal["prev", "next"]


@dataclass(frozen=True)
class WriteResult:
    success: bool
    code: str
    error: str | None = None
    reason: WriteFailure | None = None
    location: SourceLocation | None = None


def _failure(text: str, reason: WriteFailure, error: str | None = None) -> WriteResult:
    return WriteResult(success=False, code=text, error=error or failure_message(reason), reason=reason)


class _Located:
    __slots__ = ("parsed", "element")

    def __init__(self, parsed: ParsedSource, element: Node) -> None:
        self.parsed = parsed
        self.element = element


def _locate(text: str, location: SourceLocation, missing: WriteFailure) -> _Located | WriteResult:
    try:
        parsed = parse_source(text, location.file)
    except SourceParseError as exc:
        return _failure(text, WriteFailure.PARSE_FAILURE, str(exc))
    if not 1 <= location.line <= parsed.line_count:
        return _failure(text, WriteFailure.SOURCE_NOT_FOUND)
    element = parsed.element_at(location.line, location.column)
    if element is None:
        logger.debug("No element starts at %s", location)
        return _failure(text, missing)
    return _Located(parsed, element)


def _indent_block(markup: str, indent: bytes) -> bytes:
    prefix = indent.decode("utf-8")
    lines = markup.strip("\n").split("\n")
    return "\n".join([lines[0], *(prefix + line if line.strip() else line for line in lines[1:])]).encode("utf-8")


def _rest_of_line_blank(source: bytes, offset: int) -> bool:
    newline = source.find(b"\n", offset)
    end = len(source) if newline == -1 else newline
    return not source[offset:end].strip()


def _splice(source: bytes, start: int, end: int, chunk: bytes) -> bytes:
    return source[:start] + chunk + source[end:]


def _child_indent(parsed: ParsedSource, element: Node) -> bytes:
    source = parsed.source
    element_indent = line_indent(source, element.start_byte)
    for child in content_children(parsed, element):
        if child.start_point[0] != element.start_point[0]:
            return line_indent(source, child.start_byte)
    return element_indent + INDENT.encode()


def insert_child_at_location(
    text: str, location: SourceLocation, child_markup: str, position: Position = "last"
) -> WriteResult:
    """Insert ``child_markup`` as the first or last child of the element at ``location``."""
    located = _locate(text, location, WriteFailure.SOURCE_NOT_FOUND)
    if isinstance(located, WriteResult):
        return located
    parsed, element = located.parsed, located.element
    source = parsed.source
    element_indent = line_indent(source, element.start_byte)
    child_indent = _child_indent(parsed, element)
    markup = _indent_block(child_markup, child_indent)

    if element.type == "jsx_self_closing_element":
        name_node = tag_name_node(element)
        if name_node is None:
            return _failure(text, WriteFailure.UNKNOWN)
        slash = next(c for c in reversed(element.children) if c.type == "/")
        cut = slash.start_byte
        while cut > 0 and source[cut - 1 : cut] in (b" ", b"\t", b"\n"):
            cut -= 1
        head = b">\n" + child_indent
        chunk = head + markup + b"\n" + element_indent + b"</" + parsed.text_of(name_node).encode() + b">"
        new_source = _splice(source, cut, element.end_byte, chunk)
        child_offset = cut + len(head)
    else:
        opening = opening_tag(element)
        closing = closing_tag(element)
        if closing is None:
            return _failure(text, WriteFailure.UNKNOWN)
        if position == "first":
            head = b"\n" + child_indent
            if _rest_of_line_blank(source, opening.end_byte):
                tail = b""
            elif not source[opening.end_byte : closing.start_byte].strip():
                tail = b"\n" + element_indent
            else:
                tail = b"\n" + child_indent
            new_source = _splice(source, opening.end_byte, opening.end_byte, head + markup + tail)
            child_offset = opening.end_byte + len(head)
        else:
            line_start = source.rfind(b"\n", 0, closing.start_byte) + 1
            if line_start > opening.end_byte and not source[line_start : closing.start_byte].strip():
                new_source = _splice(source, line_start, line_start, child_indent + markup + b"\n")
                child_offset = line_start + len(child_indent)
            else:
                head = b"\n" + child_indent
                chunk = head + markup + b"\n" + element_indent
                new_source = _splice(source, closing.start_byte, closing.start_byte, chunk)
                child_offset = closing.start_byte + len(head)

    child_location = location_for_offset(new_source, child_offset, location.file)
    return WriteResult(success=True, code=new_source.decode("utf-8"), location=child_location)


def _siblings(element: Node) -> list[Node]:
    parent = element.parent
    if parent is None or parent.type != "jsx_element":
        return [element]
    return element_children(parent)


def _swap_partner(
    text: str, location: SourceLocation, direction: Direction
) -> tuple[ParsedSource, Node, Node] | WriteResult:
    located = _locate(text, location, WriteFailure.STALE_SOURCE_LOCATION)
    if isinstance(located, WriteResult):
        return located
    element = located.element
    siblings = _siblings(element)
    index = next(i for i, sibling in enumerate(siblings) if sibling.start_byte == element.start_byte)
    target = index - 1 if direction == "prev" else index + 1
    if not 0 <= target < len(siblings):
        return _failure(text, WriteFailure.NO_SIBLING_IN_DIRECTION)
    return located.parsed, element, siblings[target]


def preflight_swap_sibling_at_location(text: str, location: SourceLocation, direction: Direction) -> WriteResult:
    """Run every check ``swap_sibling_at_location`` would, without changing the text."""
    checked = _swap_partner(text, location, direction)
    if isinstance(checked, WriteResult):
        return checked
    parsed, _, partner = checked
    return WriteResult(success=True, code=text, location=parsed.location_of(partner))


def swap_sibling_at_location(text: str, location: SourceLocation, direction: Direction) -> WriteResult:
    """Exchange the element at ``location`` with its previous or next element sibling.

    Text between the two siblings stays where it is; the returned location is
    the anchor element's new position.
    """
    checked = _swap_partner(text, location, direction)
    if isinstance(checked, WriteResult):
        return checked
    parsed, anchor, partner = checked
    first, second = (partner, anchor) if direction == "prev" else (anchor, partner)
    source = parsed.source
    first_text = source[first.start_byte : first.end_byte]
    second_text = source[second.start_byte : second.end_byte]
    between = source[first.end_byte : second.start_byte]
    new_source = source[: first.start_byte] + second_text + between + first_text + source[second.end_byte :]

    if direction == "prev":
        anchor_start = first.start_byte
    else:
        anchor_start = first.start_byte + len(second_text) + len(between)
    anchor_location = location_for_offset(new_source, anchor_start, location.file)
    return WriteResult(success=True, code=new_source.decode("utf-8"), location=anchor_location)


def delete_node_at_location(text: str, location: SourceLocation) -> WriteResult:
    """Remove the element at ``location``; a line holding nothing else goes with it."""
    located = _locate(text, location, WriteFailure.STALE_SOURCE_LOCATION)
    if isinstance(located, WriteResult):
        return located
    source = located.parsed.source
    element = located.element
    start, end = element.start_byte, element.end_byte
    line_start = source.rfind(b"\n", 0, start) + 1
    if not source[line_start:start].strip() and _rest_of_line_blank(source, end):
        newline = source.find(b"\n", end)
        start, end = line_start, (len(source) if newline == -1 else newline + 1)
    new_source = _splice(source, start, end, b"")

    new_text = new_source.decode("utf-8")
    if parse_source(new_text, location.file, strict=False).first_error() is not None:
        return _failure(text, WriteFailure.UNKNOWN, "Removing this element would leave invalid source")
    return WriteResult(success=True, code=new_text)


def update_text_at_location(text: str, location: SourceLocation, new_text: str) -> WriteResult:
    """Replace the plain-text content of the element at ``location``."""
    located = _locate(text, location, WriteFailure.STALE_SOURCE_LOCATION)
    if isinstance(located, WriteResult):
        return located
    parsed, element = located.parsed, located.element
    if element.type != "jsx_element" or any(c.type != "jsx_text" for c in content_children(parsed, element)):
        return _failure(text, WriteFailure.UNKNOWN, "Only elements holding plain text can be edited")
    opening = opening_tag(element)
    closing = closing_tag(element)
    assert closing is not None

    inner = parsed.source[opening.end_byte : closing.start_byte]
    stripped = inner.strip()
    if stripped:
        lead = inner[: inner.index(stripped)]
        trail = inner[len(lead) + len(stripped) :]
    else:
        lead, trail = b"", b""
    chunk = lead + escape_text(new_text).encode("utf-8") + trail
    new_source = _splice(parsed.source, opening.end_byte, closing.start_byte, chunk)
    return WriteResult(success=True, code=new_source.decode("utf-8"), location=location)


def find_root_element_location(text: str, file: str) -> SourceLocation | None:
    """Where the first element returned from a component starts, if anywhere."""
    parsed = parse_source(text, file, strict=False)
    element = find_root_element(parsed)
    return parsed.location_of(element) if element is not None else None
