from collections.abc import Iterator
from functools import lru_cache
from typing import cast

from tree_sitter import Node, Parser
from tree_sitter_language_pack import SupportedLanguage, get_parser

from draftboard.core.languages import detect_language_from_path
from draftboard.errors import SourceParseError
from draftboard.models import SourceLocation

ELEMENT_TYPES = frozenset({"jsx_element", "jsx_self_closing_element"})
FRAGMENT_NAMES = frozenset({"Fragment", "React.Fragment"})


@lru_cache(maxsize=8)
def _parser(language: str) -> Parser:
    return get_parser(cast(SupportedLanguage, language))


def location_for_offset(source: bytes, offset: int, file: str) -> SourceLocation:
    """Convert a byte offset into a 1-based line / 0-based character column."""
    line = source.count(b"\n", 0, offset) + 1
    line_start = source.rfind(b"\n", 0, offset) + 1
    column = len(source[line_start:offset].decode("utf-8", errors="replace"))
    return SourceLocation(file=file, line=line, column=column)


def line_indent(source: bytes, offset: int) -> bytes:
    """Leading whitespace of the line containing ``offset``."""
    line_start = source.rfind(b"\n", 0, offset) + 1
    end = line_start
    while end < len(source) and source[end] in b" \t":
        end += 1
    return source[line_start:end]


def _walk(node: Node) -> Iterator[Node]:
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


class ParsedSource:
    """A tree-sitter parse of one file with the position helpers the writers need."""

    __slots__ = ("path", "source", "tree")

    def __init__(self, text: str, path: str | None = None) -> None:
        self.path = path
        self.source = text.encode("utf-8")
        self.tree = _parser(detect_language_from_path(path)).parse(self.source)

    @property
    def root(self) -> Node:
        return self.tree.root_node

    @property
    def line_count(self) -> int:
        return self.source.count(b"\n") + 1

    def first_error(self) -> Node | None:
        if not self.root.has_error:
            return None
        for node in _walk(self.root):
            if node.type == "ERROR" or node.is_missing:
                return node
        return self.root

    def raise_for_errors(self) -> None:
        error = self.first_error()
        if error is not None:
            loc = self.location_of(error)
            raise SourceParseError(self.path, loc.line, loc.column)

    def text_of(self, node: Node) -> str:
        return self.source[node.start_byte : node.end_byte].decode("utf-8")

    def location_of(self, node: Node) -> SourceLocation:
        return location_for_offset(self.source, node.start_byte, self.path or "")

    def iter_elements(self) -> Iterator[Node]:
        for node in _walk(self.root):
            if node.type in ELEMENT_TYPES:
                yield node

    def element_at(self, line: int, column: int) -> Node | None:
        """The element whose opening tag starts exactly at ``line``:``column``."""
        row = line - 1
        stack = [self.root]
        while stack:
            node = stack.pop()
            if not node.start_point[0] <= row <= node.end_point[0]:
                continue
            if node.type in ELEMENT_TYPES and node.start_point[0] == row:
                if self.location_of(node).column == column:
                    return node
            stack.extend(reversed(node.children))
        return None


def parse_source(text: str, path: str | None = None, strict: bool = True) -> ParsedSource:
    parsed = ParsedSource(text, path)
    if strict:
        parsed.raise_for_errors()
    return parsed


def opening_tag(element: Node) -> Node:
    """The node carrying the tag name and attributes."""
    if element.type == "jsx_self_closing_element":
        return element
    for child in element.children:
        if child.type == "jsx_opening_element":
            return child
    return element


def closing_tag(element: Node) -> Node | None:
    for child in reversed(element.children):
        if child.type == "jsx_closing_element":
            return child
    return None


def tag_name_node(element: Node) -> Node | None:
    return opening_tag(element).child_by_field_name("name")


def tag_name(parsed: ParsedSource, element: Node) -> str | None:
    """Tag name, or ``None`` for fragments."""
    name = tag_name_node(element)
    if name is None:
        return None
    text = parsed.text_of(name)
    return None if text in FRAGMENT_NAMES else text


def attribute_names(parsed: ParsedSource, element: Node) -> list[str]:
    names: list[str] = []
    for child in opening_tag(element).children:
        if child.type == "jsx_attribute" and child.child_count:
            names.append(parsed.text_of(child.children[0]))
    return names


def element_children(element: Node) -> list[Node]:
    """Markup element children in source order; text and expressions are skipped."""
    if element.type != "jsx_element":
        return []
    return [child for child in element.children if child.type in ELEMENT_TYPES]


def content_children(parsed: ParsedSource, element: Node) -> list[Node]:
    """Children between the tags, minus whitespace-only text."""
    result: list[Node] = []
    for child in element.children:
        if child.type in ("jsx_opening_element", "jsx_closing_element"):
            continue
        if child.type == "jsx_text" and not parsed.text_of(child).strip():
            continue
        result.append(child)
    return result


def find_root_element(parsed: ParsedSource) -> Node | None:
    """First markup element returned from a component, else the first top-level element."""
    for node in _walk(parsed.root):
        if node.type == "return_statement":
            for inner in _walk(node):
                if inner.type in ELEMENT_TYPES:
                    return inner
    return next(parsed.iter_elements(), None)
