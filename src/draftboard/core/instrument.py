"""Location stamping for preview ("shadow") copies of source files.

Every markup element gets ``data-source-loc="<file>:<line>:<column>"`` naming the
position of its opening tag in the *original* text, so a click in the preview
maps back to an exact place in the editable file. The attributes are inserted
on the tag's own line, so line numbers in the shadow copy never move.
"""

from __future__ import annotations

import html
import logging
from collections.abc import Mapping
from dataclasses import dataclass

from draftboard.core.ast import FRAGMENT_NAMES, attribute_names, opening_tag, parse_source, tag_name_node
from draftboard.core.languages import is_instrumentable
from draftboard.errors import SourceParseError

logger = logging.getLogger(__name__)

SOURCE_LOC_ATTR = "data-source-loc"
INSTANCE_SOURCE_LOC_ATTR = "data-instance-source-loc"


@dataclass(frozen=True)
class InstrumentResult:
    code: str
    success: bool
    error: str | None = None


def instrument_code(code: str, path: str) -> InstrumentResult:
    """Stamp every element in ``code``. On a syntax error the text comes back untouched."""
    try:
        parsed = parse_source(code, path)
    except SourceParseError as exc:
        logger.warning("Failed to instrument %s: %s", path, exc)
        return InstrumentResult(code=code, success=False, error=str(exc))

    edits: list[tuple[int, bytes]] = []
    for element in parsed.iter_elements():
        name_node = tag_name_node(element)
        if name_node is None:
            continue
        name = parsed.text_of(name_node)
        if name in FRAGMENT_NAMES:
            continue
        existing = attribute_names(parsed, element)
        if SOURCE_LOC_ATTR in existing:
            continue

        stamp = html.escape(str(parsed.location_of(element)), quote=True)
        attrs = f' {SOURCE_LOC_ATTR}="{stamp}"'
        # PascalCase tags are component instances; editors prefer the callsite.
        if name[:1].isupper() and "." not in name and INSTANCE_SOURCE_LOC_ATTR not in existing:
            attrs = f' {INSTANCE_SOURCE_LOC_ATTR}="{stamp}"' + attrs

        insert_at = name_node.end_byte
        for child in opening_tag(element).children:
            if child.type == "type_arguments":
                insert_at = child.end_byte
        edits.append((insert_at, attrs.encode("utf-8")))

    source = parsed.source
    for offset, text in sorted(edits, reverse=True):
        source = source[:offset] + text + source[offset:]
    return InstrumentResult(code=source.decode("utf-8"), success=True)


class Instrumenter:
    """Caches one instrumented result per path, keyed on the exact text.

    Also remembers the last successful shadow per path so a file with a
    transient syntax error keeps serving its previous good version.
    """

    def __init__(self) -> None:
        self._cache: dict[str, tuple[str, InstrumentResult]] = {}
        self._last_good: dict[str, str] = {}
        self.transforms = 0

    def instrument(self, path: str, code: str) -> InstrumentResult:
        if not is_instrumentable(path):
            return InstrumentResult(code=code, success=True)
        cached = self._cache.get(path)
        if cached is not None and cached[0] == code:
            return cached[1]

        self.transforms += 1
        result = instrument_code(code, path)
        self._cache[path] = (code, result)
        if result.success:
            self._last_good[path] = result.code
        return result

    def shadow(self, path: str, code: str) -> tuple[str, str | None]:
        """Preview text for ``path`` plus the instrumentation error, if any."""
        result = self.instrument(path, code)
        if result.success:
            return result.code, None
        return self._last_good.get(path, code), result.error

    def instrument_files(self, files: Mapping[str, str]) -> tuple[dict[str, str], dict[str, str]]:
        shadow_files: dict[str, str] = {}
        errors: dict[str, str] = {}
        for path, code in files.items():
            shadow_files[path], error = self.shadow(path, code)
            if error:
                errors[path] = error
        return shadow_files, errors

    def forget(self, path: str) -> None:
        self._cache.pop(path, None)
        self._last_good.pop(path, None)
