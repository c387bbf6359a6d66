from enum import Enum


class DraftboardError(Exception):
    """Base class for errors raised by draftboard."""


class SceneGraphError(DraftboardError):
    """A scene-graph mutation would violate an invariant; the store is left untouched."""


class WriteFailure(str, Enum):
    PARSE_FAILURE = "PARSE_FAILURE"
    SOURCE_NOT_FOUND = "SOURCE_NOT_FOUND"
    STALE_SOURCE_LOCATION = "STALE_SOURCE_LOCATION"
    NO_SIBLING_IN_DIRECTION = "NO_SIBLING_IN_DIRECTION"
    NON_REORDERABLE_CONTEXT = "NON_REORDERABLE_CONTEXT"
    UNKNOWN = "UNKNOWN"


# Boundary conditions rather than faults.
INFORMATIONAL_FAILURES = frozenset({WriteFailure.NO_SIBLING_IN_DIRECTION, WriteFailure.NON_REORDERABLE_CONTEXT})


_FAILURE_MESSAGES = {
    WriteFailure.PARSE_FAILURE: "The file could not be parsed; fix the syntax error and try again",
    WriteFailure.SOURCE_NOT_FOUND: "Could not locate this element in source",
    WriteFailure.STALE_SOURCE_LOCATION: "Selection changed; reselect the element and try again",
    WriteFailure.NO_SIBLING_IN_DIRECTION: "No sibling in that direction",
    WriteFailure.NON_REORDERABLE_CONTEXT: "Reorder works only when the selected element's parent uses flex layout",
    WriteFailure.UNKNOWN: "Could not update the source",
}


def failure_message(reason: WriteFailure | None) -> str:
    return _FAILURE_MESSAGES[reason or WriteFailure.UNKNOWN]


class SourceParseError(DraftboardError):
    """Source text has syntax errors; pure operations turn this into ``WriteFailure.PARSE_FAILURE``."""

    def __init__(self, path: str | None, line: int, column: int) -> None:
        self.path = path
        self.line = line
        self.column = column
        where = f"{path}:{line}:{column}" if path else f"{line}:{column}"
        super().__init__(f"Syntax error at {where}")
