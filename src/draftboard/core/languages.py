from pathlib import PurePosixPath

_EXTENSION_LANGUAGE_MAP = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".tsx": "tsx",
}

# Files whose markup elements get location stamps for the preview.
_INSTRUMENTED_EXTENSIONS = frozenset({".tsx", ".jsx"})

_DEFAULT_LANGUAGE = "tsx"


def _suffix(path: str) -> str:
    return PurePosixPath(path).suffix.lower()


def is_instrumentable(path: str) -> bool:
    return _suffix(path) in _INSTRUMENTED_EXTENSIONS


def is_source_file(path: str) -> bool:
    return _suffix(path) in _EXTENSION_LANGUAGE_MAP


def detect_language_from_path(path: str | None) -> str:
    """Grammar used to parse ``path``; markup-capable ``tsx`` when unknown."""
    if not path:
        return _DEFAULT_LANGUAGE
    return _EXTENSION_LANGUAGE_MAP.get(_suffix(path), _DEFAULT_LANGUAGE)
