"""
Turn discovered files into content blocks.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict

from .errors import FileReadError, warn
from .walker import FileEntry

DEFAULT_MAX_BYTES = 100_000
BINARY_SNIFF_BYTES = 8000
BINARY_THRESHOLD = 0.30

# Control bytes that still occur in ordinary text: \b \t \n \f \r and ESC.
_TEXT_CONTROLS = frozenset({8, 9, 10, 12, 13, 27})

_LANG_MAP: Dict[str, str] = {
    ".py": "python",
    ".pyi": "python",
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".tsx": "tsx",
    ".jsx": "jsx",
    ".json": "json",
    ".yml": "yaml",
    ".yaml": "yaml",
    ".toml": "toml",
    ".ini": "ini",
    ".cfg": "ini",
    ".css": "css",
    ".scss": "scss",
    ".html": "html",
    ".xml": "xml",
    ".md": "markdown",
    ".rst": "rst",
    ".sh": "bash",
    ".bash": "bash",
    ".rb": "ruby",
    ".go": "go",
    ".rs": "rust",
    ".java": "java",
    ".kt": "kotlin",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".hpp": "cpp",
    ".cs": "csharp",
    ".swift": "swift",
    ".sql": "sql",
}


@dataclass(frozen=True)
class ContentBlock:
    rel: str
    kind: str  # "text", "truncated", "binary" or "error"
    text: str
    size: int
    language: str = ""


def language_for(path: Path) -> str:
    return _LANG_MAP.get(path.suffix.lower(), "")


def is_binary(data: bytes) -> bool:
    """Guess whether *data* is binary from its leading bytes."""
    window = data[:BINARY_SNIFF_BYTES]
    if not window:
        return False
    if b"\0" in window:
        return True
    odd = sum(1 for b in window if (b < 32 and b not in _TEXT_CONTROLS) or b == 127)
    return odd / len(window) > BINARY_THRESHOLD


def _read_head(path: Path, limit: int) -> bytes:
    try:
        with path.open("rb") as fh:
            return fh.read(limit)
    except OSError as e:
        raise FileReadError(str(e)) from e


def render(entry: FileEntry, *, max_bytes: int = DEFAULT_MAX_BYTES) -> ContentBlock:
    """Render one file; never raises for a file that vanished or is unreadable."""
    language = language_for(entry.path)
    try:
        raw = _read_head(entry.path, max_bytes + 1)
    except FileReadError as e:
        warn(f"Could not read {entry.rel}: {e}")
        return ContentBlock(entry.rel, "error", f"[error reading file: {e}]", 0, language)

    if is_binary(raw):
        try:
            size = entry.path.stat().st_size
        except OSError:
            size = len(raw)
        return ContentBlock(entry.rel, "binary", f"[binary content omitted: {size} bytes]", size, language)

    if len(raw) > max_bytes:
        text = raw[:max_bytes].decode("utf-8", errors="replace")
        return ContentBlock(entry.rel, "truncated", text, max_bytes, language)

    return ContentBlock(entry.rel, "text", raw.decode("utf-8", errors="replace"), len(raw), language)
