"""
projsnap - snapshot a project tree and its file contents for LLM ingestion.

The directory is walked in parallel, filtered through built-in exclusions,
the user's global git ignore file and every ``.gitignore``/``.ignore`` found
on the way, and the surviving files are written out as one Markdown document.
"""

__version__ = "0.1.0"

from .core import collect, resolve, snapshot  # noqa: E402

__all__ = ["__version__", "collect", "resolve", "snapshot"]
