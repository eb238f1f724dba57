"""
Core logic for projsnap: resolve rules, walk, render and assemble.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, List, Optional

from .assemble import assemble
from .errors import InvalidRootError
from .render import DEFAULT_MAX_BYTES, ContentBlock, render
from .rules import RuleSet, resolve, validate_root
from .walker import entry_sort_key, walk

__all__ = ["collect", "project_name", "resolve", "snapshot"]


def project_name(root: Path) -> str:
    resolved = Path(root).resolve()
    return resolved.name or str(resolved)


def collect(
    root: Path,
    ruleset: RuleSet,
    *,
    max_bytes: int = DEFAULT_MAX_BYTES,
    max_workers: Optional[int] = None,
) -> List[ContentBlock]:
    """Walk *root* and render every included file, sorted by path."""
    root = validate_root(root)
    if root != ruleset.root:
        raise InvalidRootError(f"Root '{root}' does not match the rule set root '{ruleset.root}'")
    entries = walk(root, ruleset, max_workers=max_workers)

    blocks: Dict[str, ContentBlock] = {}
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="projsnap-render") as executor:
        futures = [executor.submit(render, entry, max_bytes=max_bytes) for entry in entries]
        for future in as_completed(futures):
            block = future.result()
            blocks[block.rel] = block

    return [blocks[rel] for rel in sorted(blocks, key=entry_sort_key)]


def snapshot(
    root: Path,
    ruleset: RuleSet,
    *,
    max_bytes: int = DEFAULT_MAX_BYTES,
    max_workers: Optional[int] = None,
    name: Optional[str] = None,
) -> str:
    """Return the full snapshot text for *root* filtered through *ruleset*."""
    blocks = collect(root, ruleset, max_bytes=max_bytes, max_workers=max_workers)
    return assemble(blocks, name or project_name(root))
