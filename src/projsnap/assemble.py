"""
Snapshot assembly: project tree plus one fenced block per file.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional

from .render import ContentBlock
from .walker import entry_sort_key

SUMMARY_LINE = (
    "This file contains a snapshot of the project structure and source code, "
    "formatted for AI consumption."
)

_BACKTICK_RUN = re.compile(r"`{3,}")


def build_project_tree(rels: Iterable[str]) -> str:
    """
    Return an ASCII tree (à la the Unix ``tree`` utility) rooted at ``.``.

    Works purely from the POSIX relative paths given; ancestors are implied.
    Siblings are listed in lexical order and directories carry a trailing ``/``.
    """
    tree: Dict[str, Optional[dict]] = {}
    for rel in rels:
        parts = rel.split("/")
        cur = tree
        for part in parts[:-1]:
            cur = cur.setdefault(part, {})  # type: ignore[assignment]
        cur[parts[-1]] = None

    lines: List[str] = ["."]

    def _walk(node: Dict[str, Optional[dict]], prefix: str = "") -> None:
        items = sorted(node.items())
        for idx, (name, child) in enumerate(items):
            last = idx == len(items) - 1
            connector = "└── " if last else "├── "
            lines.append(f"{prefix}{connector}{name}{'/' if child is not None else ''}")
            if child is not None:
                _walk(child, prefix + ("    " if last else "│   "))

    _walk(tree)
    return "\n".join(lines) + "\n"


def _fence_for(text: str) -> str:
    longest = max((len(m.group(0)) for m in _BACKTICK_RUN.finditer(text)), default=2)
    return "`" * (longest + 1)


def render_block(block: ContentBlock) -> str:
    body = block.text
    if block.kind == "truncated":
        body = f"{body}\n[truncated at {block.size} bytes]"
    fence = _fence_for(body)
    return f"{fence}{block.language}:{block.rel}\n{body}\n{fence}\n\n"


def assemble(blocks: Iterable[ContentBlock], project_name: str) -> str:
    """Join *blocks* into the final snapshot text, in path order."""
    ordered = sorted(blocks, key=lambda block: entry_sort_key(block.rel))
    parts = [
        f"# Project Snapshot: {project_name}\n\n",
        f"{SUMMARY_LINE}\n",
        f"Total files included: {len(ordered)}\n\n",
        f"```\n{build_project_tree(b.rel for b in ordered)}```\n\n",
        "## File Contents\n\n",
    ]
    parts.extend(render_block(block) for block in ordered)
    return "".join(parts)
