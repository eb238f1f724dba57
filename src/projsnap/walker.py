"""
Parallel directory traversal.

Every directory is listed by its own task on a thread pool. A task receives
the rule scope of its parent, extends it with the directory's own ignore
files, and hands the extended scope to the tasks of its subdirectories, so a
directory's rules are a function of its path alone and never reach siblings.
"""

from __future__ import annotations

import os
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from .errors import RootUnreadableError, SubtreeUnreadableError, warn
from .rules import RuleScope, RuleSet


@dataclass(frozen=True)
class FileEntry:
    path: Path
    rel: str
    kind: str  # "file" or "dir"
    depth: int


def entry_sort_key(rel: str) -> Tuple[str, ...]:
    """Component-wise key; sorting by it yields lexical depth-first order."""
    return tuple(rel.split("/"))


def _list_directory(
    directory: FileEntry,
    scope: RuleScope,
    ruleset: RuleSet,
) -> Tuple[List[FileEntry], List[Tuple[FileEntry, RuleScope]]]:
    # A directory may list but refuse lookups inside it (r-- without x), so
    # probing its ignore files can fail after scandir succeeded.
    try:
        with os.scandir(directory.path) as it:
            entries = sorted(it, key=lambda e: e.name)
        scope = ruleset.enter(directory.path, scope)
    except OSError as e:
        if directory.path == ruleset.root:
            raise RootUnreadableError(f"Could not read root directory '{directory.path}': {e}") from e
        raise SubtreeUnreadableError(f"Skipping unreadable directory {directory.rel}: {e}") from e

    files: List[FileEntry] = []
    subdirs: List[Tuple[FileEntry, RuleScope]] = []
    for entry in entries:
        try:
            if entry.is_symlink():
                continue
            is_dir = entry.is_dir(follow_symlinks=False)
            is_file = entry.is_file(follow_symlinks=False)
        except OSError:
            continue
        if not (is_dir or is_file):
            continue
        path = Path(entry.path)
        if ruleset.is_excluded(path, is_dir, scope):
            continue
        rel = path.relative_to(ruleset.root).as_posix()
        if is_dir:
            subdirs.append((FileEntry(path, rel, "dir", directory.depth + 1), scope))
        else:
            files.append(FileEntry(path, rel, "file", directory.depth + 1))
    return files, subdirs


def walk(root: Path, ruleset: RuleSet, *, max_workers: Optional[int] = None) -> List[FileEntry]:
    """Return the included regular files under *root* in lexical depth-first order."""
    root_entry = FileEntry(Path(root).resolve(), ".", "dir", 0)
    found: List[FileEntry] = []

    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="projsnap-walk") as executor:
        pending = {executor.submit(_list_directory, root_entry, ruleset.root_scope(), ruleset)}
        while pending:
            done, pending = wait(pending, return_when=FIRST_COMPLETED)
            for future in done:
                try:
                    files, subdirs = future.result()
                except SubtreeUnreadableError as e:
                    warn(str(e))
                    continue
                found.extend(files)
                for subdir, scope in subdirs:
                    pending.add(executor.submit(_list_directory, subdir, scope, ruleset))

    return sorted(found, key=lambda entry: entry_sort_key(entry.rel))
