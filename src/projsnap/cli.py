"""
CLI entrypoint for projsnap package.
"""
import argparse
import sys
from pathlib import Path
from typing import List, Optional

from colorama import just_fix_windows_console

from . import __version__
from .assemble import assemble
from .core import collect, project_name
from .errors import (
    ConfigFileError,
    InvalidRootError,
    OutputError,
    RootUnreadableError,
    error,
    info,
    success,
)
from .render import DEFAULT_MAX_BYTES
from .rules import GlobalIgnore, load_extra_patterns, load_global_ignore, resolve


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="projsnap",
        description="Snapshot a project's tree and file contents for AI consumption, "
        "honouring .gitignore rules.",
    )
    p.add_argument("path", nargs="?", type=Path, default=Path("."), help="Project directory to scan")
    p.add_argument("-o", "--out", type=Path, help="Write the snapshot to this file instead of stdout")
    p.add_argument(
        "-t",
        "--text",
        action="store_true",
        help="Also print the snapshot to stdout when --out is given (stdout is the default otherwise)",
    )
    p.add_argument(
        "--config",
        type=Path,
        help="Path to a file with extra ignore patterns (one per line)",
    )
    p.add_argument(
        "--max-bytes",
        type=int,
        default=DEFAULT_MAX_BYTES,
        help="Maximum bytes per file to include (default 100k)",
    )
    p.add_argument("-j", "--jobs", type=int, default=None, help="Worker threads (default: automatic)")
    p.add_argument(
        "--no-global-ignore",
        action="store_true",
        help="Do not read the user's global git ignore file",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p.parse_args(argv)


def _write_output(text: str, out_path: Path) -> None:
    if not out_path.parent.exists():
        try:
            out_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise OutputError(f"Could not create directory '{out_path.parent}': {e}")
    try:
        with out_path.open("w", encoding="utf-8", newline="\n") as out_fh:
            out_fh.write(text)
    except OSError as e:
        raise OutputError(f"Could not write to output file '{out_path}': {e}")


def main(argv: Optional[List[str]] = None) -> int:
    ns = _parse_args(argv)
    just_fix_windows_console()
    try:
        root = ns.path
        out_path = ns.out.resolve() if ns.out else None

        extra_patterns: List[str] = []
        if ns.config:
            try:
                extra_patterns = load_extra_patterns(ns.config.resolve())
            except ConfigFileError as e:
                error(str(e))
                return 1
            if ns.verbose:
                info(f"Loaded extra patterns from {ns.config}")

        global_ignore = GlobalIgnore.empty() if ns.no_global_ignore else load_global_ignore()
        if ns.verbose and global_ignore.lines:
            info(f"Loaded global ignore file {global_ignore.path}")

        if ns.verbose:
            info(f"Scanning {root} …")

        try:
            ruleset = resolve(
                root,
                global_ignore=global_ignore,
                extra_patterns=extra_patterns,
                exclude_paths=[out_path] if out_path else [],
            )
            blocks = collect(root, ruleset, max_bytes=ns.max_bytes, max_workers=ns.jobs)
        except (InvalidRootError, RootUnreadableError) as e:
            error(str(e))
            return 1

        if not blocks:
            print("No files to include in the snapshot. Exiting.", file=sys.stderr)
            return 0

        if ns.verbose:
            skipped = sum(1 for b in blocks if b.kind in ("binary", "error"))
            truncated = sum(1 for b in blocks if b.kind == "truncated")
            info(f"{len(blocks)} files kept, {skipped} as placeholders, {truncated} truncated.")

        text = assemble(blocks, project_name(root))

        if out_path is not None:
            try:
                _write_output(text, out_path)
            except OutputError as e:
                error(str(e))
                return 1
            success(f"Snapshot successfully written to: {out_path}")
        if out_path is None or ns.text:
            sys.stdout.write(text)
        return 0

    except KeyboardInterrupt:
        print("\nOperation cancelled by user.", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
