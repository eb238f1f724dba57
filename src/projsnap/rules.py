"""
Ignore-rule resolution.

Rules come from several sources and are stacked as layers, lowest precedence
first: built-in defaults, the user's global git ignore file, extra patterns
from ``--config``, the repository's ``.git/info/exclude``, ignore files in
ancestors of the root, and finally the ignore files met while walking. A path
is decided by the deepest layer that has an opinion about it; inside a layer
the last matching line wins.
"""

from __future__ import annotations

import configparser
import os
import stat
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from .errors import (
    ConfigFileError,
    InvalidRootError,
    MalformedIgnoreRuleError,
    RootUnreadableError,
    warn,
)

try:
    import pathspec  # type: ignore
except ImportError:  # pragma: no cover
    sys.stderr.write(
        "Error: 'pathspec' library is required. Install via 'pip install pathspec'.\n"
    )
    sys.exit(1)

GITWILDMATCH = pathspec.util.lookup_pattern("gitwildmatch")

DEFAULT_OUTPUT_NAME = "project-snapshot.md"

# Names that no rule can bring back.
ALWAYS_EXCLUDED: frozenset = frozenset({".git", ".hg", ".svn", "_darcs", "CVS"})

IGNORE_FILE_NAMES: Tuple[str, ...] = (".gitignore", ".ignore")

BUILTIN_PATTERNS: Tuple[str, ...] = (
    "node_modules/",
    "bower_components/",
    "jspm_packages/",
    "__pycache__/",
    "*.py[cod]",
    "*.egg-info/",
    ".venv/",
    ".tox/",
    ".nox/",
    ".mypy_cache/",
    ".pytest_cache/",
    ".ruff_cache/",
    ".gradle/",
    "target/",
    ".DS_Store",
    ".env",
    ".gitignore",
    ".ignore",
    DEFAULT_OUTPUT_NAME,
)


@dataclass(frozen=True)
class IgnoreRule:
    """One compiled ignore-file line; paths are matched relative to its layer."""

    pattern: str
    negated: bool
    source: str
    line: int
    compiled: object = field(repr=False, compare=False)

    def matches(self, rel: str, is_dir: bool) -> bool:
        candidate = rel + "/" if is_dir else rel
        return self.compiled.match_file(candidate) is not None


@dataclass(frozen=True)
class RuleLayer:
    scope: Path
    rules: Tuple[IgnoreRule, ...]
    source: str

    def decide(self, path: Path, is_dir: bool) -> Optional[bool]:
        """True = excluded, False = re-included, None = no rule matched."""
        try:
            rel = path.relative_to(self.scope).as_posix()
        except ValueError:
            return None
        if rel == ".":
            return None
        for rule in reversed(self.rules):
            if rule.matches(rel, is_dir):
                return not rule.negated
        return None


@dataclass(frozen=True)
class RuleScope:
    """Active layers for one directory, shallowest first."""

    layers: Tuple[RuleLayer, ...] = ()

    def push(self, layer: Optional[RuleLayer]) -> "RuleScope":
        if layer is None:
            return self
        return RuleScope(self.layers + (layer,))

    def decide(self, path: Path, is_dir: bool) -> Optional[bool]:
        for layer in reversed(self.layers):
            verdict = layer.decide(path, is_dir)
            if verdict is not None:
                return verdict
        return None


@dataclass(frozen=True)
class GlobalIgnore:
    """The user-level ignore file, read once per invocation."""

    path: Optional[Path]
    lines: Tuple[str, ...] = ()

    @classmethod
    def empty(cls) -> "GlobalIgnore":
        return cls(None, ())


@dataclass(frozen=True)
class RuleSet:
    root: Path
    base_scope: RuleScope
    always_excluded: frozenset = ALWAYS_EXCLUDED
    exclude_paths: frozenset = frozenset()
    ignore_file_names: Tuple[str, ...] = IGNORE_FILE_NAMES

    def root_scope(self) -> RuleScope:
        return self.base_scope

    def enter(self, directory: Path, scope: RuleScope) -> RuleScope:
        """Return *scope* extended with the ignore files found in *directory*.

        Later names in ``ignore_file_names`` outrank earlier ones. Any
        ``OSError`` other than a missing file propagates, so the caller can
        skip a directory whose contents cannot be looked up.
        """
        for name in self.ignore_file_names:
            candidate = directory / name
            try:
                mode = os.stat(candidate).st_mode
            except (FileNotFoundError, NotADirectoryError):
                continue
            if stat.S_ISREG(mode):
                scope = scope.push(load_ignore_file(candidate, directory))
        return scope

    def is_excluded(self, path: Path, is_dir: bool, scope: RuleScope) -> bool:
        if path.name in self.always_excluded:
            return True
        if path in self.exclude_paths:
            return True
        return bool(scope.decide(path, is_dir))


# Parsing
def compile_rule(text: str, source: str, line: int) -> Optional[IgnoreRule]:
    """Compile one ignore-file line; blank lines and comments yield ``None``."""
    text = text.rstrip("\r\n")
    if not text.strip() or text.startswith("#"):
        return None
    try:
        compiled = GITWILDMATCH(text)
    except ValueError as e:
        raise MalformedIgnoreRuleError(f"{source}:{line}: invalid pattern {text!r} ({e})") from e
    if compiled.include is None:
        return None
    return IgnoreRule(
        pattern=text,
        negated=not compiled.include,
        source=source,
        line=line,
        compiled=compiled,
    )


def parse_lines(lines: Iterable[str], source: str) -> Tuple[IgnoreRule, ...]:
    rules: List[IgnoreRule] = []
    for lineno, text in enumerate(lines, start=1):
        try:
            rule = compile_rule(text, source, lineno)
        except MalformedIgnoreRuleError as e:
            warn(f"Skipping malformed ignore rule {e}")
            continue
        if rule is not None:
            rules.append(rule)
    return tuple(rules)


def load_ignore_file(path: Path, scope: Path, source: Optional[str] = None) -> Optional[RuleLayer]:
    """Compile an ignore file into a layer scoped at *scope*.

    Missing files give ``None``; unreadable ones are reported and treated as
    missing.
    """
    source = source or str(path)
    try:
        with path.open("r", encoding="utf-8", errors="replace") as fh:
            lines = fh.read().splitlines()
    except FileNotFoundError:
        return None
    except OSError as e:
        warn(f"Could not read ignore file {path}: {e}")
        return None
    rules = parse_lines(lines, source)
    if not rules:
        return None
    return RuleLayer(scope=scope, rules=rules, source=source)


def load_extra_patterns(config_path: Path) -> List[str]:
    """Read newline-separated patterns from *config_path*."""
    if not config_path.exists():
        raise ConfigFileError(f"Config file '{config_path}' does not exist")
    if not config_path.is_file():
        raise ConfigFileError(f"'{config_path}' is not a file")
    try:
        with config_path.open("r", encoding="utf-8") as fh:
            return fh.read().splitlines()
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigFileError(f"Could not read config file '{config_path}': {e}")


# Global configuration
def _git_excludes_file(gitconfig: Path) -> Optional[str]:
    parser = configparser.ConfigParser(strict=False, interpolation=None, allow_no_value=True)
    try:
        parser.read(gitconfig, encoding="utf-8")
    except (configparser.Error, OSError, UnicodeDecodeError):
        return None
    value = parser.get("core", "excludesfile", fallback=None)
    if not value:
        return None
    return value.strip().strip('"') or None


def global_ignore_path(env=None) -> Path:
    """Locate the user's global git ignore file the way git does."""
    env = os.environ if env is None else env
    home = Path(env["HOME"]) if env.get("HOME") else Path.home()
    excludes = _git_excludes_file(home / ".gitconfig")
    if excludes:
        if excludes.startswith("~"):
            return home / excludes.lstrip("~").lstrip("/")
        return Path(excludes)
    xdg = env.get("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else home / ".config"
    return base / "git" / "ignore"


def load_global_ignore(path: Optional[Path] = None) -> GlobalIgnore:
    """Read the global ignore file; absent or unreadable means empty."""
    path = path or global_ignore_path()
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return GlobalIgnore(path, ())
    return GlobalIgnore(path, tuple(text.splitlines()))


# Resolution
def find_repo_top(root: Path) -> Optional[Path]:
    """Nearest directory at or above *root* holding a ``.git`` entry.

    The climb stops at the first ancestor that cannot be inspected.
    """
    for candidate in (root, *root.parents):
        try:
            found = (candidate / ".git").exists()
        except OSError as e:
            if candidate == root:
                raise RootUnreadableError(f"Could not read root directory '{root}': {e}") from e
            return None
        if found:
            return candidate
    return None


def _ancestor_dirs(root: Path, top: Path) -> List[Path]:
    """Directories from *top* down to the parent of *root*."""
    dirs: List[Path] = []
    current = top
    for part in root.relative_to(top).parts:
        dirs.append(current)
        current = current / part
    return dirs


def validate_root(root: Path) -> Path:
    try:
        root = Path(root).resolve()
    except (OSError, RuntimeError) as e:
        raise InvalidRootError(f"Could not resolve root path '{root}': {e}")
    if not root.exists():
        raise InvalidRootError(f"Root directory '{root}' does not exist")
    if not root.is_dir():
        raise InvalidRootError(f"Root path '{root}' is not a directory")
    try:
        with os.scandir(root):
            pass
    except OSError as e:
        raise RootUnreadableError(f"Could not read root directory '{root}': {e}") from e
    return root


def resolve(
    root: Path,
    *,
    global_ignore: Optional[GlobalIgnore] = None,
    extra_patterns: Iterable[str] = (),
    exclude_paths: Iterable[Path] = (),
) -> RuleSet:
    """Build the RuleSet for *root* before traversal starts."""
    root = validate_root(root)
    if global_ignore is None:
        global_ignore = load_global_ignore()

    scope = RuleScope()
    scope = scope.push(RuleLayer(root, parse_lines(BUILTIN_PATTERNS, "<built-in>"), "<built-in>"))

    global_source = str(global_ignore.path) if global_ignore.path else "<global>"
    global_rules = parse_lines(global_ignore.lines, global_source)
    if global_rules:
        scope = scope.push(RuleLayer(root, global_rules, global_source))

    extra_rules = parse_lines(extra_patterns, "<config>")
    if extra_rules:
        scope = scope.push(RuleLayer(root, extra_rules, "<config>"))

    top = find_repo_top(root)
    if top is not None:
        repo_exclude = top / ".git" / "info" / "exclude"
        if repo_exclude.is_file():
            scope = scope.push(load_ignore_file(repo_exclude, top))
        for directory in _ancestor_dirs(root, top):
            for name in IGNORE_FILE_NAMES:
                scope = scope.push(load_ignore_file(directory / name, directory))

    excluded = frozenset(Path(p).resolve() for p in exclude_paths)
    return RuleSet(root=root, base_scope=scope, exclude_paths=excluded)
