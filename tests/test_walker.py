"""Directory walker tests: ordering, pruning, scoping and unreadable directories."""

from __future__ import annotations

import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from projsnap.errors import RootUnreadableError
from projsnap.rules import GlobalIgnore, RuleSet, resolve
from projsnap.walker import walk


def _write(root: Path, rel: str, text: str = "x\n") -> Path:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def _walk_rels(root: Path, **kwargs) -> list:
    ruleset = resolve(root, global_ignore=GlobalIgnore.empty())
    return [entry.rel for entry in walk(root, ruleset, **kwargs)]


class WalkOrderTests(unittest.TestCase):
    def test_entries_come_back_in_lexical_depth_first_order(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            for rel in ("b.txt", "a/z.txt", "a/b/c.txt", "a.txt", "c/d.txt"):
                _write(root, rel)

            self.assertEqual(
                _walk_rels(root),
                ["a/b/c.txt", "a/z.txt", "a.txt", "b.txt", "c/d.txt"],
            )

    def test_order_does_not_depend_on_worker_count(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            for i in range(6):
                for j in range(4):
                    _write(root, f"d{i}/sub{j}/f{i}{j}.txt")

            self.assertEqual(_walk_rels(root, max_workers=1), _walk_rels(root, max_workers=8))

    def test_file_entries_carry_kind_and_depth(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            _write(root, "top.txt")
            _write(root, "pkg/inner/deep.txt")
            ruleset = resolve(root, global_ignore=GlobalIgnore.empty())
            entries = {e.rel: e for e in walk(root, ruleset)}

            self.assertEqual(entries["top.txt"].depth, 1)
            self.assertEqual(entries["pkg/inner/deep.txt"].depth, 3)
            self.assertEqual(entries["top.txt"].kind, "file")
            self.assertEqual(entries["top.txt"].path, root / "top.txt")


class WalkFilteringTests(unittest.TestCase):
    def test_local_rules_do_not_leak_into_sibling_directories(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            _write(root, "A/.gitignore", "*.txt\n")
            _write(root, "A/note.txt")
            _write(root, "A/keep.md")
            _write(root, "B/note.txt")

            self.assertEqual(_walk_rels(root), ["A/keep.md", "B/note.txt"])

    def test_deeper_negation_reincludes_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            _write(root, ".gitignore", "*.log\n")
            _write(root, "app.log")
            _write(root, "logs/.gitignore", "!important.log\n")
            _write(root, "logs/important.log")
            _write(root, "logs/noise.log")

            self.assertEqual(_walk_rels(root), ["logs/important.log"])

    def test_excluded_directories_are_pruned_without_listing(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            _write(root, "node_modules/pkg/index.js")
            _write(root, "src/main.py")
            listed = []
            real_scandir = os.scandir

            def recording_scandir(path):
                listed.append(Path(path))
                return real_scandir(path)

            with mock.patch("projsnap.walker.os.scandir", side_effect=recording_scandir):
                rels = _walk_rels(root)

            self.assertEqual(rels, ["src/main.py"])
            self.assertNotIn(root / "node_modules", listed)

    @unittest.skipUnless(hasattr(os, "symlink"), "symlinks unsupported")
    def test_symbolic_links_are_not_followed(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            _write(root, "real/file.txt")
            try:
                os.symlink(root / "real", root / "loop")
                os.symlink(root / "real" / "file.txt", root / "alias.txt")
            except OSError:
                self.skipTest("cannot create symlinks")

            self.assertEqual(_walk_rels(root), ["real/file.txt"])


class WalkErrorTests(unittest.TestCase):
    def test_unreadable_subdirectory_is_skipped_with_warning(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            _write(root, "locked/secret.txt")
            _write(root, "open/visible.txt")
            real_scandir = os.scandir

            def guarded_scandir(path):
                if Path(path) == root / "locked":
                    raise PermissionError(13, "Permission denied", str(path))
                return real_scandir(path)

            with mock.patch("projsnap.walker.os.scandir", side_effect=guarded_scandir), mock.patch(
                "projsnap.walker.warn"
            ) as warn:
                rels = _walk_rels(root)

            self.assertEqual(rels, ["open/visible.txt"])
            warn.assert_called_once()
            self.assertIn("locked", warn.call_args.args[0])

    def test_listable_but_unenterable_directory_is_skipped(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            _write(root, "open/v.txt")
            _write(root, "half/s.txt")
            half = root / "half"
            os.chmod(half, 0o444)
            try:
                try:
                    (half / "s.txt").stat()
                except PermissionError:
                    pass
                else:
                    self.skipTest("permission bits are not enforced for this user")
                with mock.patch("projsnap.walker.warn") as warn:
                    rels = _walk_rels(root)
            finally:
                os.chmod(half, 0o755)

            self.assertEqual(rels, ["open/v.txt"])
            warn.assert_called_once()
            self.assertIn("half", warn.call_args.args[0])

    def test_ignore_file_lookup_failure_skips_only_that_directory(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            _write(root, "open/v.txt")
            _write(root, "half/s.txt")
            ruleset = resolve(root, global_ignore=GlobalIgnore.empty())
            real_enter = RuleSet.enter

            def guarded_enter(self, directory, scope):
                if directory == root / "half":
                    raise PermissionError(13, "Permission denied", str(directory / ".gitignore"))
                return real_enter(self, directory, scope)

            with mock.patch.object(RuleSet, "enter", autospec=True, side_effect=guarded_enter), mock.patch(
                "projsnap.walker.warn"
            ) as warn:
                rels = [entry.rel for entry in walk(root, ruleset)]

            self.assertEqual(rels, ["open/v.txt"])
            warn.assert_called_once()

    def test_unreadable_root_is_fatal(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            _write(root, "a.txt")
            ruleset = resolve(root, global_ignore=GlobalIgnore.empty())

            with mock.patch(
                "projsnap.walker.os.scandir",
                side_effect=PermissionError(13, "Permission denied", str(root)),
            ):
                with self.assertRaises(RootUnreadableError):
                    walk(root, ruleset)


if __name__ == "__main__":
    unittest.main()
