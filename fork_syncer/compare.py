"""
Comparison and pruning between two directory trees.

Pruning removes destination entries that don't exist in a reference tree,
staging the removals with git. Comparison shells out to `diff` to check
two trees are identical.
"""

import os
import subprocess
from pathlib import Path

from .errors import TypeMismatchError
from .executables import require
from .git_ops import GitRepository
from .replace import is_excluded


DEFAULT_EXCLUDE = (".git",)


def prune(
    dest: Path,
    reference: Path,
    exclude: list[str] | tuple[str, ...] = DEFAULT_EXCLUDE,
) -> list[str]:
    """
    Remove entries from the git working copy at dest that aren't in reference.

    Removals go through `git rm`, so they are staged for commit. Exclude
    paths must be full relative paths from the repo root, not fragments.

    Returns the relative paths that were removed.

    Raises:
        TypeMismatchError: a path is a file in one tree and a directory in
            the other. No further removals are made.
        PruneError: git failed to remove a path.
    """
    dest = Path(dest)
    reference = Path(reference)
    repo = GitRepository(dest)
    pruned: list[str] = []

    for dirpath, dirnames, filenames in os.walk(dest):
        rel_dir = Path(dirpath).relative_to(dest)
        keep_dirs = []

        for name in sorted(dirnames + filenames):
            rel = (rel_dir / name).as_posix()
            if is_excluded(rel, exclude):
                continue

            full = Path(dirpath) / name
            other = reference / rel
            is_dir = name in dirnames

            if not os.path.lexists(other):
                repo.remove_path(rel)
                pruned.append(rel)
                continue

            if other.is_dir() != is_dir:
                raise TypeMismatchError(str(full), str(other), is_dir)

            if is_dir:
                keep_dirs.append(name)

        dirnames[:] = keep_dirs

    return pruned


def compare_trees_identical(
    a: Path,
    b: Path,
    exclude: list[str] | tuple[str, ...] = DEFAULT_EXCLUDE,
) -> tuple[bool, str]:
    """
    Recursively compare two directories.

    Returns (True, "") when their contents are identical outside the
    excluded paths, otherwise (False, <diff output>).
    """
    diff = require("diff")
    args = [diff, "--recursive", "--brief"]
    args += [f"--exclude={x}" for x in exclude]
    args += [str(a), str(b)]

    result = subprocess.run(args, capture_output=True, text=True)
    if result.returncode == 0:
        return True, ""
    return False, (result.stdout + result.stderr).strip()
