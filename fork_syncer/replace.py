"""
Recursive text replacement over a directory tree.

Replacement is an exact byte-sequence substitution, so callers pass fully
qualified strings (full module paths rather than bare repo names).
"""

import os
from pathlib import Path, PurePosixPath

from .errors import RewriteError


def is_under(path: str, parent: str) -> bool:
    """
    Check whether a relative path equals or is inside another relative path.

    Comparison is by path segment, so "src/foo" is under "src" but
    "srcfoo" is not.
    """
    path_parts = PurePosixPath(path).parts
    parent_parts = PurePosixPath(parent).parts
    if not parent_parts or len(parent_parts) > len(path_parts):
        return False
    return path_parts[: len(parent_parts)] == parent_parts


def is_excluded(rel_path: str, exclude: list[str] | tuple[str, ...]) -> bool:
    return any(is_under(rel_path, x) for x in exclude)


def replace_in_file(path: Path, old: bytes, new: bytes) -> bool:
    """Replace old with new in a file. Returns True if the file was rewritten."""
    content = path.read_bytes()
    replaced = content.replace(old, new)
    if replaced == content:
        return False

    mode = path.stat().st_mode
    path.write_bytes(replaced)
    os.chmod(path, mode)
    return True


def replace_all(
    root: Path,
    old: str,
    new: str,
    exclude: list[str] | tuple[str, ...] = (),
) -> int:
    """
    Replace every occurrence of old with new in all files under root.

    Files whose path relative to root is equal to or under one of the
    exclude paths are left alone. Returns the number of files modified.
    The first file that can't be read or written aborts the walk.
    """
    if not old:
        raise RewriteError("Can't replace an empty string")

    root = Path(root)
    old_bytes = old.encode()
    new_bytes = new.encode()
    count = 0

    for dirpath, dirnames, filenames in os.walk(root):
        rel_dir = Path(dirpath).relative_to(root)
        # Don't descend into excluded directories
        dirnames[:] = sorted(
            d for d in dirnames if not is_excluded((rel_dir / d).as_posix(), exclude)
        )

        for name in sorted(filenames):
            file_path = Path(dirpath) / name
            if file_path.is_symlink() or not file_path.is_file():
                continue
            if is_excluded((rel_dir / name).as_posix(), exclude):
                continue

            try:
                if replace_in_file(file_path, old_bytes, new_bytes):
                    count += 1
            except OSError as e:
                raise RewriteError(
                    f"Failed to replace {old} with {new} in {file_path}: {e}"
                ) from e

    return count
