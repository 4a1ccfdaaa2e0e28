"""
Lookup of the external commands fork_syncer drives.

Commands are searched on PATH, then in the go binary directories, so that a
`go` installed under ~/go/bin is found without changing PATH.
"""

import os
import shutil
from pathlib import Path

from .errors import MissingExecutable


# Checked at startup, before any pair is synced
REQUIRED_COMMANDS = ["git", "tar", "diff", "go"]


def go_bin_dir() -> Path | None:
    """Get the directory `go install` puts binaries in."""
    if "GOBIN" in os.environ:
        return Path(os.environ["GOBIN"])
    if "GOPATH" in os.environ:
        return Path(os.environ["GOPATH"]) / "bin"
    if "HOME" in os.environ:
        return Path(os.environ["HOME"]) / "go" / "bin"
    return None


def which(name: str) -> str | None:
    """Find the full path of a command, or None if it isn't available."""
    found = shutil.which(name)
    if found:
        return found

    extra_dirs = []
    go_bin = go_bin_dir()
    if go_bin is not None:
        extra_dirs.append(go_bin)
    if "HOME" in os.environ:
        home_go_bin = Path(os.environ["HOME"]) / "go" / "bin"
        if home_go_bin not in extra_dirs:
            extra_dirs.append(home_go_bin)

    return shutil.which(name, path=os.pathsep.join(str(d) for d in extra_dirs))


def require(name: str) -> str:
    """Find a command or raise MissingExecutable."""
    found = which(name)
    if found is None:
        raise MissingExecutable([name])
    return found


def find_missing(names: list[str] | None = None) -> list[str]:
    """Get the commands from names (default: REQUIRED_COMMANDS) that can't be found."""
    return [n for n in (names or REQUIRED_COMMANDS) if which(n) is None]


def check_required(names: list[str] | None = None) -> None:
    """Raise MissingExecutable listing every required command that is missing."""
    missing = find_missing(names)
    if missing:
        raise MissingExecutable(missing)
