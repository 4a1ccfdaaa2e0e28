"""
Go module manifest (go.mod) editing.

All operations shell out to the `go` tool. Commands run with GOPATH pointed
at the staging area, so modules fetched while resolving dependencies land in
a throwaway cache instead of the user's.
"""

import os
import subprocess
from pathlib import Path

from .errors import DependencyResolutionError, ManifestEditError
from .executables import require


class GoModuleEditor:
    """Edits go.mod files for a synced repository."""

    def __init__(self, gopath: Path | None = None):
        self.env = dict(os.environ)
        if gopath is not None:
            self.env["GOPATH"] = str(gopath)

    def _run(
        self,
        args: list[str],
        cwd: Path | None = None,
        error_cls: type[ManifestEditError] = ManifestEditError,
    ) -> str:
        go = require("go")
        result = subprocess.run(
            [go, *args],
            cwd=cwd,
            env=self.env,
            capture_output=True,
            text=True,
        )
        output = (result.stdout + result.stderr).strip()
        if result.returncode != 0:
            raise error_cls(f"go {' '.join(args)} failed:\n{output}")
        return output

    def set_module_identity(self, manifest: Path, identity: str) -> None:
        """Set the module name declared in a go.mod file."""
        self._run(["mod", "edit", f"-module={identity}", str(manifest)])

    def drop_dependency(self, manifest: Path, identity: str) -> None:
        """Remove a module requirement. Dropping an absent module is a no-op."""
        self._run(["mod", "edit", f"-droprequire={identity}", str(manifest)])

    def add_dependency(self, work_dir: Path, identity: str) -> None:
        """Require the latest version of a module."""
        self._run(
            ["get", "-v", identity],
            cwd=work_dir,
            error_cls=DependencyResolutionError,
        )

    def tidy_dependencies(self, work_dir: Path) -> None:
        """Remove stale requirements and reconcile go.sum."""
        self._run(["mod", "tidy", "-v"], cwd=work_dir)
