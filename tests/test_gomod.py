"""Tests for go.mod editing."""

import subprocess
from pathlib import Path

import pytest

from fork_syncer import gomod
from fork_syncer.errors import DependencyResolutionError, ManifestEditError, MissingExecutable
from fork_syncer.gomod import GoModuleEditor


class FakeGo:
    """Records go invocations and returns a canned exit code."""

    def __init__(self, returncode: int = 0, output: str = ""):
        self.calls: list[dict] = []
        self.returncode = returncode
        self.output = output

    def __call__(self, args, cwd=None, env=None, capture_output=False, text=False):
        self.calls.append({"args": args, "cwd": cwd, "env": env})
        return subprocess.CompletedProcess(args, self.returncode, self.output, "")


@pytest.fixture
def fake_go(monkeypatch):
    fake = FakeGo()
    monkeypatch.setattr(gomod, "require", lambda name: f"/usr/local/go/bin/{name}")
    monkeypatch.setattr(gomod.subprocess, "run", fake)
    return fake


class TestGoModuleEditor:
    """Tests for GoModuleEditor."""

    def test_set_module_identity(self, fake_go, temp_dir: Path):
        editor = GoModuleEditor(temp_dir)
        editor.set_module_identity(temp_dir / "go.mod", "github.com/org/pub")

        assert fake_go.calls[0]["args"] == [
            "/usr/local/go/bin/go",
            "mod",
            "edit",
            "-module=github.com/org/pub",
            str(temp_dir / "go.mod"),
        ]

    def test_drop_dependency(self, fake_go, temp_dir: Path):
        editor = GoModuleEditor(temp_dir)
        editor.drop_dependency(temp_dir / "go.mod", "github.com/org/lib-priv")

        assert fake_go.calls[0]["args"][1:4] == [
            "mod",
            "edit",
            "-droprequire=github.com/org/lib-priv",
        ]

    def test_add_dependency(self, fake_go, temp_dir: Path):
        editor = GoModuleEditor(temp_dir)
        editor.add_dependency(temp_dir / "work", "github.com/org/lib-pub")

        call = fake_go.calls[0]
        assert call["args"][1:] == ["get", "-v", "github.com/org/lib-pub"]
        assert call["cwd"] == temp_dir / "work"

    def test_tidy_dependencies(self, fake_go, temp_dir: Path):
        editor = GoModuleEditor(temp_dir)
        editor.tidy_dependencies(temp_dir)

        assert fake_go.calls[0]["args"][1:] == ["mod", "tidy", "-v"]

    def test_gopath_is_staging(self, fake_go, temp_dir: Path):
        """Test go runs with GOPATH pointing at the staging area."""
        editor = GoModuleEditor(temp_dir / "staging")
        editor.tidy_dependencies(temp_dir)

        env = fake_go.calls[0]["env"]
        assert env["GOPATH"] == str(temp_dir / "staging")
        assert "PATH" in env

    def test_edit_failure(self, fake_go, temp_dir: Path):
        fake_go.returncode = 1
        fake_go.output = "go: errors parsing go.mod"
        editor = GoModuleEditor(temp_dir)

        with pytest.raises(ManifestEditError, match="errors parsing go.mod"):
            editor.set_module_identity(temp_dir / "go.mod", "github.com/org/pub")

    def test_resolution_failure(self, fake_go, temp_dir: Path):
        fake_go.returncode = 1
        editor = GoModuleEditor(temp_dir)

        with pytest.raises(DependencyResolutionError):
            editor.add_dependency(temp_dir, "github.com/org/missing")

    def test_missing_go(self, monkeypatch, temp_dir: Path):
        def missing(name):
            raise MissingExecutable([name])

        monkeypatch.setattr(gomod, "require", missing)
        editor = GoModuleEditor(temp_dir)

        with pytest.raises(MissingExecutable, match="go"):
            editor.tidy_dependencies(temp_dir)
