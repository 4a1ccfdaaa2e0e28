"""Pytest configuration and fixtures for fork_syncer tests."""

import tempfile
from pathlib import Path

import pytest
from git import Repo

from fork_syncer.config import PairConfig


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(autouse=True)
def git_env(temp_dir: Path, monkeypatch):
    """
    Isolate git from the user's config.

    Clone URLs for github.com are redirected to bare repositories under
    <temp_dir>/remotes, so git@github.com:org/repo.git resolves to
    <temp_dir>/remotes/org/repo.git.
    """
    remotes = temp_dir / "remotes"
    remotes.mkdir()
    gitconfig = temp_dir / "gitconfig"
    gitconfig.write_text(
        "[user]\n"
        "\tname = Test User\n"
        "\temail = test@example.com\n"
        "[init]\n"
        "\tdefaultBranch = main\n"
        "[commit]\n"
        "\tgpgsign = false\n"
        "[protocol \"file\"]\n"
        "\tallow = always\n"
        f"[url \"{remotes.as_posix()}/\"]\n"
        "\tinsteadOf = git@github.com:\n"
        "\tinsteadOf = https://github.com/\n"
    )
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(gitconfig))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    yield remotes


@pytest.fixture
def staging_root(temp_dir: Path, monkeypatch):
    """Make staging areas land inside the test's temp dir."""
    root = temp_dir / "tmp"
    root.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(root))
    return root


class Remotes:
    """Creates and inspects bare repositories standing in for github.com."""

    def __init__(self, root: Path, work_root: Path):
        self.root = root
        self.work_root = work_root

    def bare_path(self, repo_path: str) -> Path:
        return self.root / f"{repo_path}.git"

    def create(self, repo_path: str, files: dict[str, str], branch: str = "main") -> Path:
        """Create a remote whose branch holds the given files."""
        bare = self.bare_path(repo_path)
        bare.parent.mkdir(parents=True, exist_ok=True)
        Repo.init(bare, bare=True)
        self.commit(repo_path, files, branch=branch, message="Initial commit")
        return bare

    def commit(
        self,
        repo_path: str,
        files: dict[str, str],
        branch: str = "main",
        message: str = "Update",
    ) -> None:
        """Replace the contents of a remote branch with files."""
        work_dir = self.work_root / repo_path.replace("/", "_") / branch
        if work_dir.exists():
            work = Repo(work_dir)
            for tracked in work.git.ls_files().splitlines():
                (work_dir / tracked).unlink()
        else:
            work_dir.mkdir(parents=True)
            work = Repo.init(work_dir)

        for name, content in files.items():
            path = work_dir / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)

        work.git.add("-A")
        work.git.commit("-m", message)
        work.git.push(str(self.bare_path(repo_path)), f"HEAD:refs/heads/{branch}")

    def read(self, repo_path: str, name: str, branch: str = "main") -> str:
        bare = Repo(self.bare_path(repo_path))
        return bare.git.show(f"{branch}:{name}")

    def files(self, repo_path: str, branch: str = "main") -> list[str]:
        bare = Repo(self.bare_path(repo_path))
        return sorted(bare.git.ls_tree("-r", "--name-only", branch).splitlines())

    def messages(self, repo_path: str, branch: str = "main") -> list[str]:
        """Commit subjects on a branch, newest first."""
        bare = Repo(self.bare_path(repo_path))
        return bare.git.log("--format=%s", branch).splitlines()


@pytest.fixture
def remotes(git_env: Path, temp_dir: Path):
    """Factory for bare remote repositories."""
    work_root = temp_dir / "work"
    work_root.mkdir()
    return Remotes(git_env, work_root)


@pytest.fixture
def make_pair():
    """Build a PairConfig for github.com repos."""

    def _make(name: str, source: str, dest: str, **kwargs) -> PairConfig:
        kwargs.setdefault("source_ref", "main")
        kwargs.setdefault("dest_ref", "main")
        return PairConfig(
            name=name,
            source=f"github.com/{source}",
            dest=f"github.com/{dest}",
            **kwargs,
        )

    return _make


@pytest.fixture
def work_repo(temp_dir: Path):
    """Create a git working copy with a committed tree."""

    def _make(files: dict[str, str], name: str = "repo") -> Path:
        repo_path = temp_dir / name
        repo_path.mkdir()
        repo = Repo.init(repo_path)
        for rel, content in files.items():
            path = repo_path / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        repo.git.add("-A")
        repo.git.commit("-m", "Initial commit")
        return repo_path

    return _make
