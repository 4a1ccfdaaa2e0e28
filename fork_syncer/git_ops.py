"""
Git operations for the syncer.

Provides a wrapper around git operations using GitPython, handling clones,
checkouts, archiving a tree into another working copy, removals, commits
and pushes.
"""

import subprocess
import tempfile
from pathlib import Path

from git import Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from .config import RepositoryReference
from .errors import (
    ArchiveError,
    CheckoutError,
    CloneError,
    CommitError,
    NotARepositoryError,
    PruneError,
    PushError,
)
from .executables import require


# Never let git block on a credentials prompt
NON_INTERACTIVE_ENV = {"GIT_TERMINAL_PROMPT": "0"}


def clone_repo(
    reference: RepositoryReference, path: Path, use_https: bool = False
) -> "GitRepository":
    """
    Clone a repository into a local path.

    Args:
        reference: Repository to clone
        path: Local path to clone into (must not exist, or be empty)
        use_https: Clone over https instead of ssh

    Returns:
        GitRepository wrapper for the cloned repo
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    url = reference.url(use_https)
    try:
        Repo.clone_from(url, path, env=NON_INTERACTIVE_ENV)
    except GitCommandError as e:
        raise CloneError(f"Failed to clone {url}: {e}") from e
    return GitRepository(path)


class GitRepository:
    """Wrapper around a git working copy for sync operations."""

    def __init__(self, path: Path):
        """Initialize repository wrapper."""
        self.path = Path(path).resolve()
        try:
            self.repo = Repo(self.path)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise NotARepositoryError(f"Not a valid git repository: {self.path}") from e

    def get_current_branch(self) -> str | None:
        """Get the current branch name, or None on a detached HEAD."""
        try:
            return self.repo.active_branch.name
        except TypeError:
            return None

    def get_current_commit(self) -> str:
        """Get the current HEAD commit hash."""
        return self.repo.head.commit.hexsha

    def checkout(self, tree: str) -> None:
        """Switch the working copy to the given tree."""
        try:
            self.repo.git.checkout(tree)
        except GitCommandError as e:
            raise CheckoutError(f"Failed to checkout {tree} in {self.path}: {e}") from e

    def resolve_tree(self, tree: str, remote: str = "origin") -> str:
        """
        Name a tree so git can find it in this clone.

        Branches other than the default one only exist as remote-tracking
        refs after a clone, so fall back to <remote>/<tree>.
        """
        for candidate in (tree, f"{remote}/{tree}"):
            try:
                self.repo.git.rev_parse("--verify", "--quiet", f"{candidate}^{{tree}}")
            except GitCommandError:
                continue
            return candidate
        return tree

    def archive_to(self, tree: str, dest: Path) -> None:
        """
        Write the files of a tree (branch, commit, etc) into dest.

        Existing files with the same names are overwritten. No git metadata
        is written.
        """
        tar = require("tar")
        treeish = self.resolve_tree(tree)
        with tempfile.TemporaryFile() as archive:
            try:
                self.repo.archive(archive, treeish=treeish, format="tar")
            except GitCommandError as e:
                raise ArchiveError(f"Failed to archive {tree} from {self.path}: {e}") from e

            archive.seek(0)
            result = subprocess.run(
                [tar, "-C", str(dest), "-xf", "-"],
                stdin=archive,
                capture_output=True,
                text=True,
            )
        if result.returncode != 0:
            raise ArchiveError(
                f"Failed to extract {tree} from {self.path} into {dest}:\n{result.stderr}"
            )

    def remove_path(self, rel_path: str) -> None:
        """Remove a tracked file or directory and stage the deletion."""
        try:
            self.repo.git.rm("-r", "-q", "--", rel_path)
        except GitCommandError as e:
            raise PruneError(f"Failed to remove {rel_path} from {self.path}: {e}") from e

    def get_untracked_files(self) -> list[str]:
        """Get files in the working copy that git doesn't track."""
        return list(self.repo.untracked_files)

    def stage_files(self, file_paths: list[str]) -> None:
        """Stage multiple files for commit."""
        if file_paths:
            self.repo.git.add("--", *file_paths)

    def stage_untracked(self) -> list[str]:
        """Stage files that weren't tracked before, returning their names."""
        untracked = self.get_untracked_files()
        try:
            self.stage_files(untracked)
        except GitCommandError as e:
            raise CommitError(f"Failed to git-add new files to {self.path}: {e}") from e
        return untracked

    def commit_all(self, message: str, email: str | None = None) -> str | None:
        """
        Commit all changes to tracked files.

        Returns the new commit hash, or None when there was nothing to commit.
        """
        env = {}
        if email:
            env = {"GIT_AUTHOR_EMAIL": email, "GIT_COMMITTER_EMAIL": email}

        try:
            with self.repo.git.custom_environment(**env):
                self.repo.git.commit("-a", "-m", message)
        except GitCommandError as e:
            if "nothing to commit" in str(e).lower():
                return None
            raise CommitError(f"Failed to commit changes to {self.path}: {e}") from e

        return self.repo.head.commit.hexsha

    def push(self, remote: str, branch: str) -> None:
        """Push a branch to a remote."""
        try:
            with self.repo.git.custom_environment(**NON_INTERACTIVE_ENV):
                self.repo.git.push(remote, branch)
        except GitCommandError as e:
            raise PushError(f"Failed to push {branch} to {remote}: {e}") from e
