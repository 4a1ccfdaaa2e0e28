"""
Main syncer logic for mirroring repository pairs.

A pair sync clones the source and destination repos into a staging area,
replaces the destination tree with the source tree, rewrites references to
the source repos so they point at the destination repos, updates the module
manifest, then commits and pushes. Dependencies are synced first, and a pair
shared by several dependents only runs once per SyncRun.
"""

import os
import shutil
import sys
import tempfile
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from git.exc import GitCommandError
from rich.console import Console
from rich.markup import escape

from .compare import compare_trees_identical, prune
from .config import PairConfig, SyncConfig
from .errors import (
    ForkSyncerError,
    PairSyncFailed,
    StagingError,
    UserCancelled,
    VerifyMismatchError,
)
from .git_ops import clone_repo
from .gomod import GoModuleEditor
from .prompt import ask_user
from .replace import replace_all

console = Console()

# Mode for directories created during a sync. `go get` needs to create a pkg
# dir inside the staging area.
STAGING_DIR_MODE = 0o755


def default_commit_message() -> str:
    return f"{Path(sys.argv[0]).name} - Auto code sync"


class SyncStep(str, Enum):
    """Steps of a pair sync, in order."""

    DEDUP_CHECK = "dedup-check"
    DEPENDENCY_SYNC = "dependency-sync"
    STAGE_CREATE = "stage-create"
    SOURCE_CLONE = "source-clone"
    SOURCE_CHECKOUT = "source-checkout"
    DEST_CLONE = "dest-clone"
    DEST_CHECKOUT = "dest-checkout"
    ARCHIVE = "archive-source-into-dest"
    PRUNE = "prune-dest"
    VERIFY = "verify-identical"
    REWRITE_TREE_REFS = "rewrite-tree-refs"
    REWRITE_REPO_PATHS = "rewrite-repo-paths"
    REWRITE_DEPENDENCY_PATHS = "rewrite-dependency-paths"
    TEXT_REWRITES = "apply-text-rewrites"
    MANIFEST_IDENTITY = "manifest-identity-update"
    MANIFEST_DEPENDENCIES = "manifest-dependency-update"
    CONFIRM_COMMIT = "confirm-commit"
    COMMIT = "stage-and-commit"
    CONFIRM_PUSH = "confirm-push"
    PUSH = "push"
    DONE = "done"


@dataclass
class SyncOptions:
    """Options for a sync run."""

    keep_staging: bool = False
    skip_confirm: bool = False
    skip_deps: bool = False
    commit_message: str = field(default_factory=default_commit_message)
    committer_email: str | None = None


@dataclass
class SyncRun:
    """State for one invocation. Pairs in `visited` are not attempted again."""

    options: SyncOptions = field(default_factory=SyncOptions)
    visited: set[str] = field(default_factory=set)
    # Identities of pairs that went through the full sequence, in order
    synced: list[str] = field(default_factory=list)
    confirm: Callable[[str], bool] = ask_user
    editor_factory: Callable[[Path], GoModuleEditor] = GoModuleEditor


@dataclass
class SyncResult:
    """Result of a pair sync."""

    pair: str
    skipped: bool = False
    staging: Path | None = None
    source_commit: str | None = None
    pruned: list[str] = field(default_factory=list)
    files_rewritten: int = 0
    commit: str | None = None  # None when there was nothing to commit
    added_files: list[str] = field(default_factory=list)


def remove_staging(path: Path) -> None:
    """Delete a staging area, including the read-only go module cache."""
    for dirpath, dirnames, _ in os.walk(path):
        for name in dirnames:
            full = os.path.join(dirpath, name)
            if not os.path.islink(full):
                os.chmod(full, STAGING_DIR_MODE)
    shutil.rmtree(path)


class PairSyncer:
    """Syncs repository pairs declared in a SyncConfig."""

    def __init__(self, config: SyncConfig, run: SyncRun | None = None):
        self.config = config
        self.run = run or SyncRun()

    @contextmanager
    def _step(self, pair: PairConfig, step: SyncStep) -> Iterator[None]:
        """Tag any failure inside the block with the pair and step."""
        try:
            yield
        except PairSyncFailed:
            raise
        except (ForkSyncerError, GitCommandError, OSError) as e:
            raise PairSyncFailed(pair.identity, step.value, e) from e

    def _confirm(self, pair: PairConfig, step: SyncStep, message: str) -> None:
        if self.run.options.skip_confirm:
            return
        with self._step(pair, step):
            console.print(message)
            if not self.run.confirm("Ok to continue?"):
                raise UserCancelled("User aborted")

    def sync(self, pair: PairConfig | str) -> SyncResult:
        """
        Sync a pair, after its dependencies.

        Args:
            pair: The pair, or its name in the config

        Returns:
            SyncResult describing what was done

        Raises:
            PairSyncFailed: naming the pair and the step that failed. A failed
                dependency is wrapped in a PairSyncFailed for this pair.
        """
        if isinstance(pair, str):
            pair = self.config.get_pair(pair)

        # Don't process the same pair more than once in the same run
        if pair.identity in self.run.visited:
            console.print(f"[dim]Skipping {pair}, already attempted[/dim]")
            return SyncResult(pair=pair.identity, skipped=True)

        if not self.run.options.skip_deps:
            for dep in self.config.dependencies_of(pair):
                console.print(f"Processing dependency [cyan]{dep}[/cyan]")
                try:
                    self.sync(dep)
                except ForkSyncerError as e:
                    raise PairSyncFailed(
                        pair.identity, SyncStep.DEPENDENCY_SYNC.value, e
                    ) from e

        self.run.visited.add(pair.identity)

        with self._step(pair, SyncStep.STAGE_CREATE):
            staging = self._create_staging()
        console.print(f"Created staging area at {staging}")

        try:
            result = self._sync_in_staging(pair, staging)
        except Exception:
            # Leave the staging area behind for inspection
            console.print(f"[yellow]Leaving staging area at {staging}[/yellow]")
            raise

        self.run.synced.append(pair.identity)
        if not self.run.options.keep_staging:
            remove_staging(staging)
            result.staging = None
        return result

    def _create_staging(self) -> Path:
        try:
            staging = Path(tempfile.mkdtemp(prefix=self.config.staging_prefix))
            os.chmod(staging, STAGING_DIR_MODE)
            (staging / "src").mkdir(mode=STAGING_DIR_MODE)
        except OSError as e:
            raise StagingError(f"Failed to create staging area: {e}") from e
        return staging

    def _sync_in_staging(self, pair: PairConfig, staging: Path) -> SyncResult:
        options = self.run.options
        result = SyncResult(pair=pair.identity, staging=staging)
        dependencies = self.config.dependencies_of(pair)
        dest_name = escape(pair.dest.path)

        # Clones live under <staging>/src/<host>/<repo path>, which is where
        # go looks for modules when GOPATH is the staging area
        src_root = staging / "src"
        src_path = src_root / pair.source.path
        dst_path = src_root / pair.dest.path

        with self._step(pair, SyncStep.SOURCE_CLONE):
            source = clone_repo(pair.source, src_path, self.config.use_https)
        console.print(f"Cloned source {pair.source} to {src_path}")

        # Prune and verify compare against the source working copy, so it has
        # to hold the same tree that gets archived
        with self._step(pair, SyncStep.SOURCE_CHECKOUT):
            source.checkout(source.resolve_tree(pair.source_ref))
            result.source_commit = source.get_current_commit()
        console.print(
            f"Checked out source tree {escape(pair.source_ref)} at {result.source_commit[:8]}"
        )

        with self._step(pair, SyncStep.DEST_CLONE):
            dest = clone_repo(pair.dest, dst_path, self.config.use_https)
        console.print(f"Cloned dest {pair.dest} to {dst_path}")

        # Switch to the dest tree before writing anything, so the commit lands
        # on the right branch regardless of the remote's default branch
        with self._step(pair, SyncStep.DEST_CHECKOUT):
            dest.checkout(pair.dest_ref)
        console.print(f"Checked out to {escape(dest.get_current_branch() or pair.dest_ref)}")

        with self._step(pair, SyncStep.ARCHIVE):
            source.archive_to(pair.source_ref, dest.path)
        console.print(
            f"Archived files from {src_path} tree {escape(pair.source_ref)} to {dst_path}"
        )

        with self._step(pair, SyncStep.PRUNE):
            result.pruned = prune(dest.path, source.path, self.config.compare_exclude)
        for path in result.pruned:
            console.print(f"{dest_name}\tpruned {escape(path)}")

        with self._step(pair, SyncStep.VERIFY):
            same, detail = compare_trees_identical(
                dest.path, source.path, self.config.compare_exclude
            )
            if not same:
                raise VerifyMismatchError(f"{src_path} != {dst_path}\n{detail}")
        console.print(
            f"Staged {dest_name} identical to {escape(pair.source.path)} "
            f"tree {escape(pair.source_ref)}"
        )

        rewrites: list[tuple[SyncStep, str, str]] = [
            (
                SyncStep.REWRITE_TREE_REFS,
                f"{pair.source.path}/{pair.source_ref}",
                f"{pair.dest.path}/{pair.dest_ref}",
            ),
            (SyncStep.REWRITE_REPO_PATHS, pair.source.repo_path, pair.dest.repo_path),
        ]
        rewrites += [
            (SyncStep.REWRITE_DEPENDENCY_PATHS, dep.source.repo_path, dep.dest.repo_path)
            for dep in dependencies
        ]
        rewrites += [(SyncStep.TEXT_REWRITES, old, new) for old, new in pair.text_rewrites]

        for step, old, new in rewrites:
            with self._step(pair, step):
                count = replace_all(dest.path, old, new, self.config.rewrite_exclude)
            result.files_rewritten += count
            console.print(
                f"{dest_name}\tmade {count} replacements for {escape(old)} => {escape(new)}"
            )

        manifest = dest.path / self.config.manifest_file
        if manifest.is_file():
            editor = self.run.editor_factory(staging)

            with self._step(pair, SyncStep.MANIFEST_IDENTITY):
                editor.set_module_identity(manifest, pair.dest.path)
            console.print(f"{dest_name}\tset module name")

            if dependencies:
                with self._step(pair, SyncStep.MANIFEST_DEPENDENCIES):
                    self._update_manifest_dependencies(
                        editor, manifest, dest.path, dest_name, dependencies
                    )

        self._confirm(
            pair, SyncStep.CONFIRM_COMMIT, f"About to commit changes for {dest_name}"
        )

        with self._step(pair, SyncStep.COMMIT):
            result.added_files = dest.stage_untracked()
            result.commit = dest.commit_all(
                options.commit_message, options.committer_email
            )
        if result.commit:
            console.print(f"{dest_name}\tchanges committed as {result.commit[:8]}")
        else:
            console.print(f"{dest_name}\tnothing to commit")

        self._confirm(
            pair,
            SyncStep.CONFIRM_PUSH,
            f"About to push changes for {dest_name} to {escape(pair.dest_ref)}",
        )

        with self._step(pair, SyncStep.PUSH):
            dest.push(self.config.remote, pair.dest_ref)
        console.print(
            f"[green]{dest_name}\tchanges pushed to {self.config.remote} "
            f"{escape(pair.dest_ref)}[/green]"
        )

        return result

    def _update_manifest_dependencies(
        self,
        editor: GoModuleEditor,
        manifest: Path,
        work_dir: Path,
        dest_name: str,
        dependencies: list[PairConfig],
    ) -> None:
        # Drop all of the old dependencies before adding any new one, because
        # `go get` resolves every required module before doing anything
        for dep in dependencies:
            editor.drop_dependency(manifest, dep.source.path)
            console.print(f"{dest_name}\tdropped old dependency {escape(dep.source.path)}")

        for dep in dependencies:
            editor.add_dependency(work_dir, dep.dest.path)
            console.print(f"{dest_name}\tadded new dependency {escape(dep.dest.path)}")

        editor.tidy_dependencies(work_dir)
        console.print(f"{dest_name}\ttidied module dependencies")
