"""
Exception hierarchy for fork_syncer.

Every step of a pair sync raises one of these on failure. The orchestrator
wraps them in PairSyncFailed so the top-level message names the pair, the
step and the underlying cause.
"""


class ForkSyncerError(Exception):
    """Base class for all fork_syncer errors."""


class ConfigError(ForkSyncerError):
    """The sync configuration is invalid."""


class CyclicDependencyError(ConfigError):
    """Pair dependencies form a cycle."""

    def __init__(self, cycle: list[str]):
        self.cycle = cycle
        super().__init__(f"Cyclic pair dependency: {' -> '.join(cycle)}")


class MissingExecutable(ForkSyncerError):
    """One or more required external commands could not be found."""

    def __init__(self, names: list[str]):
        self.names = names
        super().__init__(f"Missing needed command(s): {', '.join(names)}")


class NotARepositoryError(ForkSyncerError, ValueError):
    """A path is not a git working copy."""


class StagingError(ForkSyncerError):
    """The staging area could not be created."""


class CloneError(ForkSyncerError):
    """A repository could not be cloned."""


class CheckoutError(ForkSyncerError):
    """The destination ref could not be checked out."""


class ArchiveError(ForkSyncerError):
    """The source tree could not be archived into the destination."""


class PruneError(ForkSyncerError):
    """Removing destination entries absent from the source failed."""


class TypeMismatchError(PruneError):
    """A path is a file in one tree and a directory in the other."""

    def __init__(self, path: str, other: str, path_is_dir: bool):
        self.path = path
        self.other = other
        if path_is_dir:
            message = f"{path} is a directory but {other} is not"
        else:
            message = f"{path} is not a directory but {other} is"
        super().__init__(message)


class VerifyMismatchError(ForkSyncerError):
    """Destination and source trees still differ after archive and prune."""


class RewriteError(ForkSyncerError):
    """A file could not be read or rewritten during text replacement."""


class ManifestEditError(ForkSyncerError):
    """The module manifest could not be edited."""


class DependencyResolutionError(ManifestEditError):
    """A module dependency could not be fetched or resolved."""


class UserCancelled(ForkSyncerError):
    """The user declined to continue at a confirmation prompt."""


class CommitError(ForkSyncerError):
    """Staging or committing the synced changes failed."""


class PushError(ForkSyncerError):
    """Pushing the synced commit failed."""


class PairSyncFailed(ForkSyncerError):
    """A pair sync failed at a given step."""

    def __init__(self, pair: str, step: str, cause: BaseException):
        self.pair = pair
        self.step = step
        self.cause = cause
        super().__init__(f"{pair} ({step}): {cause}")
