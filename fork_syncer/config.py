"""
Configuration handling for fork_syncer.

Defines the repository references, the table of repository pairs to sync and
the tool settings, and provides methods for loading/saving them from YAML.
Pair dependencies are declared by name and resolved through the table.
"""

from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import ConfigError, CyclicDependencyError


DEFAULT_CONFIG_PATH = Path("fork_syncer.yaml")


class RepositoryReference(BaseModel):
    """A git repository identified by host and repository path."""

    model_config = ConfigDict(frozen=True)

    host: str = Field(..., min_length=1, description="Git host (ex: github.com)")
    repo_path: str = Field(
        ..., min_length=1, description="Repository path on the host (ex: org/repo)"
    )

    @model_validator(mode="before")
    @classmethod
    def _parse_path(cls, data):
        # Accept "github.com/org/repo" as shorthand
        if isinstance(data, str):
            host, _, repo_path = data.strip("/").partition("/")
            return {"host": host, "repo_path": repo_path}
        return data

    @model_validator(mode="after")
    def _check_segments(self) -> "RepositoryReference":
        if "/" in self.host:
            raise ValueError(f"Host must not contain '/': {self.host}")
        segments = self.repo_path.split("/")
        if any(not s for s in segments):
            raise ValueError(f"Invalid repository path: {self.repo_path}")
        return self

    @property
    def path(self) -> str:
        """The full path (ex: github.com/org/repo)."""
        return f"{self.host}/{self.repo_path}"

    @property
    def https_url(self) -> str:
        return f"https://{self.host}/{self.repo_path}.git"

    @property
    def ssh_url(self) -> str:
        return f"git@{self.host}:{self.repo_path}.git"

    def url(self, use_https: bool = False) -> str:
        """Get the clone URL for the chosen protocol."""
        return self.https_url if use_https else self.ssh_url

    def __str__(self) -> str:
        return self.path


class PairConfig(BaseModel):
    """A source repository and ref mirrored into a destination repository and ref."""

    name: str = Field(..., min_length=1, description="Name used to select the pair")
    source: RepositoryReference = Field(..., description="Repository to sync from")
    source_ref: str = Field(
        default="master", description="Tree-ish in the source repo to sync from"
    )
    dest: RepositoryReference = Field(..., description="Repository to sync to")
    dest_ref: str = Field(
        default="master", description="Branch in the destination repo to commit to"
    )
    # Names of pairs that must be synced first, in order
    depends_on: list[str] = Field(
        default_factory=list,
        description="Pairs to sync before this one, due to module dependencies",
    )
    text_rewrites: list[tuple[str, str]] = Field(
        default_factory=list,
        description="Additional (old, new) text replacements applied to the destination",
    )

    @model_validator(mode="after")
    def _check_repos(self) -> "PairConfig":
        if self.source.path == self.dest.path:
            raise ValueError(f"Source and destination are the same repo: {self.source}")
        for old, _ in self.text_rewrites:
            if not old:
                raise ValueError("Text rewrite source strings must not be empty")
        return self

    @property
    def identity(self) -> str:
        """Identity of the pair, used to avoid syncing it twice in a run."""
        return f"{self.source.path} -> {self.dest.path}"

    def __str__(self) -> str:
        return self.identity


class SyncConfig(BaseModel):
    """Main configuration for the fork syncer."""

    pairs: list[PairConfig] = Field(
        default_factory=list, description="Repository pairs, in sync order"
    )
    use_https: bool = Field(
        default=False, description="Clone over https instead of ssh"
    )
    remote: str = Field(
        default="origin", description="Git remote to push destination changes to"
    )
    manifest_file: str = Field(
        default="go.mod", description="Module manifest file at the repo root"
    )
    staging_prefix: str = Field(
        default="fork_syncer-", description="Prefix for staging area directory names"
    )
    # Paths excluded from text replacement. The manifest files are handled
    # with specific commands, if present.
    rewrite_exclude: list[str] = Field(
        default_factory=lambda: [".git", "go.mod", "go.sum", "glide.yaml", "glide.lock"],
        description="Paths (relative to the repo root) excluded from text replacement",
    )
    compare_exclude: list[str] = Field(
        default_factory=lambda: [".git"],
        description="Paths excluded from pruning and tree comparison",
    )

    @model_validator(mode="after")
    def _check_graph(self) -> "SyncConfig":
        names: set[str] = set()
        for pair in self.pairs:
            if pair.name in names:
                raise ValueError(f"Duplicate pair name: {pair.name}")
            names.add(pair.name)

        for pair in self.pairs:
            for dep in pair.depends_on:
                if dep not in names:
                    raise ValueError(f"Pair {pair.name} depends on unknown pair {dep}")

        cycle = self.find_cycle()
        if cycle:
            raise CyclicDependencyError(cycle)
        return self

    def find_cycle(self) -> list[str] | None:
        """Return the names forming a dependency cycle, or None if acyclic."""
        by_name = {p.name: p for p in self.pairs}
        done: set[str] = set()
        stack: list[str] = []

        def visit(name: str) -> list[str] | None:
            if name in stack:
                return stack[stack.index(name):] + [name]
            if name in done:
                return None
            stack.append(name)
            for dep in by_name[name].depends_on:
                cycle = visit(dep)
                if cycle:
                    return cycle
            stack.pop()
            done.add(name)
            return None

        for pair in self.pairs:
            cycle = visit(pair.name)
            if cycle:
                return cycle
        return None

    @classmethod
    def from_yaml(cls, path: Path) -> "SyncConfig":
        """Load configuration from a YAML file."""
        with open(path) as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration in {path}:\n{e}") from e

    def to_yaml(self, path: Path) -> None:
        """Save configuration to a YAML file."""
        data = self.model_dump(mode="json")
        for pair in data["pairs"]:
            pair["source"] = f"{pair['source']['host']}/{pair['source']['repo_path']}"
            pair["dest"] = f"{pair['dest']['host']}/{pair['dest']['repo_path']}"
        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    def pair_names(self) -> list[str]:
        return [p.name for p in self.pairs]

    def get_pair(self, name: str) -> PairConfig:
        """Look up a pair by name."""
        for pair in self.pairs:
            if pair.name == name:
                return pair
        raise ConfigError(
            f"Unknown pair: {name} (known pairs: {', '.join(self.pair_names()) or 'none'})"
        )

    def dependencies_of(self, pair: PairConfig) -> list[PairConfig]:
        """Get the pairs a pair depends on, in declaration order."""
        return [self.get_pair(name) for name in pair.depends_on]


def create_default_config(
    source: str | None = None,
    dest: str | None = None,
    name: str | None = None,
    source_ref: str = "master",
    dest_ref: str = "master",
) -> SyncConfig:
    """Create a configuration with sensible defaults and an optional first pair."""
    pairs = []
    if source and dest:
        source_repo = RepositoryReference.model_validate(source)
        pairs.append(
            PairConfig(
                name=name or source_repo.repo_path.rsplit("/", 1)[-1],
                source=source_repo,
                source_ref=source_ref,
                dest=RepositoryReference.model_validate(dest),
                dest_ref=dest_ref,
            )
        )
    return SyncConfig(pairs=pairs)
