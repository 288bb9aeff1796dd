"""Data types shared by the catalog, the sync loop and the state store."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


@dataclass(frozen=True)
class RepositoryRef:
    """Identity of a tracked repository."""

    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @classmethod
    def parse(cls, value: str) -> "RepositoryRef":
        """Parse an ``owner/repo`` string."""
        owner, sep, name = value.strip().partition("/")
        if not sep or not owner or not name or "/" in name:
            raise ValueError(f"Invalid repository '{value}' (expected owner/repo)")
        return cls(owner, name)

    def __str__(self) -> str:
        return self.full_name


@dataclass
class RepositoryDescriptor:
    """Live repository metadata, fetched fresh on every run and never stored."""

    owner: str
    name: str
    description: str = ""
    default_branch: str = "main"
    stars: int = 0

    @property
    def ref(self) -> RepositoryRef:
        return RepositoryRef(self.owner, self.name)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(frozen=True)
class TrackedState:
    """
    Persisted row for one repository.

    ``message_id`` of 0 means no message has been sent yet. ``last_commit``
    is the commit the live message reflects.
    """

    owner: str
    name: str
    last_commit: str = ""
    message_id: int = 0

    @property
    def ref(self) -> RepositoryRef:
        return RepositoryRef(self.owner, self.name)


@dataclass
class CommitSummary:
    """One commit, with only the first line of its message."""

    sha: str
    message: str
    date: Optional[str] = None


@dataclass
class ReleaseAsset:
    """Downloadable file attached to a release; size in bytes."""

    url: str
    name: str
    size: int = 0


@dataclass
class ReleaseInfo:
    """Latest published release of a repository."""

    tag: str
    published_at: Optional[str] = None
    assets: List[ReleaseAsset] = field(default_factory=list)


class DetectionStatus(Enum):
    """How a repository compares against its stored row."""

    UNAVAILABLE = "unavailable"
    UNCHANGED = "unchanged"
    CHANGED = "changed"


class Outcome(Enum):
    """What a run did for one repository."""

    UNCHANGED = "unchanged"
    REPAINTED = "repainted"
    FAILED = "failed"


@dataclass
class Detection:
    """Result of comparing a repository's live head against its stored row."""

    status: DetectionStatus
    old_state: Optional[TrackedState] = None
    latest_commit: Optional[CommitSummary] = None
    recent_commits: List[CommitSummary] = field(default_factory=list)
    release: Optional[ReleaseInfo] = None


@dataclass
class BatchEntry:
    """A repository's descriptor, previous row and result within one run."""

    descriptor: RepositoryDescriptor
    old_state: Optional[TrackedState]
    outcome: Outcome
    new_state: Optional[TrackedState] = None


class ReconciliationBatch:
    """In-memory working set of a single run, keyed by repository."""

    def __init__(self):
        self.entries: Dict[RepositoryRef, BatchEntry] = {}

    def record(
        self,
        descriptor: RepositoryDescriptor,
        old_state: Optional[TrackedState],
        new_state: Optional[TrackedState],
        outcome: Outcome,
    ) -> None:
        self.entries[descriptor.ref] = BatchEntry(descriptor, old_state, outcome, new_state)

    def rows(self) -> List[TrackedState]:
        """Reduce the batch to the rows that make up the next snapshot."""
        return [
            entry.new_state
            for entry in self.entries.values()
            if entry.outcome is not Outcome.FAILED and entry.new_state is not None
        ]

    def count(self, outcome: Outcome) -> int:
        return sum(1 for entry in self.entries.values() if entry.outcome is outcome)

    def __len__(self) -> int:
        return len(self.entries)
