"""Snapshot of tracked repositories, stored as JSON files on a side branch."""
import json
import logging
from typing import Iterable, List, Optional

from github_client import GitHubClient, GitHubError
from models import RepositoryRef, TrackedState

logger = logging.getLogger(__name__)

DATA_PATH_PREFIX = "repos"
PLACEHOLDER_PATH = f"{DATA_PATH_PREFIX}/.gitkeep"
PLACEHOLDER_CONTENT = b"# Repository Data\n"


def record_path(ref: RepositoryRef) -> str:
    """Path of the JSON file holding a repository's row."""
    return f"{DATA_PATH_PREFIX}/{ref.owner}/{ref.name}.json"


def encode_state(state: TrackedState) -> bytes:
    """Serialize a row in the on-branch format {message_id, commit_id}."""
    return json.dumps(
        {"message_id": state.message_id, "commit_id": state.last_commit}, indent=2
    ).encode("utf-8")


def decode_state(ref: RepositoryRef, content: bytes) -> TrackedState:
    """
    Parse a stored row. Raises ValueError (or TypeError) for malformed content.
    """
    data = json.loads(content.decode("utf-8"))
    return TrackedState(
        owner=ref.owner,
        name=ref.name,
        last_commit=data.get("commit_id") or "",
        message_id=int(data.get("message_id") or 0),
    )


class StateManager:
    """
    Reads and writes the persisted ``(owner, repo) -> {commit_id, message_id}``
    mapping kept under ``repos/<owner>/<repo>.json`` on the state branch.

    Point writes and deletes are used by manual maintenance only. A sync run
    mutates the branch exactly once, through ``replace_all``.
    """

    def __init__(self, github: GitHubClient, repository: str, branch: str = "data"):
        self.github = github
        self.repository = repository
        self.branch = branch

    def get(self, ref: RepositoryRef) -> Optional[TrackedState]:
        """Stored row for a repository, or None when it is not tracked."""
        file = self.github.get_file(self.repository, record_path(ref), self.branch)
        if file is None:
            return None
        try:
            return decode_state(ref, file.content)
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Ignoring unreadable state for {ref}: {e}")
            return None

    def list_tracked(self) -> List[RepositoryRef]:
        """Every repository that has a row on the state branch."""
        refs = []
        for entry in self.github.list_directory(self.repository, DATA_PATH_PREFIX, self.branch):
            if entry.get("type") != "dir":
                continue
            owner = entry["name"]
            try:
                items = self.github.list_directory(
                    self.repository, f"{DATA_PATH_PREFIX}/{owner}", self.branch
                )
            except GitHubError as e:
                logger.error(f"Error fetching repos for owner {owner}: {e}")
                continue

            for item in items:
                name = item.get("name", "")
                if item.get("type", "file") == "file" and name.endswith(".json"):
                    refs.append(RepositoryRef(owner, name[: -len(".json")]))
        return refs

    def _ensure_branch(self) -> None:
        if self.github.get_branch_head(self.repository, self.branch) is None:
            logger.info(f"Initializing state branch '{self.branch}'")
            self.github.bulk_write_files(
                self.repository,
                self.branch,
                [(PLACEHOLDER_PATH, PLACEHOLDER_CONTENT)],
                "Initialize repos directory",
            )

    def save(self, state: TrackedState) -> None:
        """Create or overwrite a single row."""
        self._ensure_branch()
        path = record_path(state.ref)
        existing = self.github.get_file(self.repository, path, self.branch)
        self.github.put_file(
            self.repository,
            path,
            encode_state(state),
            f"Update repo data: {state.ref}",
            self.branch,
            sha=existing.sha if existing else None,
        )

    def delete(self, ref: RepositoryRef) -> bool:
        """Remove a single row. Returns False when there was nothing to remove."""
        path = record_path(ref)
        existing = self.github.get_file(self.repository, path, self.branch)
        if existing is None:
            return False
        self.github.delete_file(
            self.repository, path, f"Delete repo data: {ref}", self.branch, existing.sha
        )
        return True

    def replace_all(self, states: Iterable[TrackedState]) -> str:
        """
        Clear the branch and write ``states`` as its only rows, in one commit.

        Raises GitHubError when the commit cannot be made; the branch then
        keeps its previous snapshot.
        """
        files = {PLACEHOLDER_PATH: PLACEHOLDER_CONTENT}
        for state in states:
            files[record_path(state.ref)] = encode_state(state)

        sha = self.github.bulk_write_files(
            self.repository, self.branch, sorted(files.items()), "Update repository data"
        )
        logger.info(f"Saved {len(files) - 1} repository data entries")
        return sha
