from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import pytest

from github_client import ContentFile, GitHubError, GitHubNotFoundError
from models import CommitSummary, ReleaseInfo, RepositoryDescriptor, RepositoryRef
from state_manager import StateManager
from telegram_client import TelegramError


@dataclass
class FakeResponse:
    status_code: int
    payload: Any = None
    headers: dict[str, str] = field(default_factory=dict)
    body: str | None = None

    @property
    def content(self) -> bytes:
        if self.body is not None:
            return self.body.encode()
        if self.payload is None:
            return b""
        return b"json"

    @property
    def text(self) -> str:
        if self.body is not None:
            return self.body
        return json.dumps(self.payload)

    def json(self) -> Any:
        if self.body is not None:
            raise json.JSONDecodeError("Expecting value", self.body, 0)
        return self.payload


class FakeSession:
    """Routes (METHOD, path) to canned responses; unknown routes answer 404."""

    def __init__(self, base_url: str, routes: dict[tuple[str, str], Any] | None = None) -> None:
        self.base_url = base_url
        self.routes = dict(routes or {})
        self.calls: list[dict[str, Any]] = []

    def request(self, **kwargs: Any) -> FakeResponse:
        self.calls.append(kwargs)
        path = kwargs["url"][len(self.base_url):]
        route = self.routes.get((kwargs["method"], path))
        if route is None:
            return FakeResponse(404, {"message": "Not Found"})
        if isinstance(route, Exception):
            raise route
        if isinstance(route, list):
            return route.pop(0)
        return route

    def paths(self) -> list[tuple[str, str]]:
        return [(call["method"], call["url"][len(self.base_url):]) for call in self.calls]


class InMemoryGitHub:
    """Duck-typed stand-in for GitHubClient backed by dictionaries."""

    def __init__(self) -> None:
        self.topic_repos: list[RepositoryDescriptor] = []
        self.repos: dict[RepositoryRef, RepositoryDescriptor] = {}
        self.commits: dict[RepositoryRef, list[CommitSummary]] = {}
        self.releases: dict[RepositoryRef, ReleaseInfo] = {}
        self.files: dict[str, bytes] = {}
        self.branch_exists = True
        self.failing_commits: set[RepositoryRef] = set()
        self.failing_releases: set[RepositoryRef] = set()
        self.failing_lookups: set[RepositoryRef] = set()
        self.fail_search = False
        self.fail_bulk_write = False
        self.lookups: list[RepositoryRef] = []
        self.bulk_writes = 0

    # repository API

    def add_repo(
        self,
        owner: str,
        name: str,
        shas: list[str],
        topic: bool = True,
        description: str = "",
        stars: int = 0,
    ) -> RepositoryDescriptor:
        repo = RepositoryDescriptor(owner, name, description, "main", stars)
        self.repos[repo.ref] = repo
        self.commits[repo.ref] = [CommitSummary(sha, f"commit {sha}") for sha in shas]
        if topic:
            self.topic_repos.append(repo)
        return repo

    def search_repositories_by_topic(self, organization: str, topic: str) -> list[RepositoryDescriptor]:
        if self.fail_search:
            raise GitHubError("search failed", status_code=500)
        return list(self.topic_repos)

    def get_repository(self, owner: str, name: str) -> RepositoryDescriptor:
        ref = RepositoryRef(owner, name)
        self.lookups.append(ref)
        if ref in self.failing_lookups:
            raise GitHubError("boom", status_code=500)
        if ref not in self.repos:
            raise GitHubNotFoundError(f"repository '{ref}' not found", status_code=404)
        return self.repos[ref]

    def get_latest_commit(self, owner: str, name: str, branch: str = "main") -> CommitSummary | None:
        ref = RepositoryRef(owner, name)
        if ref in self.failing_commits:
            raise GitHubError("commits unavailable", status_code=500)
        commits = self.commits.get(ref, [])
        return commits[0] if commits else None

    def get_recent_commits(self, owner: str, name: str, branch: str = "main", limit: int = 6) -> list[CommitSummary]:
        return self.commits.get(RepositoryRef(owner, name), [])[:limit]

    def get_latest_release(self, owner: str, name: str) -> ReleaseInfo | None:
        ref = RepositoryRef(owner, name)
        if ref in self.failing_releases:
            raise GitHubError("release lookup failed", status_code=502)
        return self.releases.get(ref)

    # content store

    def get_file(self, repo: str, path: str, ref: str) -> ContentFile | None:
        if not self.branch_exists or path not in self.files:
            return None
        return ContentFile(path=path, sha=f"sha-{path}", content=self.files[path])

    def list_directory(self, repo: str, path: str, ref: str) -> list[dict[str, Any]]:
        prefix = path.rstrip("/") + "/"
        entries: dict[str, str] = {}
        for file_path in self.files:
            if not file_path.startswith(prefix):
                continue
            head, _, rest = file_path[len(prefix):].partition("/")
            entries[head] = "dir" if rest else "file"
        return [{"name": name, "type": kind} for name, kind in sorted(entries.items())]

    def put_file(self, repo: str, path: str, content: bytes, message: str, branch: str, sha: str | None = None) -> None:
        self.files[path] = content

    def delete_file(self, repo: str, path: str, message: str, branch: str, sha: str) -> None:
        del self.files[path]

    def get_branch_head(self, repo: str, branch: str) -> str | None:
        return f"head-{self.bulk_writes}" if self.branch_exists else None

    def bulk_write_files(self, repo: str, branch: str, files: list[tuple[str, bytes]], message: str) -> str:
        if self.fail_bulk_write:
            raise GitHubError("push rejected", status_code=422)
        self.files = dict(files)
        self.branch_exists = True
        self.bulk_writes += 1
        return f"head-{self.bulk_writes}"


class FakeTelegram:
    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.next_id = 100
        self.fail_send = False
        self.fail_delete = False

    def send_message(self, text: str, parse_mode: str = "MarkdownV2") -> int:
        self.calls.append(("send", text))
        if self.fail_send:
            raise TelegramError("Bad Request: can't parse entities", error_code=400)
        self.next_id += 1
        return self.next_id

    def delete_message(self, message_id: int) -> None:
        self.calls.append(("delete", message_id))
        if self.fail_delete:
            raise TelegramError("Bad Request: message to delete not found", error_code=400)


@pytest.fixture
def github() -> InMemoryGitHub:
    return InMemoryGitHub()


@pytest.fixture
def telegram() -> FakeTelegram:
    return FakeTelegram()


@pytest.fixture
def state(github: InMemoryGitHub) -> StateManager:
    return StateManager(github, "acme/bot-state", "data")
