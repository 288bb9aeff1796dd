"""GitHub REST API client for repository discovery and the state branch."""
import base64
from dataclasses import dataclass
import logging
from typing import Any, Dict, List, Optional, Tuple

import requests

from models import CommitSummary, ReleaseAsset, ReleaseInfo, RepositoryDescriptor

logger = logging.getLogger(__name__)


class GitHubError(Exception):
    """Custom exception for GitHub API errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class GitHubNotFoundError(GitHubError):
    """Raised when the requested resource does not exist (HTTP 404)."""


@dataclass
class ContentFile:
    """A file read from a branch through the contents API."""

    path: str
    sha: str
    content: bytes


class GitHubClient:
    """Client for interacting with GitHub API."""

    BASE_URL = "https://api.github.com"
    PAGE_SIZE = 100
    SEARCH_RESULT_LIMIT = 1000
    RECENT_COMMITS = 6
    TIMEOUT = 30

    def __init__(
        self,
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        base_url: str = BASE_URL,
    ):
        """Initialize GitHub client with optional API token."""
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.headers = {
            "Accept": "application/vnd.github.v3+json",
        }
        if token:
            self.headers["Authorization"] = f"token {token}"

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        context: str = "",
    ) -> Any:
        """Send a request and return the decoded JSON body (None when empty)."""
        url = f"{self.base_url}{path}"
        context = context or path
        try:
            response = self.session.request(
                method=method,
                url=url,
                headers=self.headers,
                params=params,
                json=json,
                timeout=self.TIMEOUT,
            )
        except requests.exceptions.Timeout:
            raise GitHubError(f"Request timeout while fetching {context}. Please try again later.")
        except requests.exceptions.RequestException as e:
            raise GitHubError(f"Network error while fetching {context}: {str(e)}")

        # Handle different HTTP status codes explicitly
        if response.status_code == 404:
            raise GitHubNotFoundError(f"{context} not found", status_code=404)
        elif response.status_code in (403, 429):
            error_data = self._error_data(response)
            message = error_data.get("message", "Access forbidden")
            if "rate limit" in message.lower() or response.status_code == 429:
                raise GitHubError(
                    "GitHub API rate limit exceeded. Please wait before trying again.",
                    status_code=response.status_code,
                )
            raise GitHubError(
                f"Access forbidden to {context}: {message}",
                status_code=response.status_code,
            )
        elif response.status_code == 401:
            raise GitHubError(
                "Authentication failed. "
                "Please check your GitHub token is valid and has the correct permissions.",
                status_code=401,
            )
        elif response.status_code >= 400:
            error_data = self._error_data(response)
            error_msg = error_data.get("message") or getattr(response, "text", "")
            raise GitHubError(
                f"GitHub API error ({response.status_code}) for {context}: {error_msg}",
                status_code=response.status_code,
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            raise GitHubError(
                f"Invalid JSON in GitHub response for {context}",
                status_code=response.status_code,
            )

    @staticmethod
    def _error_data(response) -> Dict[str, Any]:
        """Decoded error body, or {} when it is not a JSON object (HTML 502 pages)."""
        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    # -- repository discovery --------------------------------------------------

    @staticmethod
    def _descriptor(item: Dict[str, Any]) -> RepositoryDescriptor:
        """Map a repository payload (search item or repo object) to a descriptor."""
        return RepositoryDescriptor(
            owner=item["owner"]["login"],
            name=item["name"],
            description=item.get("description") or "",
            default_branch=item.get("default_branch") or "main",
            stars=item.get("stargazers_count") or 0,
        )

    def search_repositories_by_topic(self, organization: str, topic: str) -> List[RepositoryDescriptor]:
        """
        Fetch every repository in an organization tagged with a topic.

        Pages are requested until one returns fewer than PAGE_SIZE items, or
        until the search API's 1000 result window is exhausted.
        """
        repos = []
        page = 1

        while True:
            data = self._request(
                "GET",
                "/search/repositories",
                params={
                    "q": f"org:{organization} topic:{topic}",
                    "per_page": self.PAGE_SIZE,
                    "page": page,
                },
                context=f"repositories with topic '{topic}'",
            )
            data = data or {}
            items = data.get("items", [])
            repos.extend(self._descriptor(item) for item in items)

            total = data.get("total_count", 0)
            if page == 1 and total > self.SEARCH_RESULT_LIMIT:
                logger.warning(
                    f"{total} repositories match topic '{topic}'; "
                    f"only the first {self.SEARCH_RESULT_LIMIT} are reachable through search"
                )

            if len(items) < self.PAGE_SIZE:
                break
            if page * self.PAGE_SIZE >= min(total or self.SEARCH_RESULT_LIMIT, self.SEARCH_RESULT_LIMIT):
                break
            page += 1

        return repos

    def get_repository(self, owner: str, name: str) -> RepositoryDescriptor:
        """Get repository metadata. Raises GitHubNotFoundError when it is gone."""
        data = self._request("GET", f"/repos/{owner}/{name}", context=f"repository '{owner}/{name}'")
        return self._descriptor(data)

    def _list_commits(self, owner: str, name: str, branch: str, limit: int) -> List[CommitSummary]:
        """Commits reachable from ``branch``, in the order GitHub returns them."""
        data = self._request(
            "GET",
            f"/repos/{owner}/{name}/commits",
            params={"sha": branch, "per_page": limit},
            context=f"commits of '{owner}/{name}'",
        )
        commits = []
        for item in data or []:
            commit = item.get("commit") or {}
            message = commit.get("message") or ""
            commits.append(CommitSummary(
                sha=item["sha"],
                message=message.split("\n")[0],
                date=(commit.get("author") or {}).get("date"),
            ))
        return commits

    def get_latest_commit(self, owner: str, name: str, branch: str = "main") -> Optional[CommitSummary]:
        """Newest commit on a branch, or None for an empty repository."""
        commits = self._list_commits(owner, name, branch, 1)
        return commits[0] if commits else None

    def get_recent_commits(
        self, owner: str, name: str, branch: str = "main", limit: int = RECENT_COMMITS
    ) -> List[CommitSummary]:
        """Most recent commits, newest first, message first line only."""
        return self._list_commits(owner, name, branch, limit)

    def get_latest_release(self, owner: str, name: str) -> Optional[ReleaseInfo]:
        """Latest published release with its assets, or None when there is none."""
        try:
            data = self._request(
                "GET",
                f"/repos/{owner}/{name}/releases/latest",
                context=f"latest release of '{owner}/{name}'",
            )
        except GitHubNotFoundError:
            return None

        return ReleaseInfo(
            tag=data.get("tag_name") or "",
            published_at=data.get("published_at"),
            assets=[
                ReleaseAsset(
                    url=asset.get("browser_download_url", ""),
                    name=asset.get("name", ""),
                    size=asset.get("size") or 0,
                )
                for asset in data.get("assets") or []
            ],
        )

    # -- content store ---------------------------------------------------------

    def get_file(self, repo: str, path: str, ref: str) -> Optional[ContentFile]:
        """Read a file from a branch. Returns None when it (or the branch) is missing."""
        try:
            data = self._request(
                "GET", f"/repos/{repo}/contents/{path}", params={"ref": ref}, context=f"'{path}'"
            )
        except GitHubNotFoundError:
            return None

        if isinstance(data, list):
            return None

        return ContentFile(
            path=data.get("path", path),
            sha=data["sha"],
            content=base64.b64decode(data.get("content") or ""),
        )

    def list_directory(self, repo: str, path: str, ref: str) -> List[Dict[str, Any]]:
        """List directory entries on a branch. A missing directory is empty."""
        try:
            data = self._request(
                "GET", f"/repos/{repo}/contents/{path}", params={"ref": ref}, context=f"'{path}'"
            )
        except GitHubNotFoundError:
            return []

        if not isinstance(data, list):
            return []
        return data

    def put_file(
        self,
        repo: str,
        path: str,
        content: bytes,
        message: str,
        branch: str,
        sha: Optional[str] = None,
    ) -> None:
        """Create or update a single file through the contents API."""
        payload = {
            "message": message,
            "content": base64.b64encode(content).decode("ascii"),
            "branch": branch,
        }
        if sha:
            payload["sha"] = sha
        self._request("PUT", f"/repos/{repo}/contents/{path}", json=payload, context=f"'{path}'")

    def delete_file(self, repo: str, path: str, message: str, branch: str, sha: str) -> None:
        """Delete a single file through the contents API."""
        self._request(
            "DELETE",
            f"/repos/{repo}/contents/{path}",
            json={"message": message, "sha": sha, "branch": branch},
            context=f"'{path}'",
        )

    def get_branch_head(self, repo: str, branch: str) -> Optional[str]:
        """Commit sha the branch points at, or None when the branch does not exist."""
        try:
            data = self._request(
                "GET", f"/repos/{repo}/git/ref/heads/{branch}", context=f"branch '{branch}'"
            )
        except GitHubNotFoundError:
            return None
        return data["object"]["sha"]

    def bulk_write_files(
        self, repo: str, branch: str, files: List[Tuple[str, bytes]], message: str
    ) -> str:
        """
        Replace the whole content of a branch with ``files`` in a single commit.

        The tree is built without a base tree, so anything not listed is removed.
        Creates the branch when it does not exist yet. Returns the new commit sha.
        """
        head = self.get_branch_head(repo, branch)

        tree = self._request(
            "POST",
            f"/repos/{repo}/git/trees",
            json={
                "tree": [
                    {
                        "path": path,
                        "mode": "100644",
                        "type": "blob",
                        "content": content.decode("utf-8"),
                    }
                    for path, content in files
                ],
            },
            context=f"tree for branch '{branch}'",
        )

        commit = self._request(
            "POST",
            f"/repos/{repo}/git/commits",
            json={
                "message": message,
                "tree": tree["sha"],
                "parents": [head] if head else [],
            },
            context=f"commit for branch '{branch}'",
        )

        if head:
            self._request(
                "PATCH",
                f"/repos/{repo}/git/refs/heads/{branch}",
                json={"sha": commit["sha"], "force": False},
                context=f"branch '{branch}'",
            )
        else:
            logger.info(f"Creating branch '{branch}' in {repo}")
            self._request(
                "POST",
                f"/repos/{repo}/git/refs",
                json={"ref": f"refs/heads/{branch}", "sha": commit["sha"]},
                context=f"branch '{branch}'",
            )

        return commit["sha"]
