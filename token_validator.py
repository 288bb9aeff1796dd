"""GitHub token validation and state repository access checks."""
from typing import Dict

import requests

from github_client import GitHubClient


def validate_token(github: GitHubClient) -> tuple[bool, Dict]:
    """
    Validate the client's GitHub token.

    Returns:
        (is_valid, info_dict) where info_dict contains:
        - scopes: List of token scopes (empty for fine-grained tokens)
        - user: GitHub username
        - rate_limit: Current rate limit info
    """
    try:
        response = github.session.request(
            method="GET", url=f"{github.base_url}/user", headers=github.headers, timeout=10
        )

        if response.status_code == 401:
            return False, {"error": "Token is invalid or expired"}

        if response.status_code >= 400:
            return False, {"error": f"API error: {response.status_code}"}

        user_data = response.json()

        # Classic tokens report their scopes in a header
        scopes_header = (response.headers or {}).get("X-OAuth-Scopes", "")
        scopes = [s.strip() for s in scopes_header.split(",")] if scopes_header else []

        rate_limit_response = github.session.request(
            method="GET", url=f"{github.base_url}/rate_limit", headers=github.headers, timeout=10
        )
        rate_limit_data = rate_limit_response.json() if rate_limit_response.status_code < 400 else {}

        return True, {
            "scopes": scopes,
            "user": user_data.get("login", "Unknown"),
            "rate_limit": rate_limit_data.get("resources", {}).get("core", {}),
        }
    except requests.exceptions.RequestException as e:
        return False, {"error": f"Network error: {str(e)}"}


def check_state_repo_access(github: GitHubClient, repo: str) -> tuple[bool, str]:
    """
    Check that the token can push to the repository holding the state branch.

    Returns:
        (can_write, message)
    """
    try:
        response = github.session.request(
            method="GET", url=f"{github.base_url}/repos/{repo}", headers=github.headers, timeout=10
        )
    except requests.exceptions.RequestException as e:
        return False, f"Network error: {str(e)}"

    if response.status_code == 404:
        return False, f"Repository '{repo}' not found or you don't have access"
    elif response.status_code == 403:
        return False, f"Access forbidden to '{repo}'. Check repository permissions."
    elif response.status_code >= 400:
        return False, f"Unexpected error: {response.status_code}"

    permissions = response.json().get("permissions") or {}
    if not permissions.get("push", False):
        return False, f"Token cannot push to '{repo}'; the state branch cannot be updated."
    return True, "Write access granted."
