"""Builds the set of repositories a sync run looks at."""
import logging
from typing import Dict, List

from github_client import GitHubClient, GitHubError
from models import RepositoryDescriptor, RepositoryRef
from state_manager import StateManager

logger = logging.getLogger(__name__)


def build_catalog(
    github: GitHubClient,
    state: StateManager,
    organization: str,
    topic: str,
) -> List[RepositoryDescriptor]:
    """
    Topic-matched repositories plus every manually tracked one.

    Tracked repositories missing from the topic search are looked up
    directly; those that can no longer be fetched are left out of this
    run. Topic results win when a repository appears in both. Errors from
    the search or from listing the state branch propagate.
    """
    catalog: Dict[RepositoryRef, RepositoryDescriptor] = {}

    for repo in github.search_repositories_by_topic(organization, topic):
        catalog.setdefault(repo.ref, repo)
    logger.info(f"Found {len(catalog)} repositories with topic: {topic}")

    manual = [ref for ref in state.list_tracked() if ref not in catalog]
    logger.info(f"Processing {len(manual)} manually tracked repositories...")

    for ref in manual:
        try:
            repo = github.get_repository(ref.owner, ref.name)
        except GitHubError as e:
            logger.warning(f"  Skipping tracked repository {ref}: {e}")
            continue

        if repo.ref != ref:
            # Renamed or transferred: the lookup followed a redirect
            logger.info(f"  {ref} now resolves to {repo.ref}")
        catalog.setdefault(repo.ref, repo)

    return list(catalog.values())
