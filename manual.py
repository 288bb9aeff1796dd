"""Add or remove a single tracked repository outside of topic discovery.

Usage:
    python manual.py add owner/repo
    python manual.py remove owner/repo

The action and repository can also come from MANUAL_ACTION, MANUAL_OWNER
and MANUAL_REPO.
"""
import logging
import os
import sys
from typing import Mapping, Optional, Sequence

from check_once import setup_logging
from config import Config
from github_client import GitHubClient, GitHubError, GitHubNotFoundError
from models import RepositoryRef, TrackedState
from state_manager import StateManager

logger = logging.getLogger(__name__)

ACTIONS = ("add", "remove")


def add_repo(github: GitHubClient, state: StateManager, ref: RepositoryRef) -> int:
    """Start tracking a repository; its first message goes out on the next run."""
    logger.info(f"Adding {ref} to tracking...")

    try:
        github.get_repository(ref.owner, ref.name)
    except GitHubNotFoundError:
        logger.error(f"Repository {ref} not found")
        return 1

    state.save(TrackedState(owner=ref.owner, name=ref.name, last_commit="", message_id=0))
    logger.info(f"Successfully added {ref} to tracking")
    return 0


def remove_repo(state: StateManager, ref: RepositoryRef) -> int:
    """Stop tracking a repository. Its last message is left in the chat."""
    logger.info(f"Removing {ref} from tracking...")

    if state.delete(ref):
        logger.info(f"Successfully removed {ref} from tracking")
    else:
        logger.info(f"{ref} was not tracked")
    return 0


def parse_request(
    argv: Sequence[str], env: Mapping[str, str]
) -> tuple[Optional[str], Optional[RepositoryRef], Optional[str]]:
    """Return (action, ref, error) from the command line or the environment."""
    if argv:
        if len(argv) != 2:
            return None, None, "usage: manual.py {add,remove} owner/repo"
        action, target = argv
    else:
        action = env.get("MANUAL_ACTION") or ""
        owner = env.get("MANUAL_OWNER") or ""
        name = env.get("MANUAL_REPO") or ""
        if not action or not owner or not name:
            return None, None, "missing required environment variables: MANUAL_ACTION, MANUAL_OWNER, MANUAL_REPO"
        target = f"{owner}/{name}"

    if action not in ACTIONS:
        return None, None, f"Invalid action: {action}. Must be 'add' or 'remove'"

    try:
        ref = RepositoryRef.parse(target)
    except ValueError as e:
        return None, None, str(e)
    return action, ref, None


def run(
    config: Config,
    action: str,
    ref: RepositoryRef,
    github: Optional[GitHubClient] = None,
) -> int:
    """Apply one manual action and return the process exit code."""
    errors = config.validate_github()
    if errors:
        logger.error("Configuration errors:")
        for error in errors:
            logger.error(f"  - {error}")
        return 1

    github = github or GitHubClient(config.github_token)
    state = StateManager(github, config.state_repository, config.state_branch)

    try:
        if action == "add":
            return add_repo(github, state, ref)
        return remove_repo(state, ref)
    except GitHubError as e:
        logger.error(f"Error during manual operation: {e}")
        return 1


def main(argv: Optional[Sequence[str]] = None, env: Optional[Mapping[str, str]] = None) -> int:
    """Entry point for the manual maintenance script."""
    setup_logging()
    if argv is None:
        argv = sys.argv[1:]
    if env is None:
        env = os.environ

    action, ref, error = parse_request(argv, env)
    if error:
        logger.error(error)
        return 1
    return run(Config.from_env(env), action, ref)


if __name__ == "__main__":
    sys.exit(main())
