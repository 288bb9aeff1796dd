"""Single sync run for scheduled invocations (e.g., GitHub Actions)."""
import logging
import sys
from typing import Optional

from catalog import build_catalog
from config import Config
from github_client import GitHubClient, GitHubError
from models import Outcome
from state_manager import StateManager
from sync import ChangeDetector, MessageSynchronizer, run_sync
from telegram_client import TelegramClient
from token_validator import check_state_repo_access, validate_token

logger = logging.getLogger(__name__)


def setup_logging(level: int = logging.INFO) -> None:
    """Console logging shared by the entry scripts."""
    logging.basicConfig(level=level, format="%(asctime)s - %(levelname)s - %(message)s")


def _check_token(github: GitHubClient, config: Config) -> None:
    """Log who the token belongs to and whether it can update the state branch."""
    is_valid, token_info = validate_token(github)
    if not is_valid:
        logger.warning(f"⚠️  Token validation failed: {token_info.get('error', 'Unknown error')}")
        return

    logger.info(f"  Token user: {token_info.get('user', 'Unknown')}")
    rate_limit = token_info.get("rate_limit", {})
    if rate_limit:
        logger.info(
            f"  Rate limit: {rate_limit.get('remaining', 0)}/{rate_limit.get('limit', 0)} requests remaining"
        )

    can_write, message = check_state_repo_access(github, config.state_repository)
    if can_write:
        logger.info(f"  ✓ {config.state_repository}: {message}")
    else:
        logger.warning(f"  ⚠️  {config.state_repository}: {message}")


def run(
    config: Config,
    github: Optional[GitHubClient] = None,
    telegram: Optional[TelegramClient] = None,
    check_token: bool = True,
) -> int:
    """Run one reconciliation pass and return the process exit code."""
    is_valid, errors = config.validate()
    if not is_valid:
        logger.error("Configuration errors:")
        for error in errors:
            logger.error(f"  - {error}")
        logger.error("Please check your environment variables.")
        return 1

    github = github or GitHubClient(config.github_token)
    telegram = telegram or TelegramClient(
        config.telegram_bot_token, config.telegram_chat_id, config.telegram_thread_id
    )
    state = StateManager(github, config.state_repository, config.state_branch)

    logger.info("Starting repository indexing...")
    if config.force_resend:
        logger.info("Force resend enabled: every repository will be repainted")
    if check_token:
        _check_token(github, config)
    logger.info("-" * 50)

    try:
        repos = build_catalog(github, state, config.organization, config.topic)
        batch = run_sync(
            repos,
            state,
            ChangeDetector(github, force_resend=config.force_resend),
            MessageSynchronizer(telegram),
        )
    except GitHubError as e:
        logger.error(f"❌ Error during repository indexing: {e}")
        return 1

    logger.info("-" * 50)
    logger.info(
        f"✅ Repository indexing completed: {len(batch)} checked, "
        f"{batch.count(Outcome.REPAINTED)} updated, "
        f"{batch.count(Outcome.UNCHANGED)} unchanged, "
        f"{batch.count(Outcome.FAILED)} failed"
    )
    return 0


def main():
    """Run a single sync for all repositories."""
    setup_logging()
    return run(Config.from_env())


if __name__ == "__main__":
    sys.exit(main())
