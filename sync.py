"""Change detection and message reconciliation for tracked repositories."""
import logging
from typing import Iterable, Optional

from formatting import render_repo_message
from github_client import GitHubClient, GitHubError
from models import (
    Detection,
    DetectionStatus,
    Outcome,
    ReconciliationBatch,
    RepositoryDescriptor,
    TrackedState,
)
from state_manager import StateManager
from telegram_client import TelegramClient, TelegramError

logger = logging.getLogger(__name__)


class ChangeDetector:
    """Decides whether a repository's message needs repainting."""

    def __init__(self, github: GitHubClient, force_resend: bool = False):
        self.github = github
        self.force_resend = force_resend

    def classify(self, repo: RepositoryDescriptor, old_state: Optional[TrackedState]) -> Detection:
        """
        Compare the newest commit on the default branch with the stored one.

        Recent commits and the latest release are only fetched when the
        repository changed. Any lookup failure makes it UNAVAILABLE.
        """
        try:
            latest = self.github.get_latest_commit(repo.owner, repo.name, repo.default_branch)
        except GitHubError as e:
            logger.warning(f"  Failed to get latest commit for {repo.full_name}: {e}")
            return Detection(DetectionStatus.UNAVAILABLE, old_state=old_state)

        if latest is None:
            logger.warning(f"  No commits found for {repo.full_name}")
            return Detection(DetectionStatus.UNAVAILABLE, old_state=old_state)

        changed = old_state is None or old_state.last_commit != latest.sha
        if not changed and not self.force_resend:
            return Detection(DetectionStatus.UNCHANGED, old_state=old_state, latest_commit=latest)

        try:
            recent = self.github.get_recent_commits(repo.owner, repo.name, repo.default_branch)
            release = self.github.get_latest_release(repo.owner, repo.name)
        except GitHubError as e:
            logger.warning(f"  Failed to fetch activity for {repo.full_name}: {e}")
            return Detection(DetectionStatus.UNAVAILABLE, old_state=old_state)

        return Detection(
            DetectionStatus.CHANGED,
            old_state=old_state,
            latest_commit=latest,
            recent_commits=recent,
            release=release,
        )


class MessageSynchronizer:
    """Applies a detection to the chat and returns the row to persist."""

    def __init__(self, telegram: TelegramClient):
        self.telegram = telegram

    def reconcile(self, repo: RepositoryDescriptor, detection: Detection) -> Optional[TrackedState]:
        """
        Returns the row for the next snapshot, or None when the repository
        must be left out of it (unavailable, or the new message was not sent).

        The previous message is deleted before the new one is sent.
        """
        old_state = detection.old_state

        if detection.status is DetectionStatus.UNAVAILABLE:
            return None

        if detection.status is DetectionStatus.UNCHANGED:
            logger.info(f"  No updates for {repo.full_name}")
            return old_state

        old_message_id = old_state.message_id if old_state else 0
        if old_message_id and old_message_id > 0:
            logger.info(f"  Deleting old message {old_message_id} for {repo.full_name}...")
            try:
                self.telegram.delete_message(old_message_id)
                logger.info("  Old message deleted successfully")
            except TelegramError as e:
                logger.warning(f"  Failed to delete old message, continuing... ({e})")
        else:
            logger.info(f"  No old message to delete (messageId: {old_message_id})")

        text = render_repo_message(repo, detection.release, detection.recent_commits)
        if not text.strip():
            logger.error(f"  Message text is empty for {repo.full_name}")
            return None

        logger.debug("  Sending message for %s: %s", repo.full_name, text.replace("\n", "\\n"))
        try:
            message_id = self.telegram.send_message(text)
        except TelegramError as e:
            logger.error(f"  Error sending message for {repo.full_name}: {e}")
            return None

        return TrackedState(
            owner=repo.owner,
            name=repo.name,
            last_commit=detection.latest_commit.sha,
            message_id=message_id,
        )


def build_batch(
    repos: Iterable[RepositoryDescriptor],
    state: StateManager,
    detector: ChangeDetector,
    synchronizer: MessageSynchronizer,
) -> ReconciliationBatch:
    """Process repositories one at a time and collect their outcomes."""
    repos = list(repos)
    old_states = {repo.ref: state.get(repo.ref) for repo in repos}

    batch = ReconciliationBatch()
    for repo in repos:
        logger.info(f"Processing {repo.full_name}...")
        old_state = old_states[repo.ref]

        detection = detector.classify(repo, old_state)
        if detection.status is DetectionStatus.CHANGED:
            if old_state is not None and old_state.last_commit == detection.latest_commit.sha:
                logger.info(f"  Force resending message for {repo.full_name}")
            else:
                logger.info(f"  Updates detected for {repo.full_name}")

        new_state = synchronizer.reconcile(repo, detection)

        if detection.status is DetectionStatus.UNCHANGED:
            outcome = Outcome.UNCHANGED
        elif new_state is not None:
            outcome = Outcome.REPAINTED
            logger.info(f"  Updated {repo.full_name} successfully")
        else:
            outcome = Outcome.FAILED
            logger.info(f"  Failed to update message for {repo.full_name}")

        batch.record(repo, old_state, new_state, outcome)

    return batch


def run_sync(
    repos: Iterable[RepositoryDescriptor],
    state: StateManager,
    detector: ChangeDetector,
    synchronizer: MessageSynchronizer,
) -> ReconciliationBatch:
    """
    One reconciliation pass: compute the batch, then write the snapshot.

    The bulk write is the only mutation of the state branch; a GitHubError
    from it propagates and leaves the previous snapshot in place.
    """
    batch = build_batch(repos, state, detector, synchronizer)
    state.replace_all(batch.rows())
    return batch
