"""Configuration management for the repository channel sync."""
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional
from dotenv import load_dotenv

load_dotenv()


def _parse_flag(value: Optional[str]) -> bool:
    """True for "true" or "1", case-insensitive."""
    return (value or "").strip().lower() in ("true", "1")


@dataclass
class Config:
    """Application configuration, built once per process and passed around."""

    # GitHub settings
    github_token: str = ""
    organization: str = ""
    topic: str = ""
    state_repository: str = ""
    state_branch: str = "data"

    # Telegram settings
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""
    telegram_thread_id: Optional[int] = None

    # Run settings
    force_resend: bool = False

    # Set by from_env when TG_GROUP_TOPIC_ID is present but not an integer
    _invalid_thread_id: Optional[str] = field(default=None, init=False, repr=False)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Config":
        """Read settings from the environment (or an explicit mapping)."""
        if env is None:
            env = os.environ

        thread_raw = (env.get("TG_GROUP_TOPIC_ID") or "").strip()
        thread_id = None
        invalid_thread_id = None
        if thread_raw:
            try:
                thread_id = int(thread_raw)
            except ValueError:
                invalid_thread_id = thread_raw

        config = cls(
            github_token=env.get("CUSTOM_GITHUB_TOKEN") or env.get("GITHUB_TOKEN") or "",
            organization=(env.get("GITHUB_ORGANIZATION") or "").strip(),
            topic=(env.get("PLUGIN_TOPIC") or "").strip(),
            state_repository=(env.get("GITHUB_REPOSITORY") or "").strip(),
            state_branch=(env.get("STATE_BRANCH") or "data").strip(),
            telegram_bot_token=env.get("TG_BOT_TOKEN") or "",
            telegram_chat_id=(env.get("TG_GROUP_ID") or "").strip(),
            telegram_thread_id=thread_id,
            force_resend=_parse_flag(env.get("FORCE_RESEND")),
        )
        config._invalid_thread_id = invalid_thread_id
        return config

    def validate_github(self) -> list[str]:
        """Errors for the settings every entry point needs."""
        errors = []

        if not self.github_token:
            errors.append("CUSTOM_GITHUB_TOKEN (or GITHUB_TOKEN) is required")

        if not self.state_repository:
            errors.append("GITHUB_REPOSITORY is required (format: owner/repo)")
        elif self.state_repository.count("/") != 1 or self.state_repository.startswith("/") \
                or self.state_repository.endswith("/"):
            errors.append(f"GITHUB_REPOSITORY must be owner/repo, got '{self.state_repository}'")

        if not self.state_branch:
            errors.append("STATE_BRANCH must not be empty")

        return errors

    def validate(self) -> tuple[bool, list[str]]:
        """Validate the settings a sync run needs and return (is_valid, errors)."""
        errors = self.validate_github()

        if not self.organization:
            errors.append("GITHUB_ORGANIZATION is required")

        if not self.topic:
            errors.append("PLUGIN_TOPIC is required")

        if not self.telegram_bot_token:
            errors.append("TG_BOT_TOKEN is required")

        if not self.telegram_chat_id:
            errors.append("TG_GROUP_ID is required")

        if self._invalid_thread_id is not None:
            errors.append(f"TG_GROUP_TOPIC_ID must be an integer, got '{self._invalid_thread_id}'")

        return len(errors) == 0, errors
