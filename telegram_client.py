"""Telegram bot client for posting and removing repository messages."""
import logging
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)


class TelegramError(Exception):
    """Raised when the Bot API rejects a call or cannot be reached."""

    def __init__(self, message: str, error_code: Optional[int] = None):
        super().__init__(message)
        self.error_code = error_code


class TelegramClient:
    """Client for sending messages via Telegram bot."""

    BASE_URL = "https://api.telegram.org/bot"
    TIMEOUT = 30

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        thread_id: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ):
        """Initialize Telegram client with bot token, chat ID and optional forum thread."""
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.thread_id = thread_id
        self.url = f"{self.BASE_URL}{bot_token}"
        self.session = session or requests.Session()

    def _call(self, method: str, payload: Dict[str, Any]) -> Any:
        """
        Call a Bot API method and return its ``result``.

        Raises:
            TelegramError: on network errors, HTTP errors or an ``ok: false`` body
        """
        try:
            response = self.session.request(
                method="POST",
                url=f"{self.url}/{method}",
                json=payload,
                timeout=self.TIMEOUT,
            )
        except requests.exceptions.RequestException as e:
            raise TelegramError(f"Network error calling {method}: {e}")

        try:
            data = response.json() if response.content else {}
        except ValueError:
            data = {}

        if response.status_code >= 400 or not data.get("ok", False):
            description = data.get("description") or f"HTTP {response.status_code}"
            raise TelegramError(
                f"{method} failed: {description}",
                error_code=data.get("error_code", response.status_code),
            )

        return data.get("result")

    def send_message(self, text: str, parse_mode: str = "MarkdownV2") -> int:
        """
        Send a message to the configured chat.

        Args:
            text: Message text
            parse_mode: Parse mode (MarkdownV2, HTML or Markdown)

        Returns:
            The id of the sent message

        Raises:
            TelegramError: when the message could not be sent
        """
        payload = {
            "chat_id": self.chat_id,
            "text": text,
            "parse_mode": parse_mode,
            "link_preview_options": {"is_disabled": True},
        }
        if self.thread_id is not None:
            payload["message_thread_id"] = self.thread_id

        result = self._call("sendMessage", payload)
        if not isinstance(result, dict) or "message_id" not in result:
            raise TelegramError("sendMessage returned no message id")
        return int(result["message_id"])

    def delete_message(self, message_id: int) -> None:
        """Delete a message from the configured chat. Raises TelegramError on failure."""
        self._call("deleteMessage", {"chat_id": self.chat_id, "message_id": message_id})
