from __future__ import annotations

import pytest
import requests

from conftest import FakeResponse, FakeSession
from telegram_client import TelegramClient, TelegramError

BASE = "https://api.telegram.org/botTOKEN"


def _client(routes, thread_id=None) -> tuple[TelegramClient, FakeSession]:
    session = FakeSession(BASE, routes)
    return TelegramClient("TOKEN", "-100123", thread_id=thread_id, session=session), session


def test_send_message_returns_message_id():
    client, session = _client({
        ("POST", "/sendMessage"): FakeResponse(200, {"ok": True, "result": {"message_id": 77}}),
    })

    assert client.send_message("hello") == 77
    payload = session.calls[0]["json"]
    assert payload["chat_id"] == "-100123"
    assert payload["parse_mode"] == "MarkdownV2"
    assert payload["link_preview_options"] == {"is_disabled": True}
    assert "message_thread_id" not in payload


def test_send_message_into_thread():
    client, session = _client(
        {("POST", "/sendMessage"): FakeResponse(200, {"ok": True, "result": {"message_id": 1}})},
        thread_id=9,
    )

    client.send_message("hello")

    assert session.calls[0]["json"]["message_thread_id"] == 9


def test_send_message_rejected():
    client, _ = _client({
        ("POST", "/sendMessage"): FakeResponse(
            400, {"ok": False, "error_code": 400, "description": "Bad Request: can't parse entities"}
        ),
    })

    with pytest.raises(TelegramError, match="can't parse entities") as excinfo:
        client.send_message("*broken")
    assert excinfo.value.error_code == 400


def test_delete_message():
    client, session = _client({("POST", "/deleteMessage"): FakeResponse(200, {"ok": True, "result": True})})

    client.delete_message(5)

    assert session.calls[0]["json"] == {"chat_id": "-100123", "message_id": 5}


def test_delete_message_network_error():
    client, _ = _client({("POST", "/deleteMessage"): requests.exceptions.ConnectTimeout("slow")})

    with pytest.raises(TelegramError, match="Network error"):
        client.delete_message(5)
