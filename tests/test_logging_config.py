"""Tests for secret scrubbing in log output."""

from interlink.logging_config import sanitize_secrets

BOT_TOKEN = "MTA5ODc2NTQzMjEwOTg3NjU0Mw.GaBcDe.abcdefghijklmnopqrstuvwxyz0123456789"


def test_bot_token_redacted():
    event = sanitize_secrets(None, "info", {"event": "x", "detail": f"token={BOT_TOKEN}"})
    assert BOT_TOKEN not in event["detail"]
    assert "***REDACTED***" in event["detail"]


def test_authorization_header_redacted_in_nested_values():
    header = "Bot abcdefghijklmnopqrstuvwxyz123456"
    event = sanitize_secrets(
        None, "info", {"event": "x", "headers": {"Authorization": header}, "args": [header]}
    )
    assert event["headers"]["Authorization"] == "***REDACTED***"
    assert event["args"] == ["***REDACTED***"]


def test_webhook_token_redacted_keeps_id():
    url = "https://discord.com/api/v10/webhooks/1234567890/aW50ZXJhY3Rpb246dG9rZW4tdmFsdWUtaGVyZQ/messages/@original"
    event = sanitize_secrets(None, "info", {"event": "x", "url": url})
    assert "/webhooks/1234567890/***REDACTED***/messages" in event["url"]


def test_plain_values_untouched():
    event = sanitize_secrets(None, "info", {"event": "handler_loaded", "count": 3, "kind": "button"})
    assert event == {"event": "handler_loaded", "count": 3, "kind": "button"}
