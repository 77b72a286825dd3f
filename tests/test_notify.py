from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import pytest

from fxsignal.domain.models import Action, SignalRecord
from fxsignal.notify import TelegramNotifier, format_local_time, format_signal_message


class _FakeTransport:
    def __init__(self, response: dict[str, Any]) -> None:
        self.response = response
        self.calls: list[tuple[str, dict[str, object], float]] = []

    def post_json(self, url: str, payload: dict[str, object], timeout_seconds: float) -> dict[str, Any]:
        self.calls.append((url, payload, timeout_seconds))
        return self.response


def _record(action: Action = Action.BUY) -> SignalRecord:
    return SignalRecord(
        pair="EUR/USD",
        action=action,
        confidence=72,
        start_time=datetime(2026, 1, 5, 10, 5, tzinfo=UTC),
        end_time=datetime(2026, 1, 5, 10, 10, tzinfo=UTC),
        session="London",
    )


def test_format_local_time_renders_zone_abbreviation() -> None:
    value = datetime(2026, 1, 5, 10, 5, tzinfo=UTC)
    assert format_local_time(value) == "10:05 UTC"
    assert format_local_time(value, "Africa/Nairobi") == "13:05 EAT"


def test_format_signal_message_for_buy() -> None:
    text = format_signal_message(_record(), "Africa/Nairobi")

    assert "<b>Pair:</b> EUR/USD" in text
    assert "<b>Action:</b> BUY/CALL" in text
    assert "<b>Confidence:</b> 72%" in text
    assert "<b>Start Time:</b> 13:05 EAT" in text
    assert "<b>End Time:</b> 13:10 EAT" in text
    assert "<b>Session:</b> London Session" in text


def test_format_signal_message_for_sell() -> None:
    assert "<b>Action:</b> SELL/PUT" in format_signal_message(_record(Action.SELL))


def test_send_posts_html_message() -> None:
    transport = _FakeTransport({"ok": True, "result": {"message_id": 1}})
    notifier = TelegramNotifier(
        bot_token="123:abc",
        chat_id="-100",
        api_base="https://telegram.example/",
        timeout_seconds=3.0,
        transport=transport,
    )

    notifier.send(_record())

    assert len(transport.calls) == 1
    url, payload, timeout = transport.calls[0]
    assert url == "https://telegram.example/bot123:abc/sendMessage"
    assert payload["chat_id"] == "-100"
    assert payload["parse_mode"] == "HTML"
    assert "EUR/USD" in str(payload["text"])
    assert timeout == 3.0


def test_send_raises_when_api_rejects_message() -> None:
    notifier = TelegramNotifier(
        bot_token="123:abc",
        chat_id="-100",
        transport=_FakeTransport({"ok": False, "description": "Bad Request: chat not found"}),
    )
    with pytest.raises(ValueError, match="chat not found"):
        notifier.send(_record())


def test_send_raises_generic_error_without_description() -> None:
    notifier = TelegramNotifier(bot_token="t", chat_id="c", transport=_FakeTransport({}))
    with pytest.raises(ValueError, match="Failed to send Telegram message"):
        notifier.send(_record())


@pytest.mark.parametrize(
    ("kwargs", "message"),
    [
        ({"bot_token": " ", "chat_id": "c"}, "bot_token must be non-empty"),
        ({"bot_token": "t", "chat_id": ""}, "chat_id must be non-empty"),
        ({"bot_token": "t", "chat_id": "c", "timeout_seconds": 0}, "timeout_seconds"),
        ({"bot_token": "t", "chat_id": "c", "timezone": "Mars/Olympus"}, "Unknown timezone"),
    ],
)
def test_notifier_validates_configuration(kwargs: dict[str, Any], message: str) -> None:
    with pytest.raises(ValueError, match=message):
        TelegramNotifier(**kwargs)
