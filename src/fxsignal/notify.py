from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Protocol
from urllib import request as urllib_request
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fxsignal.domain.models import Action, SignalRecord

logger = logging.getLogger(__name__)

ACTION_LABELS = {Action.BUY: "BUY/CALL", Action.SELL: "SELL/PUT"}
ACTION_MARKERS = {Action.BUY: "\U0001f4c8", Action.SELL: "\U0001f4c9"}


class NotifierTransport(Protocol):
    def post_json(
        self,
        url: str,
        payload: dict[str, object],
        timeout_seconds: float,
    ) -> dict[str, Any]: ...


class UrllibNotifierTransport:
    def post_json(
        self,
        url: str,
        payload: dict[str, object],
        timeout_seconds: float,
    ) -> dict[str, Any]:
        req = urllib_request.Request(
            url=url,
            method="POST",
            data=json.dumps(payload).encode("utf-8"),
            headers={"Content-Type": "application/json"},
        )
        with urllib_request.urlopen(req, timeout=timeout_seconds) as resp:
            content = resp.read().decode("utf-8")
        if not content.strip():
            return {}
        loaded = json.loads(content)
        if not isinstance(loaded, dict):
            raise ValueError("Notifier response must be a JSON object")
        return loaded


def format_local_time(value: datetime, timezone: str = "UTC") -> str:
    local = value.astimezone(ZoneInfo(timezone))
    return f"{local:%H:%M} {local.tzname()}"


def format_signal_message(record: SignalRecord, timezone: str = "UTC") -> str:
    lines = [
        "<b>⚡ FXSignal Trading Signal ⚡</b>",
        "",
        f"\U0001f4ca <b>Pair:</b> {record.pair}",
        "",
        f"<b>Action:</b> {ACTION_LABELS[record.action]} {ACTION_MARKERS[record.action]}",
        "",
        f"\U0001f3af <b>Confidence:</b> {record.confidence}% \U0001f525",
        "",
        f"⏰ <b>Start Time:</b> {format_local_time(record.start_time, timezone)}",
        "",
        f"\U0001f3c1 <b>End Time:</b> {format_local_time(record.end_time, timezone)}",
        "",
        f"\U0001f4cd <b>Session:</b> {record.session} Session",
    ]
    return "\n".join(lines)


class TelegramNotifier:
    """Forwards formatted signals to a Telegram chat via the Bot API."""

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        api_base: str = "https://api.telegram.org",
        timezone: str = "UTC",
        timeout_seconds: float = 10.0,
        transport: NotifierTransport | None = None,
    ) -> None:
        if not bot_token.strip():
            raise ValueError("bot_token must be non-empty")
        if not chat_id.strip():
            raise ValueError("chat_id must be non-empty")
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be greater than zero")
        try:
            ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {timezone}") from exc

        self.bot_token = bot_token
        self.chat_id = chat_id
        self.api_base = api_base.rstrip("/")
        self.timezone = timezone
        self.timeout_seconds = timeout_seconds
        self.transport: NotifierTransport = transport or UrllibNotifierTransport()

    def send(self, record: SignalRecord) -> None:
        response = self.transport.post_json(
            url=f"{self.api_base}/bot{self.bot_token}/sendMessage",
            payload={
                "chat_id": self.chat_id,
                "text": format_signal_message(record, self.timezone),
                "parse_mode": "HTML",
            },
            timeout_seconds=self.timeout_seconds,
        )
        if not response.get("ok"):
            raise ValueError(str(response.get("description") or "Failed to send Telegram message"))
        logger.info("Sent %s %s signal to Telegram", record.pair, record.action)
