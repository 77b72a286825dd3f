from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from fxsignal.config import Settings
from fxsignal.domain.models import SignalRecord
from fxsignal.notify import TelegramNotifier
from fxsignal.storage import SignalStorage

logger = logging.getLogger(__name__)


class SignalSink(Protocol):
    def send(self, record: SignalRecord) -> None: ...


@dataclass(slots=True, frozen=True)
class PublishResult:
    signal_id: int | None
    stored: bool
    notified: bool


def publish_signal(
    record: SignalRecord,
    storage: SignalStorage | None,
    notifier: SignalSink | None,
) -> PublishResult:
    """Hand ``record`` to the store, then to the notifier if it was stored.

    Neither collaborator is retried. Failures are logged and reported, never
    raised, so a generated signal is always returned to the caller.
    """
    signal_id: int | None = None
    stored = False
    if storage is not None:
        try:
            signal_id = storage.record_signal(record)
            stored = True
        except Exception:
            # driver errors (sqlite3, psycopg) share no base class below Exception
            logger.exception("Failed to persist signal for %s", record.pair)
            return PublishResult(signal_id=None, stored=False, notified=False)

    notified = False
    if notifier is not None:
        try:
            notifier.send(record)
            notified = True
        except Exception:
            logger.exception("Failed to notify signal for %s", record.pair)
    return PublishResult(signal_id=signal_id, stored=stored, notified=notified)


def storage_from_settings(
    settings: Settings,
    override_database_url: str | None = None,
) -> SignalStorage | None:
    database_url = override_database_url or settings.database_url
    if not database_url:
        return None
    # no I/O here; the schema is created on first use inside publish_signal
    return SignalStorage(database_url)


def notifier_from_settings(settings: Settings) -> TelegramNotifier | None:
    if not settings.telegram_bot_token or not settings.telegram_chat_id:
        return None
    return TelegramNotifier(
        bot_token=settings.telegram_bot_token,
        chat_id=settings.telegram_chat_id,
        api_base=settings.telegram_api_base,
        timezone=settings.notify_timezone,
        timeout_seconds=settings.notify_timeout_seconds,
    )
