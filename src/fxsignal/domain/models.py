from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

HISTORY_CAP = 60


class UnknownInstrumentError(LookupError):
    """Raised when an instrument id was never seeded into the simulator."""


class TrendBias(StrEnum):
    UP = "up"
    DOWN = "down"
    NEUTRAL = "neutral"


class Action(StrEnum):
    BUY = "BUY"
    SELL = "SELL"


class SessionName(StrEnum):
    ASIAN = "Asian"
    LONDON = "London"
    NEW_YORK = "New York"


@dataclass(slots=True, frozen=True)
class PriceBar:
    timestamp: int
    open: float
    high: float
    low: float
    close: float


@dataclass(slots=True)
class InstrumentState:
    history: deque[PriceBar] = field(default_factory=lambda: deque(maxlen=HISTORY_CAP))
    trend: TrendBias = TrendBias.NEUTRAL


@dataclass(slots=True, frozen=True)
class Session:
    name: SessionName
    pairs: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class ScoredAction:
    action: Action
    confidence: int
    bullish: float = 0.0
    bearish: float = 0.0
    total_weight: float = 0.0


@dataclass(slots=True, frozen=True)
class SignalRecord:
    pair: str
    action: Action
    confidence: int
    start_time: datetime
    end_time: datetime
    session: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "pair": self.pair,
            "action": str(self.action),
            "confidence": int(self.confidence),
            "start_time": to_iso(self.start_time),
            "end_time": to_iso(self.end_time),
            "session": self.session,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> SignalRecord:
        return cls(
            pair=str(payload["pair"]),
            action=Action(payload["action"]),
            confidence=int(payload["confidence"]),
            start_time=datetime.fromisoformat(str(payload["start_time"])),
            end_time=datetime.fromisoformat(str(payload["end_time"])),
            session=str(payload["session"]),
        )


def to_iso(value: datetime) -> str:
    """Render an aware datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    if value.tzinfo is None:
        raise ValueError("datetime must be timezone-aware")
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
