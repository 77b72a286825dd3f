from __future__ import annotations

from fxsignal.domain.models import SessionName

SESSION_PAIRS: dict[SessionName, tuple[str, ...]] = {
    SessionName.ASIAN: ("USD/JPY", "AUD/JPY", "NZD/JPY", "AUD/USD", "NZD/USD"),
    SessionName.LONDON: ("EUR/USD", "GBP/USD", "EUR/GBP", "EUR/JPY", "GBP/JPY"),
    SessionName.NEW_YORK: ("USD/CAD", "EUR/USD", "GBP/USD", "USD/CHF", "AUD/USD"),
}

BASE_PRICES: dict[str, float] = {
    "USD/JPY": 145.5,
    "AUD/JPY": 99.2,
    "NZD/JPY": 94.8,
    "AUD/USD": 0.68,
    "NZD/USD": 0.65,
    "EUR/USD": 1.09,
    "GBP/USD": 1.27,
    "EUR/GBP": 0.86,
    "EUR/JPY": 158.5,
    "GBP/JPY": 184.2,
    "USD/CAD": 1.35,
    "USD/CHF": 0.88,
}

DEFAULT_BASE_PRICE = 1.0


def all_pairs() -> tuple[str, ...]:
    """Every pair traded in any session, in first-seen order."""
    seen: dict[str, None] = {}
    for pairs in SESSION_PAIRS.values():
        for pair in pairs:
            seen.setdefault(pair, None)
    return tuple(seen)
