from __future__ import annotations

import logging
import math
import random
from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import UTC, datetime
from typing import Protocol, TypeVar

from fxsignal.domain.models import (
    InstrumentState,
    PriceBar,
    TrendBias,
    UnknownInstrumentError,
)
from fxsignal.market.instruments import BASE_PRICES, DEFAULT_BASE_PRICE, all_pairs

logger = logging.getLogger(__name__)

T = TypeVar("T")

BAR_INTERVAL_MS = 5 * 60 * 1000
SEED_BARS = 51
SEED_VOLATILITY = 0.0005
STEP_VOLATILITY = 0.0008
TREND_STRENGTH = 0.0005
REGIME_SWITCH_THRESHOLD = 0.85

_TREND_OPTIONS = (TrendBias.UP, TrendBias.DOWN, TrendBias.NEUTRAL)


class RandomSource(Protocol):
    def random(self) -> float: ...

    def choice(self, seq: Sequence[T]) -> T: ...


Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


def _epoch_ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


class MarketSimulator:
    """Synthetic OHLC history per instrument, advanced by a biased random walk.

    The simulator is the only owner of instrument state. Callers read history
    through ``history_window`` which returns immutable snapshots.
    """

    def __init__(self, rng: RandomSource | None = None, clock: Clock | None = None) -> None:
        self.rng: RandomSource = rng or random.Random()
        self.clock: Clock = clock or utc_now
        self._states: dict[str, InstrumentState] = {}

    @property
    def instruments(self) -> tuple[str, ...]:
        return tuple(self._states)

    def initialize(
        self,
        instrument_ids: Iterable[str],
        base_prices: Mapping[str, float],
    ) -> None:
        now_ms = _epoch_ms(self.clock())
        for instrument_id in instrument_ids:
            base = base_prices.get(instrument_id, DEFAULT_BASE_PRICE)
            if base <= 0:
                raise ValueError(f"base price for {instrument_id} must be positive")
            state = InstrumentState()
            state.history.extend(self._seed_history(base, now_ms))
            self._states[instrument_id] = state
        logger.debug("Seeded %s instruments", len(self._states))

    def advance(self) -> None:
        now_ms = _epoch_ms(self.clock())
        for instrument_id, state in self._states.items():
            if not state.history:
                raise UnknownInstrumentError(f"{instrument_id} has no seeded history")
            last = state.history[-1]

            if state.trend == TrendBias.UP:
                strength = TREND_STRENGTH
            elif state.trend == TrendBias.DOWN:
                strength = -TREND_STRENGTH
            else:
                strength = 0.0

            volatility = STEP_VOLATILITY * last.close
            noise = (self.rng.random() - 0.5) * volatility
            momentum = strength * last.close

            open_ = last.close
            close = last.close + momentum + noise
            high = max(open_, close) + self.rng.random() * volatility * 0.5
            low = min(open_, close) - self.rng.random() * volatility * 0.5
            # deque maxlen evicts the oldest bar
            state.history.append(
                PriceBar(timestamp=now_ms, open=open_, high=high, low=low, close=close)
            )

            if self.rng.random() > REGIME_SWITCH_THRESHOLD:
                state.trend = self.rng.choice(_TREND_OPTIONS)
                logger.debug("%s trend switched to %s", instrument_id, state.trend)

    def history_window(self, instrument_id: str, count: int) -> tuple[PriceBar, ...]:
        if count <= 0:
            return ()
        history = self._state(instrument_id).history
        start = max(0, len(history) - count)
        return tuple(history[i] for i in range(start, len(history)))

    def trend(self, instrument_id: str) -> TrendBias:
        return self._state(instrument_id).trend

    def set_trend(self, instrument_id: str, trend: TrendBias) -> None:
        self._state(instrument_id).trend = TrendBias(trend)

    def _state(self, instrument_id: str) -> InstrumentState:
        try:
            return self._states[instrument_id]
        except KeyError as exc:
            raise UnknownInstrumentError(f"Unknown instrument: {instrument_id}") from exc

    def _seed_history(self, base_price: float, now_ms: int) -> list[PriceBar]:
        bars: list[PriceBar] = []
        price = base_price
        volatility = SEED_VOLATILITY * base_price
        for i in range(SEED_BARS - 1, -1, -1):
            timestamp = now_ms - i * BAR_INTERVAL_MS
            drift = math.sin(i / 10) * volatility
            noise = (self.rng.random() - 0.5) * volatility * 2

            open_ = price
            close = price + drift + noise
            high = max(open_, close) + self.rng.random() * volatility
            low = min(open_, close) - self.rng.random() * volatility

            bars.append(PriceBar(timestamp=timestamp, open=open_, high=high, low=low, close=close))
            price = close
        return bars


def seeded_simulator(rng: RandomSource | None = None, clock: Clock | None = None) -> MarketSimulator:
    """Simulator seeded with every session pair at its reference price."""
    simulator = MarketSimulator(rng=rng, clock=clock)
    simulator.initialize(all_pairs(), BASE_PRICES)
    return simulator
