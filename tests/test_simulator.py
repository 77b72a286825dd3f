from __future__ import annotations

import math
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import TypeVar

import pytest

from fxsignal.domain.models import HISTORY_CAP, TrendBias, UnknownInstrumentError
from fxsignal.indicators import rsi
from fxsignal.market.instruments import BASE_PRICES, all_pairs
from fxsignal.market.simulator import BAR_INTERVAL_MS, MarketSimulator, seeded_simulator

T = TypeVar("T")

NOW = datetime(2026, 1, 5, 10, 2, 30, tzinfo=UTC)
NOW_MS = int(NOW.timestamp() * 1000)


class _FixedRandom:
    def __init__(self, value: float = 0.5) -> None:
        self.value = value

    def random(self) -> float:
        return self.value

    def choice(self, seq: Sequence[T]) -> T:
        return seq[0]


def _simulator(value: float = 0.5) -> MarketSimulator:
    simulator = MarketSimulator(rng=_FixedRandom(value), clock=lambda: NOW)
    simulator.initialize(["EUR/USD"], {"EUR/USD": 1.09})
    return simulator


def test_initialize_seeds_51_bars_at_five_minute_spacing() -> None:
    simulator = _simulator()
    history = simulator.history_window("EUR/USD", 100)

    assert len(history) == 51
    assert history[-1].timestamp == NOW_MS
    assert history[0].timestamp == NOW_MS - 50 * BAR_INTERVAL_MS
    assert all(b.timestamp - a.timestamp == BAR_INTERVAL_MS for a, b in zip(history, history[1:]))
    assert simulator.trend("EUR/USD") == TrendBias.NEUTRAL


def test_seed_bars_follow_sinusoidal_drift_without_noise() -> None:
    history = _simulator().history_window("EUR/USD", 100)
    volatility = 0.0005 * 1.09

    assert history[0].open == 1.09
    assert history[0].close == pytest.approx(1.09 + math.sin(5.0) * volatility)
    assert history[-1].close == pytest.approx(history[-1].open)
    for previous, bar in zip(history, history[1:]):
        assert bar.open == previous.close
    for bar in history:
        assert bar.high == pytest.approx(max(bar.open, bar.close) + 0.5 * volatility)
        assert bar.low == pytest.approx(min(bar.open, bar.close) - 0.5 * volatility)


def test_initialize_falls_back_to_unit_base_price() -> None:
    simulator = MarketSimulator(rng=_FixedRandom(), clock=lambda: NOW)
    simulator.initialize(["XAU/XAG"], {})
    assert simulator.history_window("XAU/XAG", 1)[0].timestamp == NOW_MS
    assert simulator.history_window("XAU/XAG", 51)[0].open == 1.0


def test_initialize_rejects_non_positive_base_price() -> None:
    simulator = MarketSimulator(rng=_FixedRandom(), clock=lambda: NOW)
    with pytest.raises(ValueError, match="must be positive"):
        simulator.initialize(["EUR/USD"], {"EUR/USD": 0.0})


def test_advance_appends_one_bar_from_last_close() -> None:
    simulator = _simulator()
    before = simulator.history_window("EUR/USD", 100)

    simulator.advance()

    after = simulator.history_window("EUR/USD", 100)
    assert len(after) == len(before) + 1
    assert after[-1].open == before[-1].close
    assert after[-1].close == before[-1].close
    assert after[-1].timestamp == NOW_MS


def test_advance_caps_history_and_never_shrinks() -> None:
    simulator = _simulator(value=0.3)
    length = len(simulator.history_window("EUR/USD", 1000))
    for _ in range(30):
        simulator.advance()
        current = len(simulator.history_window("EUR/USD", 1000))
        assert length <= current <= HISTORY_CAP
        length = current
    assert length == HISTORY_CAP


def test_advance_evicts_oldest_bar_first() -> None:
    simulator = _simulator()
    for _ in range(HISTORY_CAP - 51):
        simulator.advance()
    before = simulator.history_window("EUR/USD", 1000)

    simulator.advance()

    window = simulator.history_window("EUR/USD", 1000)
    assert len(window) == HISTORY_CAP
    assert window[0] == before[1]
    assert window[0].timestamp == before[0].timestamp + BAR_INTERVAL_MS


def test_up_trend_with_zero_noise_is_monotonic_and_rsi_is_100() -> None:
    simulator = _simulator()
    simulator.set_trend("EUR/USD", TrendBias.UP)

    for _ in range(50):
        simulator.advance()

    history = simulator.history_window("EUR/USD", 100)
    closes = [bar.close for bar in history]
    assert len(history) == HISTORY_CAP
    assert all(b >= a for a, b in zip(closes, closes[1:]))
    assert rsi(simulator.history_window("EUR/USD", 50)) == 100.0
    assert simulator.trend("EUR/USD") == TrendBias.UP


def test_down_trend_pushes_price_lower() -> None:
    simulator = _simulator()
    simulator.set_trend("EUR/USD", TrendBias.DOWN)
    start = simulator.history_window("EUR/USD", 1)[0].close

    for _ in range(5):
        simulator.advance()

    assert simulator.history_window("EUR/USD", 1)[0].close == pytest.approx(start * 0.9995**5)


def test_regime_switch_resamples_trend() -> None:
    simulator = _simulator(value=0.9)
    simulator.advance()
    assert simulator.trend("EUR/USD") == TrendBias.UP


def test_history_window_is_read_only_snapshot() -> None:
    simulator = _simulator()
    window = simulator.history_window("EUR/USD", 20)

    assert isinstance(window, tuple)
    assert len(window) == 20
    assert simulator.history_window("EUR/USD", 0) == ()
    assert len(simulator.history_window("EUR/USD", 100)) == 51


def test_unknown_instrument_fails_fast() -> None:
    simulator = _simulator()
    with pytest.raises(UnknownInstrumentError, match="Unknown instrument"):
        simulator.history_window("BTC/USD", 10)
    with pytest.raises(UnknownInstrumentError):
        simulator.set_trend("BTC/USD", TrendBias.UP)


def test_seeded_simulator_covers_every_session_pair() -> None:
    simulator = seeded_simulator(rng=_FixedRandom(), clock=lambda: NOW)
    assert set(simulator.instruments) == set(all_pairs()) == set(BASE_PRICES)
    assert len(simulator.instruments) == 12
