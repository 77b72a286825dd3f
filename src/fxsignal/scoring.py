from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from fxsignal.domain.models import Action, PriceBar, ScoredAction
from fxsignal.indicators import IndicatorSnapshot, compute_snapshot

MIN_BARS = 30
MAX_CONFIDENCE = 99
CONFIDENCE_SCALE = 1.8
VOLATILITY_LOOKBACK = 5


@dataclass(slots=True, frozen=True)
class ScoringThresholds:
    rsi_oversold: float = 30.0
    rsi_overbought: float = 70.0
    stoch_oversold: float = 20.0
    stoch_overbought: float = 80.0


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class _Ballot:
    __slots__ = ("bullish", "bearish", "total")

    def __init__(self) -> None:
        self.bullish = 0.0
        self.bearish = 0.0
        self.total = 0.0

    def vote(self, bullish: bool, bearish: bool, weight: float = 1.0) -> None:
        if bullish:
            self.bullish += weight
        elif bearish:
            self.bearish += weight
        self.total += weight

    def lean(self, bullish: bool, weight: float) -> None:
        """Give ``weight`` to one side unconditionally."""
        if bullish:
            self.bullish += weight
        else:
            self.bearish += weight


def score_history(
    bars: Sequence[PriceBar],
    thresholds: ScoringThresholds | None = None,
) -> ScoredAction:
    """Fuse indicator votes over ``bars`` into an action and a 0-99 confidence.

    Fewer than 30 bars yields ``BUY`` with confidence 0, meaning there is not
    enough history to score.
    """
    if len(bars) < MIN_BARS:
        return ScoredAction(action=Action.BUY, confidence=0)
    return score_snapshot(compute_snapshot(bars), bars, thresholds)


def score_snapshot(
    snapshot: IndicatorSnapshot,
    bars: Sequence[PriceBar],
    thresholds: ScoringThresholds | None = None,
) -> ScoredAction:
    """Score a precomputed snapshot; under 30 bars returns the ``BUY``/0 sentinel."""
    if len(bars) < MIN_BARS:
        return ScoredAction(action=Action.BUY, confidence=0)
    cfg = thresholds or ScoringThresholds()
    price = snapshot.price
    rising = price > bars[-2].close
    ballot = _Ballot()

    ballot.vote(snapshot.rsi < cfg.rsi_oversold, snapshot.rsi > cfg.rsi_overbought)

    m = snapshot.macd
    ballot.vote(
        m.histogram > 0 and m.macd > m.signal,
        m.histogram < 0 and m.macd < m.signal,
    )

    ballot.vote(
        price > snapshot.sma20 > snapshot.sma50,
        price < snapshot.sma20 < snapshot.sma50,
    )

    ballot.vote(price > snapshot.ema9, price < snapshot.ema9)

    ballot.vote(
        rising and price > snapshot.levels.support,
        not rising and price < snapshot.levels.resistance,
    )

    stoch = snapshot.stochastic
    ballot.vote(stoch.k < cfg.stoch_oversold, stoch.k > cfg.stoch_overbought)
    ballot.lean(stoch.k > stoch.d, 0.5)
    ballot.total += 0.5

    bands = snapshot.bollinger
    ballot.vote(price < bands.lower, price > bands.upper)
    ballot.lean(price > bands.middle, 0.5)
    ballot.total += 0.5

    recent = bars[-VOLATILITY_LOOKBACK:]
    recent_range = max(b.high for b in recent) - min(b.low for b in recent)
    ballot.lean(snapshot.atr > recent_range * 0.5, 0.3)
    ballot.total += 0.3

    action = Action.BUY if ballot.bullish > ballot.bearish else Action.SELL
    bullish_pct = (ballot.bullish / ballot.total) * 100
    margin = abs(ballot.bullish - ballot.bearish) / ballot.total
    confidence = round_half_up(bullish_pct * margin * CONFIDENCE_SCALE)

    return ScoredAction(
        action=action,
        confidence=max(0, min(MAX_CONFIDENCE, confidence)),
        bullish=ballot.bullish,
        bearish=ballot.bearish,
        total_weight=ballot.total,
    )
