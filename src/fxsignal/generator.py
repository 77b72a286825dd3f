from __future__ import annotations

import logging
import random
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from fxsignal.config import Settings
from fxsignal.domain.models import PriceBar, ScoredAction, SignalRecord
from fxsignal.indicators import rsi
from fxsignal.market.simulator import (
    Clock,
    MarketSimulator,
    RandomSource,
    seeded_simulator,
    utc_now,
)
from fxsignal.scoring import MAX_CONFIDENCE, round_half_up, score_history
from fxsignal.sessions import next_five_minute_interval, resolve_session

logger = logging.getLogger(__name__)

Scorer = Callable[[Sequence[PriceBar]], ScoredAction]

SCORING_WINDOW = 50
SHORT_WINDOW = 20
MIN_SHORT_BARS = 10


@dataclass(slots=True)
class GeneratorConfig:
    max_attempts: int = 10
    min_base_confidence: int = 50
    min_final_confidence: int = 55
    bonus_scale: float = 5.0

    def __post_init__(self) -> None:
        if self.max_attempts <= 0:
            raise ValueError("max_attempts must be greater than zero")
        for name in ("min_base_confidence", "min_final_confidence"):
            value = getattr(self, name)
            if not 0 <= value <= MAX_CONFIDENCE:
                raise ValueError(f"{name} must be between 0 and {MAX_CONFIDENCE}")


def _direction(bars: Sequence[PriceBar]) -> int:
    return 1 if bars[-1].close > bars[0].close else -1


class SignalGenerator:
    """Bounded search for a tradable signal in the active session."""

    def __init__(
        self,
        simulator: MarketSimulator,
        rng: RandomSource,
        clock: Clock | None = None,
        config: GeneratorConfig | None = None,
        scorer: Scorer = score_history,
    ) -> None:
        self.simulator = simulator
        self.rng = rng
        self.clock: Clock = clock or utc_now
        self.config = config or GeneratorConfig()
        self.scorer = scorer

    def analyze(self, pair: str) -> ScoredAction:
        """Advance the market one step and score ``pair``."""
        self.simulator.advance()
        return self.scorer(self.simulator.history_window(pair, SCORING_WINDOW))

    def multi_timeframe_bonus(self, pair: str) -> float:
        short = self.simulator.history_window(pair, SHORT_WINDOW)
        if len(short) < MIN_SHORT_BARS:
            return 0.0
        medium = self.simulator.history_window(pair, SCORING_WINDOW)

        bonus = 0.8 if _direction(short) == _direction(medium) else 0.3
        if abs(rsi(short) - rsi(medium)) > 20:
            bonus += 0.1
        return bonus

    def generate(self) -> SignalRecord | None:
        now = self.clock()
        session = resolve_session(now)
        cfg = self.config

        for attempt in range(1, cfg.max_attempts + 1):
            pair = self.rng.choice(session.pairs)
            scored = self.analyze(pair)
            logger.debug(
                "attempt=%s pair=%s action=%s confidence=%s",
                attempt,
                pair,
                scored.action,
                scored.confidence,
            )
            if scored.confidence < cfg.min_base_confidence:
                continue

            bonus = self.multi_timeframe_bonus(pair)
            confidence = min(
                MAX_CONFIDENCE,
                round_half_up(scored.confidence + bonus * cfg.bonus_scale),
            )
            if confidence < cfg.min_final_confidence:
                continue

            start, end = next_five_minute_interval(now)
            record = SignalRecord(
                pair=pair,
                action=scored.action,
                confidence=confidence,
                start_time=start,
                end_time=end,
                session=str(session.name),
            )
            logger.info(
                "Signal %s %s confidence=%s session=%s after %s attempts",
                record.pair,
                record.action,
                record.confidence,
                record.session,
                attempt,
            )
            return record

        logger.info(
            "No signal met the confidence threshold in %s attempts (session=%s)",
            cfg.max_attempts,
            session.name,
        )
        return None


def build_generator(settings: Settings, clock: Clock | None = None) -> SignalGenerator:
    rng = random.Random(settings.random_seed)
    return SignalGenerator(
        simulator=seeded_simulator(rng=rng, clock=clock),
        rng=rng,
        clock=clock,
        config=GeneratorConfig(
            max_attempts=settings.max_attempts,
            min_base_confidence=settings.min_base_confidence,
            min_final_confidence=settings.min_final_confidence,
        ),
    )
