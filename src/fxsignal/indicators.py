from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import pandas as pd

from fxsignal.domain.models import PriceBar

BAR_COLUMNS = ["timestamp", "open", "high", "low", "close"]


@dataclass(slots=True, frozen=True)
class MACDResult:
    macd: float
    signal: float
    histogram: float


@dataclass(slots=True, frozen=True)
class BollingerBands:
    upper: float
    middle: float
    lower: float


@dataclass(slots=True, frozen=True)
class StochasticResult:
    k: float
    d: float


@dataclass(slots=True, frozen=True)
class SupportResistance:
    support: float
    resistance: float


@dataclass(slots=True, frozen=True)
class IndicatorSnapshot:
    price: float
    rsi: float
    macd: MACDResult
    sma20: float
    sma50: float
    ema9: float
    stochastic: StochasticResult
    bollinger: BollingerBands
    atr: float
    levels: SupportResistance

    def to_dict(self) -> dict[str, float]:
        return {
            "price": self.price,
            "rsi": self.rsi,
            "macd": self.macd.macd,
            "macd_signal": self.macd.signal,
            "macd_histogram": self.macd.histogram,
            "sma20": self.sma20,
            "sma50": self.sma50,
            "ema9": self.ema9,
            "stoch_k": self.stochastic.k,
            "stoch_d": self.stochastic.d,
            "bb_upper": self.bollinger.upper,
            "bb_middle": self.bollinger.middle,
            "bb_lower": self.bollinger.lower,
            "atr": self.atr,
            "support": self.levels.support,
            "resistance": self.levels.resistance,
        }


def bars_to_frame(bars: Sequence[PriceBar]) -> pd.DataFrame:
    return pd.DataFrame(
        [(b.timestamp, b.open, b.high, b.low, b.close) for b in bars],
        columns=BAR_COLUMNS,
    )


def _closes(bars: Sequence[PriceBar]) -> pd.Series:
    return pd.Series([b.close for b in bars], dtype="float64")


def _validate_period(period: int) -> None:
    if period <= 0:
        raise ValueError("period must be greater than zero")


def rsi(bars: Sequence[PriceBar], period: int = 14) -> float:
    """Relative strength index in [0, 100].

    Gains and losses are the last ``period`` positive and negative close
    changes respectively, each averaged over the nominal period.
    """
    _validate_period(period)
    changes = _closes(bars).diff().iloc[1:]
    gains = changes[changes > 0].tail(period)
    losses = changes[changes < 0].abs().tail(period)

    avg_gain = float(gains.sum()) / period
    avg_loss = float(losses.sum()) / period
    if avg_loss == 0:
        return 100.0 if avg_gain > 0 else 0.0

    rs = avg_gain / avg_loss
    return 100.0 - (100.0 / (1.0 + rs))


def ema_series(values: Sequence[float] | pd.Series, period: int) -> pd.Series:
    """EMA at every prefix, seeded with the first value, multiplier 2/(period+1)."""
    _validate_period(period)
    series = values if isinstance(values, pd.Series) else pd.Series(values, dtype="float64")
    return series.ewm(span=period, adjust=False).mean()


def ema(values: Sequence[float] | pd.Series, period: int) -> float:
    if len(values) == 0:
        _validate_period(period)
        return 0.0
    return float(ema_series(values, period).iloc[-1])


def sma(bars: Sequence[PriceBar], period: int) -> float:
    _validate_period(period)
    if not bars:
        return 0.0
    return float(_closes(bars).tail(period).mean())


def macd(
    bars: Sequence[PriceBar],
    fast: int = 12,
    slow: int = 26,
    signal_period: int = 9,
) -> MACDResult:
    if not bars:
        return MACDResult(macd=0.0, signal=0.0, histogram=0.0)
    closes = _closes(bars)
    line = ema_series(closes, fast) - ema_series(closes, slow)
    signal_line = ema_series(line, signal_period)

    macd_value = float(line.iloc[-1])
    signal_value = float(signal_line.iloc[-1])
    return MACDResult(
        macd=macd_value,
        signal=signal_value,
        histogram=macd_value - signal_value,
    )


def bollinger_bands(
    bars: Sequence[PriceBar],
    period: int = 20,
    width: float = 2.0,
) -> BollingerBands:
    _validate_period(period)
    if not bars:
        return BollingerBands(upper=0.0, middle=0.0, lower=0.0)
    window = _closes(bars).tail(period)
    middle = float(window.mean())
    std = float(window.std(ddof=0))
    return BollingerBands(
        upper=middle + std * width,
        middle=middle,
        lower=middle - std * width,
    )


def stochastic(bars: Sequence[PriceBar], period: int = 14, smoothing: int = 3) -> StochasticResult:
    _validate_period(period)
    if not bars:
        raise ValueError("stochastic requires at least one bar")
    frame = bars_to_frame(bars)
    highest = frame["high"].rolling(period, min_periods=1).max()
    lowest = frame["low"].rolling(period, min_periods=1).min()
    spread = highest - lowest

    k_series = (100.0 * (frame["close"] - lowest) / spread.where(spread != 0)).fillna(50.0)
    return StochasticResult(
        k=float(k_series.iloc[-1]),
        d=float(k_series.tail(smoothing).mean()),
    )


def average_true_range(bars: Sequence[PriceBar], period: int = 14) -> float:
    _validate_period(period)
    if len(bars) < 2:
        return 0.0
    frame = bars_to_frame(bars)
    prev_close = frame["close"].shift(1)
    true_range = pd.concat(
        [
            frame["high"] - frame["low"],
            (frame["high"] - prev_close).abs(),
            (frame["low"] - prev_close).abs(),
        ],
        axis=1,
    ).max(axis=1)
    return float(true_range.iloc[1:].tail(period).mean())


def support_resistance(bars: Sequence[PriceBar]) -> SupportResistance:
    if not bars:
        raise ValueError("support_resistance requires at least one bar")
    return SupportResistance(
        support=min(b.low for b in bars),
        resistance=max(b.high for b in bars),
    )


def compute_snapshot(bars: Sequence[PriceBar]) -> IndicatorSnapshot:
    if not bars:
        raise ValueError("compute_snapshot requires at least one bar")
    closes = _closes(bars)
    return IndicatorSnapshot(
        price=bars[-1].close,
        rsi=rsi(bars),
        macd=macd(bars),
        sma20=sma(bars, 20),
        sma50=sma(bars, 50),
        ema9=ema(closes, 9),
        stochastic=stochastic(bars),
        bollinger=bollinger_bands(bars),
        atr=average_true_range(bars),
        levels=support_resistance(bars),
    )
