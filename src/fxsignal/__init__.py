"""Synthetic FX market simulator and multi-indicator signal engine."""

from fxsignal.config import Settings
from fxsignal.domain.models import Action, PriceBar, SignalRecord
from fxsignal.generator import GeneratorConfig, SignalGenerator, build_generator
from fxsignal.market.simulator import MarketSimulator
from fxsignal.scoring import score_history

__version__ = "0.1.0"

__all__ = [
    "Action",
    "GeneratorConfig",
    "MarketSimulator",
    "PriceBar",
    "Settings",
    "SignalGenerator",
    "SignalRecord",
    "build_generator",
    "score_history",
]
