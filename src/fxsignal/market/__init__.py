from fxsignal.market.instruments import BASE_PRICES, SESSION_PAIRS, all_pairs
from fxsignal.market.simulator import MarketSimulator, RandomSource, seeded_simulator

__all__ = [
    "BASE_PRICES",
    "SESSION_PAIRS",
    "all_pairs",
    "MarketSimulator",
    "RandomSource",
    "seeded_simulator",
]
