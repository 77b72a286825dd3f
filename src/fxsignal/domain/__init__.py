from fxsignal.domain.models import (
    HISTORY_CAP,
    Action,
    InstrumentState,
    PriceBar,
    ScoredAction,
    Session,
    SessionName,
    SignalRecord,
    TrendBias,
    UnknownInstrumentError,
)

__all__ = [
    "HISTORY_CAP",
    "Action",
    "InstrumentState",
    "PriceBar",
    "ScoredAction",
    "Session",
    "SessionName",
    "SignalRecord",
    "TrendBias",
    "UnknownInstrumentError",
]
