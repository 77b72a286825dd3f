from __future__ import annotations

import logging
import runpy
from datetime import UTC, datetime, timedelta, timezone

import pytest

import fxsignal
import fxsignal.domain as domain_mod
import fxsignal.market as market_mod
import fxsignal.web as web_mod
from fxsignal.domain.models import Action, SignalRecord, to_iso
from fxsignal.logging_config import configure_logging


def test_top_level_package_exports() -> None:
    assert "Settings" in fxsignal.__all__
    assert "SignalGenerator" in fxsignal.__all__
    assert isinstance(fxsignal.__version__, str)


def test_reexport_modules() -> None:
    assert "PriceBar" in domain_mod.__all__
    assert "MarketSimulator" in market_mod.__all__
    assert "create_app" in web_mod.__all__


def test_to_iso_renders_utc_with_milliseconds() -> None:
    eat = timezone(timedelta(hours=3))
    assert to_iso(datetime(2026, 1, 5, 13, 5, tzinfo=eat)) == "2026-01-05T10:05:00.000Z"
    with pytest.raises(ValueError, match="timezone-aware"):
        to_iso(datetime(2026, 1, 5, 10, 5))


def test_signal_record_payload_roundtrip() -> None:
    record = SignalRecord(
        pair="AUD/USD",
        action=Action.SELL,
        confidence=58,
        start_time=datetime(2026, 1, 5, 17, 0, tzinfo=UTC),
        end_time=datetime(2026, 1, 5, 17, 5, tzinfo=UTC),
        session="New York",
    )
    payload = record.to_payload()
    assert payload["action"] == "SELL"
    assert payload["start_time"] == "2026-01-05T17:00:00.000Z"
    assert SignalRecord.from_payload(payload) == record


def test_configure_logging_uses_uppercase_level(monkeypatch) -> None:
    captured: dict[str, object] = {}

    def _fake_basic_config(**kwargs) -> None:
        captured.update(kwargs)

    monkeypatch.setattr(logging, "basicConfig", _fake_basic_config)
    configure_logging("debug")
    assert captured["level"] == "DEBUG"


def test_main_module_invokes_cli_main(monkeypatch) -> None:
    called = {"count": 0}

    def _fake_main() -> None:
        called["count"] += 1

    monkeypatch.setattr("fxsignal.cli.main", _fake_main)
    runpy.run_module("fxsignal.__main__", run_name="__main__")
    assert called["count"] == 1
