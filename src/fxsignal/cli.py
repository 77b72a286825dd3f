from __future__ import annotations

import argparse
import json
import logging
from time import sleep

from fxsignal.config import Settings
from fxsignal.domain.models import to_iso
from fxsignal.generator import SCORING_WINDOW, SignalGenerator, build_generator
from fxsignal.indicators import compute_snapshot
from fxsignal.logging_config import configure_logging
from fxsignal.market.simulator import utc_now
from fxsignal.publisher import (
    notifier_from_settings,
    publish_signal,
    storage_from_settings,
)
from fxsignal.sessions import (
    next_five_minute_interval,
    resolve_session,
    time_until_next_interval,
)
from fxsignal.storage import SignalStorage

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="FXSignal CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="Generate one signal for the active session")
    generate.add_argument("--database-url", default=None)
    generate.add_argument("--no-notify", action="store_true")

    analyze = subparsers.add_parser("analyze", help="Advance the market and score one pair")
    analyze.add_argument("--pair", required=True, help="Instrument id, e.g. EUR/USD")

    subparsers.add_parser("session", help="Show the active session and next interval")

    run = subparsers.add_parser("run", help="Generate a signal at every 5-minute boundary")
    run.add_argument("--iterations", type=int, default=None)
    run.add_argument("--database-url", default=None)
    run.add_argument("--no-notify", action="store_true")

    db_init = subparsers.add_parser("db-init", help="Initialize persistence schema")
    db_init.add_argument("--database-url", default=None)

    db_signals = subparsers.add_parser("db-signals", help="List recent persisted signals")
    db_signals.add_argument("--database-url", default=None)
    db_signals.add_argument("--limit", type=int, default=20)

    db_stats = subparsers.add_parser("db-stats", help="Count buy/sell among recent signals")
    db_stats.add_argument("--database-url", default=None)
    db_stats.add_argument("--limit", type=int, default=20)

    db_clear = subparsers.add_parser("db-clear", help="Delete all persisted signals")
    db_clear.add_argument("--database-url", default=None)

    return parser


def _generate_once(
    generator: SignalGenerator,
    settings: Settings,
    database_url: str | None,
    notify: bool,
) -> dict[str, object]:
    storage = storage_from_settings(settings, database_url)
    notifier = notifier_from_settings(settings) if notify else None

    record = generator.generate()
    if record is None:
        return {"signal": None}

    payload: dict[str, object] = {"signal": record.to_payload()}
    result = publish_signal(record, storage=storage, notifier=notifier)
    if result.signal_id is not None:
        payload["signal_id"] = result.signal_id
    payload["stored"] = result.stored
    payload["notified"] = result.notified
    return payload


def _handle_generate(args: argparse.Namespace, settings: Settings) -> int:
    generator = build_generator(settings)
    payload = _generate_once(
        generator,
        settings,
        getattr(args, "database_url", None),
        notify=not getattr(args, "no_notify", False),
    )
    print(json.dumps(payload))
    return 0


def _handle_analyze(args: argparse.Namespace, settings: Settings) -> int:
    generator = build_generator(settings)
    scored = generator.analyze(args.pair)
    bars = generator.simulator.history_window(args.pair, SCORING_WINDOW)
    payload = {
        "pair": args.pair,
        "action": str(scored.action),
        "confidence": scored.confidence,
        "bullish": round(scored.bullish, 4),
        "bearish": round(scored.bearish, 4),
        "trend": str(generator.simulator.trend(args.pair)),
        "bars": len(bars),
        "indicators": {k: round(v, 6) for k, v in compute_snapshot(bars).to_dict().items()},
    }
    print(json.dumps(payload))
    return 0


def _handle_session(args: argparse.Namespace) -> int:
    now = utc_now()
    session = resolve_session(now)
    start, end = next_five_minute_interval(now)
    payload = {
        "session": str(session.name),
        "pairs": list(session.pairs),
        "next_start": to_iso(start),
        "next_end": to_iso(end),
        "seconds_until_next": round(time_until_next_interval(now).total_seconds(), 3),
    }
    print(json.dumps(payload))
    return 0


def _handle_run(args: argparse.Namespace, settings: Settings) -> int:
    if args.iterations is not None and args.iterations <= 0:
        raise SystemExit("iterations must be greater than zero")
    generator = build_generator(settings)
    completed = 0
    while args.iterations is None or completed < args.iterations:
        wait = time_until_next_interval(utc_now()).total_seconds()
        logger.info("Next signal in %.1fs", wait)
        sleep(wait)
        payload = _generate_once(
            generator,
            settings,
            args.database_url,
            notify=not args.no_notify,
        )
        print(json.dumps(payload), flush=True)
        completed += 1
    return 0


def _handle_db_init(args: argparse.Namespace, settings: Settings) -> int:
    storage = _require_storage(settings, args.database_url)
    storage.init_schema()
    print(json.dumps({"status": "ok"}))
    return 0


def _handle_db_signals(args: argparse.Namespace, settings: Settings) -> int:
    if args.limit <= 0:
        raise SystemExit("limit must be greater than zero")
    storage = _require_storage(settings, args.database_url)
    rows = storage.list_signals(limit=args.limit)
    print(json.dumps({"signals": [row.to_payload() for row in rows]}))
    return 0


def _handle_db_stats(args: argparse.Namespace, settings: Settings) -> int:
    storage = _require_storage(settings, args.database_url)
    print(json.dumps(storage.signal_stats(limit=getattr(args, "limit", 20)).to_payload()))
    return 0


def _handle_db_clear(args: argparse.Namespace, settings: Settings) -> int:
    storage = _require_storage(settings, args.database_url)
    print(json.dumps({"deleted": storage.clear_signals()}))
    return 0


def _require_storage(settings: Settings, override_database_url: str | None) -> SignalStorage:
    storage = storage_from_settings(settings, override_database_url)
    if storage is None:
        raise SystemExit("database-url is required (or set FXSIGNAL_DATABASE_URL)")
    return storage


def main() -> None:
    settings = Settings()
    configure_logging(settings.log_level)

    parser = _build_parser()
    args = parser.parse_args()

    try:
        if args.command == "generate":
            raise SystemExit(_handle_generate(args, settings))
        if args.command == "analyze":
            raise SystemExit(_handle_analyze(args, settings))
        if args.command == "session":
            raise SystemExit(_handle_session(args))
        if args.command == "run":
            raise SystemExit(_handle_run(args, settings))
        if args.command == "db-init":
            raise SystemExit(_handle_db_init(args, settings))
        if args.command == "db-signals":
            raise SystemExit(_handle_db_signals(args, settings))
        if args.command == "db-stats":
            raise SystemExit(_handle_db_stats(args, settings))
        if args.command == "db-clear":
            raise SystemExit(_handle_db_clear(args, settings))
    except (ValueError, LookupError) as exc:
        raise SystemExit(str(exc)) from exc

    raise SystemExit("Unknown command")


if __name__ == "__main__":
    main()
