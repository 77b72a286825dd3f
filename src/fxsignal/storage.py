from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from fxsignal.domain.models import Action, SignalRecord, to_iso

_COLUMNS = "id, created_at, pair, action, confidence, start_time, end_time, session"


@dataclass(slots=True, frozen=True)
class StoredSignal:
    signal_id: int
    created_at: str
    record: SignalRecord

    def to_payload(self) -> dict[str, Any]:
        payload = self.record.to_payload()
        payload["id"] = self.signal_id
        payload["created_at"] = self.created_at
        return payload


@dataclass(slots=True, frozen=True)
class SignalStats:
    total: int
    buy: int
    sell: int

    @property
    def buy_pct(self) -> int:
        return round(self.buy / max(self.total, 1) * 100)

    @property
    def sell_pct(self) -> int:
        return round(self.sell / max(self.total, 1) * 100)

    def to_payload(self) -> dict[str, int]:
        return {
            "total": self.total,
            "buy": self.buy,
            "sell": self.sell,
            "buy_pct": self.buy_pct,
            "sell_pct": self.sell_pct,
        }


class SignalStorage:
    def __init__(self, database_url: str) -> None:
        if not database_url:
            raise ValueError("database_url must be non-empty")
        self.database_url = database_url
        self._is_postgres = database_url.startswith(("postgresql://", "postgres://"))
        self._sqlite_path: str | None
        if database_url.startswith("sqlite:///"):
            self._sqlite_path = database_url.removeprefix("sqlite:///")
        elif self._is_postgres:
            self._sqlite_path = None
        else:
            raise ValueError("database_url must start with sqlite:/// or postgresql://")

    def init_schema(self) -> None:
        with self._connect() as conn:
            self._run_schema_migrations(conn)
            conn.commit()

    def record_signal(self, record: SignalRecord) -> int:
        if not record.pair.strip():
            raise ValueError("pair must be non-empty")
        if not 0 <= record.confidence <= 99:
            raise ValueError("confidence must be between 0 and 99")

        created_at = datetime.now(UTC).isoformat()
        with self._connect() as conn:
            self._run_schema_migrations(conn)
            cur = conn.cursor()
            self._execute(
                cur,
                """
                INSERT INTO trading_signals
                    (created_at, pair, action, confidence, start_time, end_time, session)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    created_at,
                    record.pair,
                    str(record.action),
                    int(record.confidence),
                    to_iso(record.start_time),
                    to_iso(record.end_time),
                    record.session,
                ),
            )
            if self._is_postgres:
                inserted = cur.fetchone()
                if inserted is None:
                    raise ValueError("Failed to read inserted signal id")
                signal_id = int(inserted[0])
            else:
                signal_id = int(cur.lastrowid)
            conn.commit()
        return signal_id

    def list_signals(self, limit: int = 20) -> list[StoredSignal]:
        if limit <= 0:
            raise ValueError("limit must be greater than zero")
        with self._connect() as conn:
            self._run_schema_migrations(conn)
            cur = conn.cursor()
            self._execute(
                cur,
                f"""
                SELECT {_COLUMNS}
                FROM trading_signals
                ORDER BY id DESC
                LIMIT ?
                """,
                (int(limit),),
            )
            rows = cur.fetchall()
        return [self._to_stored(row) for row in rows]

    def active_signal(self, now: datetime) -> StoredSignal | None:
        """Latest signal, if its validity window has not ended at ``now``."""
        latest = self.list_signals(limit=1)
        if not latest:
            return None
        if now < latest[0].record.end_time:
            return latest[0]
        return None

    def signal_stats(self, limit: int = 20) -> SignalStats:
        """BUY/SELL counts over the ``limit`` most recent signals."""
        if limit <= 0:
            raise ValueError("limit must be greater than zero")
        with self._connect() as conn:
            self._run_schema_migrations(conn)
            cur = conn.cursor()
            self._execute(
                cur,
                """
                SELECT recent.action, COUNT(*)
                FROM (
                    SELECT action FROM trading_signals ORDER BY id DESC LIMIT ?
                ) AS recent
                GROUP BY recent.action
                """,
                (int(limit),),
            )
            counts = {str(action): int(count) for action, count in cur.fetchall()}
        buy = counts.get(str(Action.BUY), 0)
        sell = counts.get(str(Action.SELL), 0)
        return SignalStats(total=buy + sell, buy=buy, sell=sell)

    def clear_signals(self) -> int:
        with self._connect() as conn:
            self._run_schema_migrations(conn)
            cur = conn.cursor()
            self._execute(cur, "DELETE FROM trading_signals", ())
            deleted = int(cur.rowcount)
            conn.commit()
        return deleted

    def _connect(self) -> Any:
        if self._is_postgres:
            try:
                import psycopg
            except ImportError as exc:  # pragma: no cover
                raise ValueError(
                    "PostgreSQL URL configured but psycopg is not installed."
                ) from exc
            return psycopg.connect(self.database_url)

        assert self._sqlite_path is not None
        path = Path(self._sqlite_path)
        if str(path) != ":memory:":
            path.parent.mkdir(parents=True, exist_ok=True)
        return sqlite3.connect(str(path))

    def _run_schema_migrations(self, conn: Any) -> None:
        cur = conn.cursor()
        id_column = "BIGSERIAL PRIMARY KEY" if self._is_postgres else (
            "INTEGER PRIMARY KEY AUTOINCREMENT"
        )
        cur.execute(
            f"""
            CREATE TABLE IF NOT EXISTS trading_signals (
                id {id_column},
                created_at TEXT NOT NULL,
                pair TEXT NOT NULL,
                action TEXT NOT NULL CHECK (action IN ('BUY', 'SELL')),
                confidence INTEGER NOT NULL,
                start_time TEXT NOT NULL,
                end_time TEXT NOT NULL,
                session TEXT NOT NULL
            )
            """
        )

    def _execute(self, cur: Any, query: str, params: tuple[Any, ...]) -> None:
        if self._is_postgres:
            pg_query = query.replace("?", "%s")
            if "INSERT INTO trading_signals" in query:
                pg_query += " RETURNING id"
            cur.execute(pg_query, params)
        else:
            cur.execute(query, params)

    @staticmethod
    def _to_stored(row: Any) -> StoredSignal:
        return StoredSignal(
            signal_id=int(row[0]),
            created_at=str(row[1]),
            record=SignalRecord(
                pair=str(row[2]),
                action=Action(str(row[3])),
                confidence=int(row[4]),
                start_time=datetime.fromisoformat(str(row[5])),
                end_time=datetime.fromisoformat(str(row[6])),
                session=str(row[7]),
            ),
        )
