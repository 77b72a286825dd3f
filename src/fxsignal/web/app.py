from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from threading import Lock
from uuid import uuid4

import uvicorn
from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.responses import HTMLResponse
from pydantic import BaseModel

from fxsignal.config import Settings
from fxsignal.domain.models import to_iso
from fxsignal.generator import SCORING_WINDOW, SignalGenerator, build_generator
from fxsignal.indicators import compute_snapshot
from fxsignal.market.simulator import utc_now
from fxsignal.publisher import notifier_from_settings, publish_signal, storage_from_settings
from fxsignal.sessions import next_five_minute_interval, resolve_session, time_until_next_interval
from fxsignal.storage import SignalStorage

logger = logging.getLogger(__name__)


class GenerateRequest(BaseModel):
    notify: bool = True


PAGE = """
<!doctype html>
<html>
<head>
<meta charset='utf-8'/>
<meta name='viewport' content='width=device-width,initial-scale=1'/>
<title>FXSignal</title>
<style>
body{
  font-family:Segoe UI,Arial,sans-serif;
  max-width:980px;
  margin:20px auto;
  padding:0 12px;
  background:#f5f7fb;
  color:#111
}
.card{background:#fff;border:1px solid #d8dee9;border-radius:10px;padding:14px;margin:12px 0}
.row{display:flex;gap:8px;flex-wrap:wrap}
input,select,button{padding:8px;border:1px solid #c6cfdd;border-radius:6px}
button{background:#0b57d0;color:#fff;border:none;cursor:pointer}
pre{background:#0f172a;color:#e2e8f0;padding:12px;border-radius:8px;overflow:auto}
h1{margin-bottom:6px}
</style>
</head>
<body>
<h1>FXSignal Dashboard</h1>
<div class='card'>
<h3>Session</h3>
<div class='row'>
<button onclick='call("GET","/api/session")'>Current session</button>
<button onclick='call("GET","/api/signals/stats")'>Stats</button>
</div>
</div>
<div class='card'>
<h3>Signals</h3>
<div class='row'>
<button onclick='call("POST","/api/signals/generate",{notify:true})'>Generate</button>
<button onclick='call("GET","/api/signals/active")'>Active</button>
<button onclick='call("GET","/api/signals?limit=20")'>History</button>
<button onclick='if(confirm("Clear all signal history?")){call("DELETE","/api/signals")}'>Clear</button>
</div>
</div>
<div class='card'>
<h3>Analysis</h3>
<div class='row'>
<input id='a_pair' value='EUR/USD' placeholder='Pair'/>
<button onclick='call("GET","/api/analysis?pair="+encodeURIComponent(a_pair.value.trim()))'>Analyze</button>
</div>
</div>
<pre id='out'>Ready.</pre>
<script>
async function call(method, url, payload){
  const opts = {method, headers:{'Content-Type':'application/json'}};
  if (payload !== undefined) {
    opts.body = JSON.stringify(payload);
  }
  const r = await fetch(url, opts);
  const j = await r.json();
  document.getElementById('out').textContent = JSON.stringify(j,null,2);
}
</script>
</body>
</html>
"""


def _require_storage(settings: Settings) -> SignalStorage:
    storage = storage_from_settings(settings)
    if storage is None:
        raise HTTPException(status_code=400, detail="Persistence is not configured.")
    return storage


def create_app(generator: SignalGenerator | None = None) -> FastAPI:
    app = FastAPI(title="FXSignal Web", version="0.1.0")
    engine = generator or build_generator(Settings())
    # advance() mutates shared history; sync endpoints run in a thread pool
    engine_lock = Lock()

    @app.middleware("http")
    async def request_context_middleware(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = request.headers.get("X-Request-ID", uuid4().hex)
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time-Ms"] = f"{elapsed_ms:.2f}"
        logger.info(
            "%s %s status=%s request_id=%s duration_ms=%.2f",
            request.method,
            request.url.path,
            response.status_code,
            request_id,
            elapsed_ms,
        )
        return response

    @app.get("/", response_class=HTMLResponse)
    def home() -> str:
        return PAGE

    @app.get("/healthz")
    def healthz() -> dict[str, str]:
        settings = Settings()
        return {"status": "ok", "env": settings.env, "app": settings.app_name}

    @app.get("/readyz")
    def readyz() -> dict[str, str]:
        return {"status": "ready"}

    @app.get("/api/session")
    def session() -> dict[str, object]:
        now = utc_now()
        current = resolve_session(now)
        start, end = next_five_minute_interval(now)
        return {
            "session": str(current.name),
            "pairs": list(current.pairs),
            "next_start": to_iso(start),
            "next_end": to_iso(end),
            "seconds_until_next": round(time_until_next_interval(now).total_seconds(), 3),
        }

    @app.post("/api/signals/generate")
    def generate(req: GenerateRequest | None = None) -> dict[str, object]:
        try:
            settings = Settings()
            storage = storage_from_settings(settings)
            notifier = notifier_from_settings(settings) if (req is None or req.notify) else None
            with engine_lock:
                record = engine.generate()
            if record is None:
                return {"signal": None}

            result = publish_signal(record, storage=storage, notifier=notifier)
            payload: dict[str, object] = {
                "signal": record.to_payload(),
                "stored": result.stored,
                "notified": result.notified,
            }
            if result.signal_id is not None:
                payload["signal_id"] = result.signal_id
            return payload
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    @app.get("/api/signals")
    def signals(limit: int = 20) -> dict[str, object]:
        try:
            storage = _require_storage(Settings())
            rows = storage.list_signals(limit=limit)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {"signals": [row.to_payload() for row in rows]}

    @app.get("/api/signals/active")
    def active_signal() -> dict[str, object]:
        storage = _require_storage(Settings())
        current = storage.active_signal(utc_now())
        return {"signal": current.to_payload() if current is not None else None}

    @app.get("/api/signals/stats")
    def stats(limit: int = 20) -> dict[str, int]:
        try:
            storage = _require_storage(Settings())
            return storage.signal_stats(limit=limit).to_payload()
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    @app.delete("/api/signals")
    def clear() -> dict[str, int]:
        storage = _require_storage(Settings())
        deleted = storage.clear_signals()
        logger.info("Cleared %s signals", deleted)
        return {"deleted": deleted}

    @app.get("/api/analysis")
    def analysis(pair: str) -> dict[str, object]:
        if pair not in engine.simulator.instruments:
            raise HTTPException(status_code=404, detail=f"Unknown pair: {pair}")
        with engine_lock:
            scored = engine.analyze(pair)
            bars = engine.simulator.history_window(pair, SCORING_WINDOW)
            trend = engine.simulator.trend(pair)
        return {
            "pair": pair,
            "action": str(scored.action),
            "confidence": scored.confidence,
            "bullish": scored.bullish,
            "bearish": scored.bearish,
            "trend": str(trend),
            "bars": len(bars),
            "indicators": compute_snapshot(bars).to_dict(),
        }

    return app


def run() -> None:
    uvicorn.run("fxsignal.web.app:create_app", factory=True, host="127.0.0.1", port=8000)


app = create_app()
