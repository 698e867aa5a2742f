# service/app.py
from __future__ import annotations

import json
import logging
import os
import time
from collections import OrderedDict, defaultdict
from threading import Lock
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)
from starlette.responses import Response

from ssid.config import load_config
from ssid.detect.fourpoint import FourPointFilter
from ssid.errors import DataError, SSIDError
from ssid.pipeline import SteadyStateDetector
from ssid.types import Indicator
from service.schemas import ClassifyIn, ClassifyOut, Row, StreamIn, StreamOut

# ---------- app & logging ----------
app = FastAPI()

logger = logging.getLogger("ssid-service")
if not logger.handlers:
    logging.basicConfig(level=logging.INFO)

# ---------- config ----------
cfg = load_config()


def _int_from_env_or_cfg(env_name: str, cfg_key: str, default: int) -> int:
    v = os.getenv(env_name)
    if v is not None:
        try:
            return int(v)
        except ValueError:
            return default
    try:
        return int(cfg.get(cfg_key, default))
    except (TypeError, ValueError):
        return default


# fails at import on a bad config file, not on the first request
_detector = SteadyStateDetector(cfg)

# ---------- Prometheus: PRIVATE registry to avoid duplicates on reload ----------
PROM_REG = CollectorRegistry()
REQS = Counter("requests_total", "Total requests", ["endpoint"], registry=PROM_REG)
SERVICE_LAT = Histogram(
    "request_service_ms",
    "End-to-end service latency (ms)",
    buckets=(1, 2, 5, 10, 20, 50, 100, 200, 500),
    registry=PROM_REG,
)
IND_CHANGES = Counter(
    "indicator_changes_total", "SS/TS indicator changes on streamed series", ["to"], registry=PROM_REG
)

# ---------- series-sharded filters ----------
_MAX_SERIES = _int_from_env_or_cfg("MAX_SERIES", "max_series", 1024)
_filters: OrderedDict[str, FourPointFilter] = OrderedDict()
_filter_locks: defaultdict[str, Lock] = defaultdict(Lock)
_registry_lock = Lock()


def _get_filter(series_id: str) -> FourPointFilter:
    with _registry_lock:
        f = _filters.get(series_id)
        if f is None:
            f = _detector.stream()
            _filters[series_id] = f
        _filters.move_to_end(series_id)
        while len(_filters) > _MAX_SERIES:
            sid_ev, _ = _filters.popitem(last=False)
            _filter_locks.pop(sid_ev, None)
            logger.info(json.dumps({"evt": "series_evicted", "series_id": sid_ev}))
        return f


# ---------- errors & timing ----------
@app.exception_handler(SSIDError)
async def _ssid_error(request: Request, exc: SSIDError) -> JSONResponse:
    body: dict[str, Any] = {"detail": str(exc)}
    if isinstance(exc, DataError):
        body["index"] = exc.index
    logger.warning(json.dumps({"evt": "rejected", "path": request.url.path, "err": str(exc)}))
    return JSONResponse(status_code=422, content=body)


@app.middleware("http")
async def _service_timing(request: Request, call_next):
    t0 = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - t0) * 1000.0
    SERVICE_LAT.observe(ms)
    response.headers["X-Service-MS"] = f"{ms:.3f}"
    return response


# ---------- endpoints ----------
@app.get("/healthz")
def healthz() -> dict[str, str]:
    REQS.labels("healthz").inc()
    return {"status": "ok"}


@app.get("/metrics")
def metrics() -> Response:
    return Response(generate_latest(PROM_REG), media_type=CONTENT_TYPE_LATEST)


@app.post("/classify", response_model=ClassifyOut)
def classify(inp: ClassifyIn) -> ClassifyOut:
    REQS.labels("classify").inc()
    t0 = time.perf_counter()

    overrides = {
        k: getattr(inp, k)
        for k in ("tcrit_u", "tcrit_l", "n", "ewma", "stp")
        if getattr(inp, k) is not None
    }
    det = SteadyStateDetector(cfg, **overrides) if overrides else _detector
    records = det.run(inp.samples)

    rows = [Row(regime=Indicator.from_value(r["ss"]).label, **r) for r in records]
    compute_ms = (time.perf_counter() - t0) * 1000.0

    logger.info(json.dumps({
        "evt": "classify",
        "n_points": len(rows),
        "params": det.params,
        "compute_ms": round(compute_ms, 3),
    }))
    return ClassifyOut(
        n_points=len(rows),
        params={k: float(v) for k, v in det.params.items()},
        rows=rows,
        latency_ms={"compute_ms": compute_ms},
    )


@app.post("/stream", response_model=StreamOut)
def stream(inp: StreamIn) -> StreamOut:
    REQS.labels("stream").inc()
    t0 = time.perf_counter()
    series_id = (inp.series_id or "default").strip() or "default"

    f = _get_filter(series_id)
    with _filter_locks[series_id]:
        prev = f.indicator
        step = f.update(inp.x)

    if f.indicator is not prev:
        IND_CHANGES.labels(f.indicator.label).inc()
        logger.info(json.dumps({
            "evt": "stream",
            "series_id": series_id,
            "index": step["index"],
            "from": prev.label,
            "to": f.indicator.label,
        }))

    compute_ms = (time.perf_counter() - t0) * 1000.0
    return StreamOut(series_id=series_id, latency_ms={"compute_ms": compute_ms}, **step)


@app.delete("/stream/{series_id}")
def drop_stream(series_id: str) -> dict[str, str]:
    REQS.labels("drop_stream").inc()
    with _registry_lock:
        f = _filters.pop(series_id, None)
        _filter_locks.pop(series_id, None)
    if f is None:
        raise HTTPException(status_code=404, detail=f"unknown series: {series_id}")
    return {"status": "ok", "series_id": series_id}
