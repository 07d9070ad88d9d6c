"""FastAPI application for Palm Comps."""

import json
import logging
import os
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

import logfire
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request

from .schemas import ReasonCode
from .service import LookupEngine, get_engine

logger = logging.getLogger(__name__)

TRUTHY = {"1", "true", "yes", "on", "y"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Preload aliases and the comparable dataset on startup."""
    try:
        engine = get_engine()
        snapshot = engine.snapshot()
        logger.info(f"[registry] Preloaded {len(snapshot)} comparables with scaled seasonality")
    except Exception as e:
        logger.warning(f"[registry] Failed to preload: {e.__class__.__name__}: {e}")
    yield


app = FastAPI(
    title="Palm Comps API",
    description="Listing resolution and short-term rental economics for Palm Jumeirah buildings",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure Logfire for observability (after app creation)
if os.getenv("LOGFIRE_TOKEN"):
    logfire.configure()
    logfire.instrument_fastapi(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware, minimum_size=500)


@app.middleware("http")
async def log_api_requests(request: Request, call_next):
    """One JSON log line per /api/ request."""
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(json.dumps({
            "type": "api_error",
            "method": request.method,
            "path": request.url.path,
            "error": e.__class__.__name__,
            "message": str(e),
            "ip": request.client.host if request.client else None,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }))
        raise

    if request.url.path.startswith("/api/"):
        logger.info(json.dumps({
            "type": "api_request",
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            "ip": request.client.host if request.client else None,
            "user_agent": request.headers.get("user-agent"),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }))
    return response


async def request_params(request: Request) -> dict[str, Any]:
    """Query-string parameters overlaid with a JSON body, if any."""
    params: dict[str, Any] = dict(request.query_params)
    if request.method == "POST":
        body = await request.body()
        if body:
            try:
                payload = json.loads(body)
            except ValueError:
                payload = None
            if isinstance(payload, dict):
                params.update(payload)
    return params


def truthy(value: Any) -> bool:
    return str(value).strip().lower() in TRUTHY


def _text(params: dict[str, Any], key: str) -> str:
    value = params.get(key)
    return str(value).strip() if value is not None else ""


# =============================================================================
# Health
# =============================================================================


@app.get("/api/health")
async def health(engine: LookupEngine = Depends(get_engine)):
    """Health check for monitoring and load balancers."""
    checks: dict[str, dict[str, Any]] = {}

    path = engine.config.dataset_path
    if path.exists():
        snapshot = await run_in_threadpool(engine.snapshot)
        checks["csv_file"] = {"status": "ok", "rows": len(snapshot), "path": str(path)}
    else:
        checks["csv_file"] = {"status": "error", "message": "CSV file not found"}

    try:
        econ = await run_in_threadpool(engine.economics, "Seven Palm Jumeirah", "1BR")
        if econ.ok or econ.reason_code is ReasonCode.INSUFFICIENT_SAMPLE:
            checks["economics_registry"] = {"status": "ok", "loaded": True}
        else:
            checks["economics_registry"] = {"status": "error", "message": "Registry not properly loaded"}
    except Exception as e:
        checks["economics_registry"] = {"status": "error", "message": str(e)}

    try:
        await run_in_threadpool(engine.comparables, "Seven Palm Jumeirah", "1BR", limit=1)
        checks["listings_registry"] = {"status": "ok", "loaded": True}
    except Exception as e:
        checks["listings_registry"] = {"status": "error", "message": str(e)}

    healthy = all(c["status"] == "ok" for c in checks.values())
    return JSONResponse(
        {
            "status": "healthy" if healthy else "unhealthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": app.version,
            "checks": checks,
        },
        status_code=200 if healthy else 503,
    )


# =============================================================================
# Economics and listings
# =============================================================================


@app.api_route("/api/economics/lookup", methods=["GET", "POST"])
async def economics_lookup(request: Request, engine: LookupEngine = Depends(get_engine)):
    """Weighted p50/p75 ADR, occupancy and revenue for a building + unit type.

    Body JSON: { "building_name": "Palm Views", "unit_type": "Studio" }
    """
    params = await request_params(request)
    building = _text(params, "building_name")
    unit = _text(params, "unit_type")
    if not building or not unit:
        return JSONResponse({"error": "building_name and unit_type are required"}, status_code=400)

    result = await run_in_threadpool(engine.economics, building, unit)
    if result.ok:
        payload = {"status": "ok", "metrics": result.metrics.model_dump(mode="json")}
        if truthy(params.get("include_listings")):
            payload["listings"] = [item.model_dump(mode="json") for item in result.listings]
        return payload
    return {"status": "no_data", "reason_code": result.reason_code.value, "user_message": result.user_message}


@app.api_route("/api/listings/lookup", methods=["GET", "POST"])
async def listings_lookup(request: Request, engine: LookupEngine = Depends(get_engine)):
    """Sample of comparable listings for a building + unit type."""
    params = await request_params(request)
    building = _text(params, "building_name")
    unit = _text(params, "unit_type")
    if not building or not unit:
        return JSONResponse({"error": "building_name and unit_type are required"}, status_code=400)

    comparables = await run_in_threadpool(engine.comparables, building, unit, limit=6)
    payload = comparables.model_dump(mode="json", exclude_none=True)
    if truthy(params.get("debug")):
        payload["_debug"] = await run_in_threadpool(engine.debug_info, building, unit)
    return payload


@app.api_route("/api/listings/debug", methods=["GET", "POST"])
async def listings_debug(request: Request, engine: LookupEngine = Depends(get_engine)):
    """Dataset diagnostics, optionally for one building + unit type."""
    params = await request_params(request)
    return await run_in_threadpool(
        engine.debug_info, _text(params, "building_name") or None, _text(params, "unit_type") or None
    )


@app.api_route("/api/listings/sources", methods=["GET", "POST"])
async def listings_sources(request: Request, engine: LookupEngine = Depends(get_engine)):
    """Comparables that feed the economics projection, with raw figures."""
    params = await request_params(request)
    building = _text(params, "building_name")
    unit = _text(params, "unit_type")
    if not building or not unit:
        return JSONResponse({"error": "building_name and unit_type are required"}, status_code=400)
    return await run_in_threadpool(engine.sources, building, unit)


# =============================================================================
# Link analysis and batch enrichment
# =============================================================================


@app.api_route("/api/analyze/link", methods=["GET", "POST"])
async def analyze_link(request: Request, engine: LookupEngine = Depends(get_engine)):
    """Resolve a listing link and return economics for its building and unit.

    Body JSON: { "url": "https://www.propertyfinder.ae/..." }
    """
    params = await request_params(request)
    url = _text(params, "url")
    if not url:
        return JSONResponse({"error": "url is required"}, status_code=400)

    result = await run_in_threadpool(engine.analyze_link, url)
    economics = result.economics
    payload: dict[str, Any] = {
        "resolver": result.resolver.model_dump(mode="json"),
        "selection": None,
        "economics": (
            {"status": "ok", "metrics": economics.metrics.model_dump(mode="json")}
            if economics.ok
            else {"status": "no_data", "reason_code": economics.reason_code.value}
        ),
    }
    if result.selection is not None:
        payload["selection"] = {
            **result.selection.model_dump(mode="json"),
            "fallback_message": result.selection.fallback_message,
        }
    return payload


@app.api_route("/api/enrich", methods=["GET", "POST"])
async def enrich(request: Request, engine: LookupEngine = Depends(get_engine)):
    """Economics for a batch of building/unit pairs.

    Body JSON: { "items": [ { "building_name": "Palm Views", "unit_type": "Studio" } ] }
    """
    params = await request_params(request)
    items = params.get("items")
    if not isinstance(items, list):
        return JSONResponse({"error": "items must be an array"}, status_code=400)

    limit = engine.config.enrich_max_items
    if len(items) > limit:
        return JSONResponse({"error": "too_many_items", "max": limit}, status_code=413)

    enriched = await run_in_threadpool(engine.enrich, items)
    results = [item.model_dump(mode="json", exclude_none=True) for item in enriched]
    return {"count": len(results), "items": results}
