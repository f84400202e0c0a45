"""
FastAPI REST API - Main HTTP endpoints
Serves the wrapped-BTC snapshot as JSON or as the HTML dashboard
"""

from fastapi import FastAPI, Depends, Query, Request
from fastapi.responses import Response
from typing import Callable, Optional, Tuple
from datetime import datetime, timezone
import json
import logging

from wbtc_race.config.settings import settings
from wbtc_race.core.data_models import Snapshot
from wbtc_race.core.service_manager import ServiceManager
from wbtc_race.storage.cache_manager import CacheManager
from wbtc_race.analytics.race_calculator import project_from_snapshot
from wbtc_race.api.dashboard import render_dashboard
from wbtc_race.api.middleware import (
    logging_middleware,
    security_headers_middleware,
    error_handling_middleware
)

logger = logging.getLogger(__name__)

HTML_MEDIA_TYPE = "text/html; charset=utf-8"
JSON_MEDIA_TYPE = "application/json; charset=utf-8"
SNAPSHOT_CACHE_KEY = "snapshot"

# Initialize FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/api/docs",
    redoc_url="/api/redoc"
)

app.middleware("http")(error_handling_middleware)
app.middleware("http")(logging_middleware)
app.middleware("http")(security_headers_middleware)


def get_services() -> ServiceManager:
    """Service container dependency (overridden in tests)"""
    return ServiceManager.get_instance()


def _snapshot_headers(ttl: int) -> dict:
    return {
        "Cache-Control": f"public, max-age={ttl}, s-maxage={ttl}",
        "Access-Control-Allow-Origin": "*"
    }


async def _current_snapshot(services: ServiceManager, cache: Optional[CacheManager], ttl: int) -> Snapshot:
    """Snapshot shared by every URL until the TTL runs out"""
    if cache:
        cached = await cache.get(SNAPSHOT_CACHE_KEY)
        if cached:
            return Snapshot.model_validate(cached)

    snapshot = await services.aggregator.produce_snapshot()

    if cache:
        await cache.set(SNAPSHOT_CACHE_KEY, snapshot.model_dump(mode="json"), ttl_seconds=ttl)
    return snapshot


async def _cached_snapshot_response(
    request: Request,
    services: ServiceManager,
    render: Callable[[Snapshot], Tuple[str, str]]
) -> Response:
    """
    Serve a rendered snapshot, reusing a cached body for the same URL

    Args:
        render: Turns a snapshot into (body, media_type)
    """
    ttl = services.settings.CACHE_TTL_SECONDS
    cache = services.cache_manager if services.settings.CACHE_ENABLED else None
    cache_key = cache.cache_key(str(request.url)) if cache else None

    if cache:
        cached = await cache.get(cache_key)
        if cached:
            return Response(
                content=cached["body"],
                media_type=cached["media_type"],
                headers={**_snapshot_headers(ttl), "X-Cache": "HIT"}
            )

    snapshot = await _current_snapshot(services, cache, ttl)
    body, media_type = render(snapshot)

    if cache:
        await cache.set(cache_key, {"body": body, "media_type": media_type}, ttl_seconds=ttl)

    return Response(
        content=body,
        media_type=media_type,
        headers={**_snapshot_headers(ttl), "X-Cache": "MISS"}
    )


# ===== Health Check =====

@app.get("/api/health")
async def health_check(services: ServiceManager = Depends(get_services)):
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.APP_VERSION,
        "cache_stats": services.cache_manager.get_stats() if services.cache_manager else None
    }


# ===== Race Projection =====

@app.get("/api/race")
async def get_race_projection(
    request: Request,
    mint_rate: float = Query(100.0, ge=0, description="BTC minted on Solana per day, excluding staking"),
    staked_sol: float = Query(100000.0, ge=0, description="SOL staked with rewards swapped to BTC"),
    services: ServiceManager = Depends(get_services)
):
    """Project the days until Solana's wrapped BTC supply matches Ethereum's"""
    def render(snapshot: Snapshot) -> Tuple[str, str]:
        projection = project_from_snapshot(snapshot, mint_rate=mint_rate, staked_sol=staked_sol)
        return projection.model_dump_json(), JSON_MEDIA_TYPE

    return await _cached_snapshot_response(request, services, render)


# ===== Dashboard =====

def _render_html(snapshot: Snapshot) -> Tuple[str, str]:
    return render_dashboard(snapshot), HTML_MEDIA_TYPE


def _render_json(snapshot: Snapshot) -> Tuple[str, str]:
    return json.dumps(snapshot.to_payload()), JSON_MEDIA_TYPE


@app.get("/")
@app.get("/ui")
async def get_dashboard(request: Request, services: ServiceManager = Depends(get_services)):
    """HTML dashboard"""
    return await _cached_snapshot_response(request, services, _render_html)


# ===== Snapshot JSON (any other path) =====

@app.get("/{path:path}")
async def get_snapshot(request: Request, path: str, services: ServiceManager = Depends(get_services)):
    """Wrapped BTC supply snapshot as JSON"""
    return await _cached_snapshot_response(request, services, _render_json)
