"""
Health and metrics API routes.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from sequestre import __version__
from sequestre.config.settings import get_settings
from sequestre.di.container import get_container
from sequestre.infrastructure.resilience.redis_idempotency_store import (
    RedisIdempotencyStore,
)

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check(response: Response):
    """
    Service health.

    Reports database connectivity and which networks have their ledger
    settings. Returns 503 only when the database is down; unconfigured
    networks are reported, not fatal.
    """
    container = get_container()
    db_healthy = await container.database.health_check()

    registry = container.ledger_registry
    networks = {
        n.id: {
            "escrow": not n.missing_escrow_settings(),
            "tokens": n.has_rpc,
        }
        for n in registry.token_networks()
    }

    breakers = []
    if hasattr(registry, "circuit_breaker_stats"):
        breakers = registry.circuit_breaker_stats()

    components = {
        "database": {"status": "healthy" if db_healthy else "unhealthy"},
        "networks": networks,
        "circuitBreakers": breakers,
    }

    # Reported, never fatal
    store = container.idempotency_store
    if isinstance(store, RedisIdempotencyStore):
        redis_healthy = await store.health_check()
        components["redis"] = {"status": "healthy" if redis_healthy else "degraded"}

    if not db_healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return {
        "status": "healthy" if db_healthy else "unhealthy",
        "version": __version__,
        "environment": get_settings().ENV,
        "components": components,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/metrics", tags=["monitoring"])
async def metrics():
    """
    Prometheus metrics endpoint.

    Returns metrics in Prometheus text format for scraping.
    """
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
