"""
PIEM Backend — Root and Health Check Routes
============================================

What:  `GET /` banner and `GET /health` probe for monitoring.
How:   The health check pings the document store; the service is only
       "healthy" when the ping succeeds.

Status levels:
    healthy:   store reachable (HTTP 200)
    unhealthy: store unreachable (HTTP 503)
"""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from piem import __version__
from piem.config import settings
from piem.database import MongoStore, get_store
from piem.schemas.common import HealthResponse, MessageEnvelope

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Module load time doubles as process start for uptime reporting
_start_time = time.time()


@router.get("/", response_model=MessageEnvelope, summary="API banner")
async def root() -> MessageEnvelope:
    return MessageEnvelope(message="PIEM API is running with all collections")


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    responses={503: {"model": HealthResponse, "description": "Document store unreachable"}},
)
async def health_check(store: MongoStore = Depends(get_store)):
    """
    Ping the document store and report aggregate status.

    Returns 503 (same body shape) when the store cannot be reached so load
    balancers stop routing traffic to this instance.
    """
    connected = await store.ping()
    if not connected:
        logger.error("Health check failed: document store unreachable")

    body = HealthResponse(
        success=connected,
        status="healthy" if connected else "unhealthy",
        message="Server is running" if connected else "Document store unreachable",
        service="PIEM API",
        version=__version__,
        environment=settings.environment,
        database="connected" if connected else "disconnected",
        timestamp=datetime.now(timezone.utc),
        uptime_seconds=round(time.time() - _start_time, 1),
    )
    if connected:
        return body
    return JSONResponse(status_code=503, content=body.model_dump(mode="json", by_alias=True))
