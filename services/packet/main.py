"""
Packet Service - Main Application
=================================

FastAPI application for opening, claiming and refunding red packets.

Version: 0.1.0
"""

import uuid
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from services.packet.dependencies import get_ledger
from services.packet.errors import PacketError
from services.packet.routes import packets_router
from shared.config import StoreBackend, settings
from shared.database.redis import RedisClient
from shared.logging import bind_context, clear_context, get_logger, setup_logging
from shared.models.common import ErrorResponse, HealthResponse


# Setup logging
setup_logging(
    log_level=settings.log_level.value,
    json_logs=settings.is_production,
    service_name="packet",
)

logger = get_logger(__name__)

SERVICE_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> Any:
    """Application lifespan manager."""
    logger.info(
        "packet_service_starting",
        environment=settings.environment.value,
        port=settings.ports.packet,
        store=settings.packet.store.value,
        zk_mode=settings.zk.mode.value,
        blockchain_mode=settings.blockchain.mode.value,
    )

    try:
        ledger = get_ledger()
        await ledger.transfers.connect()
        logger.info("blockchain_connected", mode=settings.blockchain.mode.value)
    except Exception as e:
        logger.error("startup_failed", error=str(e))
        raise

    yield

    logger.info("packet_service_shutting_down")
    await ledger.transfers.disconnect()
    if settings.packet.store == StoreBackend.REDIS:
        await RedisClient.close()


# Create FastAPI application
app = FastAPI(
    title="Red Packet Service",
    description="Private red packets with zero-knowledge claims",
    version=SERVICE_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors.origins_list,
    allow_credentials=settings.cors.allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context(request: Request, call_next: Any) -> Any:
    """Bind a request id to every log line emitted while handling a request."""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    clear_context()
    bind_context(request_id=request_id, path=request.url.path)
    try:
        response = await call_next(request)
    finally:
        clear_context()
    response.headers["X-Request-ID"] = request_id
    return response


# ============================================================================
# Health Check Endpoints
# ============================================================================


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """
    Service health check.

    Reports the packet store, the value-transfer backend and the pause flag.
    """
    ledger = get_ledger()
    components: dict[str, dict[str, Any]] = {
        "store": await ledger.store.health_check(),
        "blockchain": await ledger.transfers.health_check(),
    }

    all_healthy = all(c.get("status") == "healthy" for c in components.values())
    if ledger.is_paused():
        components["ledger"] = {"status": "paused"}

    return HealthResponse(
        status="healthy" if all_healthy and not ledger.is_paused() else "degraded",
        service="packet",
        version=SERVICE_VERSION,
        components=components,
    )


@app.get("/", tags=["Health"])
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": "Red Packet Service",
        "version": SERVICE_VERSION,
        "docs": "/docs",
    }


# ============================================================================
# Include Routers
# ============================================================================

app.include_router(
    packets_router,
    prefix="/api/v1/packets",
    tags=["Packets"],
)


# ============================================================================
# Error Handlers
# ============================================================================


@app.exception_handler(PacketError)
async def packet_error_handler(request: Request, exc: PacketError) -> JSONResponse:
    """Render a ledger rejection with its stable error code."""
    logger.warning(
        "packet_request_rejected",
        error_code=exc.error_code,
        status_code=exc.status_code,
        packet_id=exc.packet_id,
        path=request.url.path,
    )
    body = ErrorResponse(
        error=exc.message,
        error_code=exc.error_code,
        status_code=exc.status_code,
    )
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions."""
    logger.warning(
        "http_exception",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
    )
    body = ErrorResponse(error=str(exc.detail), status_code=exc.status_code)
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(),
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
    )
    body = ErrorResponse(
        error="Internal server error",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=body.model_dump(),
    )


# ============================================================================
# Run with Uvicorn
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.packet.main:app",
        host="0.0.0.0",
        port=settings.ports.packet,
        reload=settings.debug,
        log_level=settings.log_level.value.lower(),
    )
