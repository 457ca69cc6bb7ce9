"""
SkyFuel Battery Ledger - Main FastAPI Application
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-17): Fleet report, per-battery alerts, history WebSocket
v1.0.0 (2026-10-11): Initial FastAPI application
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging

from .config import settings, init_directories
from .errors import SkyFuelError, ValidationError
from .api import batteries, fleet, exchange, system, ws
from .models import init_db
from .services.battery_store import BatteryStore
from .seed import seed_if_empty

# Configure logging
init_directories()
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(f'{settings.LOGS_DIR}/api.log'),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    # Initialize database
    await init_db()
    app.state.store = BatteryStore()
    if settings.SEED_DEMO_DATA:
        await seed_if_empty(app.state.store)

    logger.info("Battery store ready")

    yield

    logger.info(f"Shutdown complete ({app.state.store.feed.subscriber_count} live queries open)")


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Battery inventory with an append-only lifecycle ledger",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SkyFuelError)
async def skyfuel_error_handler(request: Request, exc: SkyFuelError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    else:
        logger.debug(f"{request.method} {request.url.path}: {exc.error_code} {exc.message}")
    content = {"detail": exc.message, "error_code": exc.error_code}
    if isinstance(exc, ValidationError):
        content["errors"] = exc.errors
    reason = getattr(exc, "reason", None)
    if reason:
        content["reason"] = reason
    return JSONResponse(status_code=exc.status_code, content=content)


# Include API routers
app.include_router(batteries.router, prefix="/api", tags=["Batteries"])
app.include_router(fleet.router, prefix="/api", tags=["Fleet"])
app.include_router(exchange.router, prefix="/api", tags=["Data Exchange"])
app.include_router(system.router, prefix="/api", tags=["System"])
app.include_router(ws.router, prefix="/api/ws", tags=["WebSocket"])


@app.get("/api/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "app": settings.APP_NAME
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "skyfuel.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
    )
