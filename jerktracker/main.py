"""
TheJERKTracker - FastAPI Backend Application
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from jerktracker.api import auth, migrate, orders, restaurants, users
from jerktracker.config import Settings, get_settings
from jerktracker.errors import register_exception_handlers
from jerktracker.log import configure_logging
from jerktracker.storage import StorageAdapter, create_storage

logger = structlog.get_logger()

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info(
        "Starting TheJERKTracker API",
        version=VERSION,
        storage_backend=app.state.settings.storage_backend,
    )
    await app.state.storage.initialize()
    yield
    await app.state.storage.close()
    logger.info("Shutting down TheJERKTracker API")


def create_app(settings: Settings, storage: Optional[StorageAdapter] = None) -> FastAPI:
    """Build the application around explicit settings and a storage adapter"""
    configure_logging(settings)

    app = FastAPI(
        title="TheJERKTracker",
        description="Order pickup and delivery tracking for restaurants",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.storage = storage if storage is not None else create_storage(settings)
    app.state.migration_lock = asyncio.Lock()

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    # Health check endpoints
    @app.get("/api/health")
    async def health():
        """Basic health check"""
        return {"status": "healthy", "service": "api", "version": VERSION}

    @app.get("/api/health/ready")
    async def ready(request: Request):
        """Readiness check with storage verification"""
        checks = {}
        try:
            await request.app.state.storage.ping()
            checks["storage"] = "ok"
        except Exception as e:
            logger.warning("Storage readiness check failed", error=str(e))
            checks["storage"] = f"failed: {str(e)}"

        all_ok = all(v == "ok" for v in checks.values())
        return {
            "status": "ready" if all_ok else "not_ready",
            "checks": checks,
        }

    # Include API routers
    app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
    app.include_router(orders.router, prefix="/api/orders", tags=["Orders"])
    app.include_router(users.router, prefix="/api/users", tags=["Users"])
    app.include_router(restaurants.router, prefix="/api/restaurants", tags=["Restaurants"])
    app.include_router(migrate.router, prefix="/api/migrate", tags=["Migration"])

    return app


app = create_app(get_settings())


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "jerktracker.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_debug,
    )
