"""
exchangeapp - Main Application
==============================

Exchange-rate web service.

STARTUP (inside the lifespan, before any request is accepted):
1. Setup structured logging
2. Bootstrap the database (bounded retry)
3. Bootstrap the cache
4. Migrate the schema
5. Publish the handles on ``app.state.dependencies``

A dependency that cannot be brought up is fatal: the error is logged at
CRITICAL and re-raised, uvicorn aborts startup and the process exits with
a non-zero status.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from exchangeapp.config import Settings, get_settings
from exchangeapp.core import DependencyUnavailableError
from exchangeapp.infrastructure.bootstrap import Dependencies, bootstrap_dependencies
from exchangeapp.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    global_exception_handler,
)
from exchangeapp.shared.infrastructure.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    Handles are published only after every bootstrap step succeeded, so
    no request can observe a missing dependency.
    """
    settings: Settings = app.state.settings

    # === STARTUP ===
    setup_logging(level=settings.app.log_level, environment=settings.app.environment)
    logger.info("Starting exchangeapp", extra={
        "version": settings.app.version,
        "environment": settings.app.environment,
    })

    try:
        dependencies = await app.state.bootstrap(settings)
    except DependencyUnavailableError as e:
        logger.critical(
            f"Failed to initialize {e.service_name.lower()}, got error: {e.last_error}",
            extra={"service": e.service_name, "attempts": e.attempts},
        )
        raise
    except Exception as e:
        logger.critical(f"Startup failed: {e}", extra={"error_type": type(e).__name__})
        raise

    app.state.dependencies = dependencies
    logger.info("exchangeapp started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down exchangeapp")
    await dependencies.close()
    app.state.dependencies = None
    logger.info("exchangeapp shutdown complete")


def create_app(
    settings: Optional[Settings] = None,
    bootstrap=bootstrap_dependencies,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Settings to use, ``get_settings()`` when omitted
        bootstrap: Coroutine function turning settings into ``Dependencies``
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Exchange App API",
        version=settings.app.version,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.bootstrap = bootstrap
    app.state.dependencies = None

    app.add_middleware(LoggingMiddleware)
    app.add_middleware(CorrelationIDMiddleware)
    app.add_exception_handler(Exception, global_exception_handler)

    register_routes(app)
    return app


def register_routes(app: FastAPI) -> None:
    """Liveness routes. Feature routers are mounted here as well."""

    @app.get("/ping", tags=["Health"])
    async def ping():
        return {"message": "pong"}

    @app.get("/health", tags=["Health"])
    async def health_check(request: Request):
        """
        Dependency health for load balancers and orchestrators.

        Pings the database and the cache; any failure turns the
        response into a 503.
        """
        dependencies: Optional[Dependencies] = request.app.state.dependencies
        checks = {"database": "not_initialized", "cache": "not_initialized"}

        if dependencies is not None:
            for name, handle in (("database", dependencies.database), ("cache", dependencies.cache)):
                try:
                    await handle.ping()
                    checks[name] = "connected"
                except Exception as e:
                    logger.warning(f"{name} health check failed", extra={"error": str(e)})
                    checks[name] = f"error: {e}"

        healthy = all(value == "connected" for value in checks.values())
        settings: Settings = request.app.state.settings
        return JSONResponse(
            status_code=200 if healthy else 503,
            content={
                "status": "healthy" if healthy else "unhealthy",
                "version": settings.app.version,
                "environment": settings.app.environment,
                "checks": checks,
            },
        )


def main() -> None:
    """Run the service under uvicorn on the configured listen address."""
    import uvicorn

    settings = get_settings()
    host, port = settings.app.listen_address
    uvicorn.run(
        create_app(settings),
        host=host,
        port=port,
        log_level=settings.app.log_level.lower(),
        log_config=None,
    )


# === Development Entry Point ===

if __name__ == "__main__":
    main()
