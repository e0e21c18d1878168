from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from research_gate.app.api.recommendations import router as recommendations_router
from research_gate.app.api.research import router as research_router
from research_gate.app.core.config import settings
from research_gate.app.core.http_client import init_http_client
from research_gate.app.core.logging import get_logger, setup_logging
from research_gate.app.exceptions import RateLimitExceededError, ResearchGateException
from research_gate.app.middleware.request_id import RequestIdMiddleware, get_request_id
from research_gate.app.providers.factory import create_research_providers
from research_gate.app.rate_limit import RateLimiter, RedisRateLimitStore
from research_gate.app.services.auto_research import AutoResearchTrigger


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    setup_logging()
    logger = get_logger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Build the rate limiter, providers and trigger once per process."""
        async with init_http_client() as http_client:
            rate_limiter = RateLimiter()
            providers = create_research_providers(http_client)
            app.state.rate_limiter = rate_limiter
            app.state.auto_research_trigger = AutoResearchTrigger(
                rate_limiter=rate_limiter,
                providers=providers,
            )

            logger.info(
                "Application startup complete",
                extra={
                    "providers": [p.name for p in providers],
                    "max_triggers": settings.auto_research_max_triggers,
                    "debug_mode": settings.debug,
                },
            )

            yield

            await rate_limiter.close()
            app.state.rate_limiter = None
            app.state.auto_research_trigger = None

        logger.info("Application shutdown complete")

    app = FastAPI(
        title="Research Gate",
        description="Session-scoped auto-research budget for AI planning workflows",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(RequestIdMiddleware)

    app.include_router(research_router)
    app.include_router(recommendations_router)

    @app.get("/health")
    async def health(request: Request) -> dict[str, Any]:
        """Health check with the active rate limit backend and providers."""
        limiter = getattr(request.app.state, "rate_limiter", None)
        trigger = getattr(request.app.state, "auto_research_trigger", None)
        backend = "uninitialized"
        if limiter is not None:
            backend = "redis" if isinstance(limiter.backend, RedisRateLimitStore) else "memory"
        return {
            "status": "ok",
            "components": {
                "rate_limit": {"backend": backend},
                "providers": [p.name for p in trigger.providers] if trigger else [],
            },
        }

    @app.exception_handler(RateLimitExceededError)
    async def rate_limit_exceeded_handler(
        request: Request, exc: RateLimitExceededError
    ) -> JSONResponse:
        """Handle RateLimitExceededError and return HTTP 429 response."""
        return JSONResponse(status_code=429, content=exc.to_response())

    @app.exception_handler(ResearchGateException)
    async def research_gate_error_handler(
        request: Request, exc: ResearchGateException
    ) -> JSONResponse:
        """Handle remaining application errors with their own status code."""
        logger.warning(
            f"{type(exc).__name__}: {exc.message}",
            extra={"request_id": get_request_id(request)},
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": type(exc).__name__, "message": exc.message},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Log unhandled exceptions server-side, never return the traceback."""
        request_id = get_request_id(request)
        logger.exception(
            f"Unhandled exception: {type(exc).__name__}",
            extra={"request_id": request_id},
        )
        message = str(exc) if settings.debug else "Internal server error"
        return JSONResponse(
            status_code=500,
            content={"error": "internal_error", "message": message, "request_id": request_id},
        )

    return app


app = create_app()
