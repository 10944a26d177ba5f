from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tutorgate.app.api.tutor import router as tutor_router
from tutorgate.app.core.config import settings
from tutorgate.app.core.logging import get_logger, setup_logging
from tutorgate.app.exceptions import RateLimitedError, TutorGateException
from tutorgate.app.providers.base import BaseProvider
from tutorgate.app.providers.factory import create_provider
from tutorgate.app.services.gateway import RequestGateway
from tutorgate.app.services.rate_limit import RateLimiter
from tutorgate.app.services.tutor import TutorService


def create_app(
    provider: Optional[BaseProvider] = None,
    limiter: Optional[RateLimiter] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        provider: Provider to use instead of the configured one
        limiter: Rate limiter to use instead of one built from settings

    Returns:
        Configured FastAPI application instance
    """
    setup_logging()
    logger = get_logger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Build the provider, rate limiter and gateway for the app's lifetime.

        The provider's HTTP connection pool is shared and closed on shutdown.
        """
        async with httpx.AsyncClient(timeout=settings.provider_timeout) as http_client:
            active_provider = provider or create_provider(http_client=http_client)
            gateway = RequestGateway(
                limiter=limiter or RateLimiter.from_settings(),
                provider=active_provider,
            )
            app.state.gateway = gateway
            app.state.tutor = TutorService(gateway)

            logger.info(
                "Application startup complete",
                extra={"provider": active_provider.name, "debug_mode": settings.debug},
            )
            yield

        logger.info("Application shutdown complete")

    app = FastAPI(
        title="Tutorgate",
        description="Tutoring gateway with per-identity rate limiting and streaming explanations",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.include_router(tutor_router)

    @app.get("/health")
    async def health(request: Request) -> dict[str, Any]:
        """Health check with provider reachability."""
        gateway: RequestGateway = request.app.state.gateway
        try:
            provider_ok = await gateway.provider.health_check()
        except Exception as e:
            logger.warning(f"Provider health check failed: {e}")
            provider_ok = False

        return {
            "status": "ok" if provider_ok else "degraded",
            "components": {
                "provider": {
                    "status": "ok" if provider_ok else "error",
                    "name": gateway.provider.name,
                    "model": gateway.provider.model,
                },
            },
        }

    @app.exception_handler(TutorGateException)
    async def tutorgate_error_handler(request: Request, exc: TutorGateException) -> JSONResponse:
        """Map domain errors to JSON responses with their status code."""
        headers = {}
        if isinstance(exc, RateLimitedError):
            headers["Retry-After"] = str(exc.retry_after)
            headers["X-RateLimit-Remaining"] = "0"
            logger.info(f"Rate limited: {exc.identity}", extra={"identity": exc.identity})
        else:
            logger.warning(
                f"{type(exc).__name__}: {exc.message}",
                extra={"path": request.url.path, "status_code": exc.status_code},
            )
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_response(),
            headers=headers,
        )

    return app


app = create_app()
