"""Shared HTTP client management for connection pooling.

One client is opened in the application lifespan and shared across all
research providers.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx

from research_gate.app.core.config import settings


def _build_timeout() -> httpx.Timeout:
    return httpx.Timeout(
        connect=settings.httpx_connect_timeout,
        read=settings.httpx_read_timeout,
        write=settings.httpx_write_timeout,
        pool=settings.httpx_pool_timeout,
    )


@asynccontextmanager
async def init_http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """Open the shared HTTP client and close it on exit.

    This context manager should be used in the FastAPI lifespan:

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            async with init_http_client() as http_client:
                providers = create_research_providers(http_client)
                yield
    """
    limits = httpx.Limits(
        max_connections=settings.httpx_max_connections,
        max_keepalive_connections=settings.httpx_max_keepalive_connections,
        keepalive_expiry=settings.httpx_keepalive_expiry,
    )

    client = httpx.AsyncClient(timeout=_build_timeout(), limits=limits)
    try:
        yield client
    finally:
        await client.aclose()
