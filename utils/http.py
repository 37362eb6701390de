"""Shared httpx client helper"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx

import settings


def create_async_client(timeout: Optional[float] = None) -> httpx.AsyncClient:
    """Create an AsyncClient honouring the configured timeout and proxy"""
    kwargs = {"timeout": timeout if timeout is not None else settings.REQUEST_TIMEOUT}
    if settings.HTTP_PROXY_URL:
        kwargs["proxy"] = settings.HTTP_PROXY_URL
    return httpx.AsyncClient(**kwargs)


@asynccontextmanager
async def http_session(
    client: Optional[httpx.AsyncClient] = None,
    timeout: Optional[float] = None,
) -> AsyncIterator[httpx.AsyncClient]:
    """Yield the injected client, or a short-lived one closed on exit"""
    if client is not None:
        yield client
        return
    async with create_async_client(timeout) as owned:
        yield owned
