"""Small shared helpers."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx


@asynccontextmanager
async def borrowed_client(
    client: httpx.AsyncClient | None,
) -> AsyncIterator[httpx.AsyncClient]:
    """Yield ``client`` untouched, or a fresh client closed on exit.

    Fresh clients have no timeout: the caller's request deadline is the only
    bound on provider calls.
    """
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(timeout=None) as owned:
        yield owned
