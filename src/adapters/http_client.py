"""Wrapper de httpx.

Por qué un wrapper:
- Estandariza timeouts y headers de las comprobaciones HTTP (doctor, resumen final).
- Facilita testeo: se puede sustituir el transporte por `httpx.MockTransport`.
"""

from __future__ import annotations

import asyncio
from typing import Sequence

import httpx

from core.config import AppSettings


def build_async_client(
    settings: AppSettings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Crea un `httpx.AsyncClient` con defaults seguros."""

    settings = settings or AppSettings()
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=True,
        headers={"User-Agent": "laravel-fp/0.1"},
        transport=transport,
    )


async def check_http(client: httpx.AsyncClient, url: str) -> tuple[bool, str]:
    """Best-effort GET. Any HTTP answer counts as reachable, even 500."""

    try:
        response = await client.get(url)
    except httpx.HTTPError as exc:
        return False, str(exc) or exc.__class__.__name__
    return True, f"HTTP {response.status_code}"


async def _check_all(
    urls: Sequence[str],
    settings: AppSettings | None,
    transport: httpx.AsyncBaseTransport | None,
) -> dict[str, tuple[bool, str]]:
    async with build_async_client(settings, transport=transport) as client:
        results = await asyncio.gather(*(check_http(client, url) for url in urls))
    return dict(zip(urls, results))


def check_urls(
    urls: Sequence[str],
    settings: AppSettings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict[str, tuple[bool, str]]:
    """Sync entry point for the CLI: url -> (reachable, detail)."""

    return asyncio.run(_check_all(list(urls), settings, transport))
