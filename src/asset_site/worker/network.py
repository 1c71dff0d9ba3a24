from __future__ import annotations

import asyncio
import logging
from typing import Mapping, Optional

import aiohttp
from multidict import CIMultiDict

from asset_site.worker.interfaces import Fetcher, NetworkError
from asset_site.worker.models import Request, Response
from asset_site.worker.routing import normalize_origin

logger = logging.getLogger(__name__)

# Connection-level headers that must not be forwarded by a proxy. The body is
# decompressed and re-framed by aiohttp, so the encoding headers go as well.
HOP_BY_HOP_HEADERS = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailer",
        "transfer-encoding",
        "upgrade",
        "host",
        "content-length",
        "content-encoding",
    }
)


def filter_headers(headers: Mapping[str, str]) -> CIMultiDict[str]:
    return CIMultiDict((k, v) for k, v in headers.items() if k.lower() not in HOP_BY_HOP_HEADERS)


class HttpFetcher(Fetcher):
    """
    aiohttp-backed network access.

    Requests addressed to the public ``origin`` are sent to ``upstream_url``
    instead; any other URL is fetched as-is.
    """

    def __init__(self, *, origin: str, upstream_url: str, timeout_seconds: Optional[float] = None):
        self._origin = normalize_origin(origin)
        self._upstream = upstream_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> HttpFetcher:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def start(self) -> None:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    def target_url(self, url: str) -> str:
        if url == self._origin or url.startswith(self._origin + "/"):
            return self._upstream + url[len(self._origin) :]
        return url

    async def fetch(self, request: Request, *, no_store: bool = False) -> Response:
        await self.start()
        assert self._session is not None

        headers = filter_headers(request.headers)
        if no_store:
            headers["Cache-Control"] = "no-store"
        target = self.target_url(request.url)

        logger.debug("worker.network_fetch method=%s url=%s target=%s", request.method, request.url, target)
        try:
            async with self._session.request(
                request.method,
                target,
                headers=headers,
                data=request.body or None,
                allow_redirects=False,
            ) as response:
                body = await response.read()
                return Response(
                    status=response.status,
                    headers=filter_headers(response.headers),
                    body=body,
                    url=request.url,
                )
        except asyncio.TimeoutError as e:
            raise NetworkError(f"Timed out fetching {request.url}") from e
        except aiohttp.ClientError as e:
            raise NetworkError(f"Failed to fetch {request.url}: {e}") from e
