from __future__ import annotations

from typing import Optional

from asset_site.worker.models import Request, Response


class NetworkError(Exception):
    """The request never produced an HTTP response (connection failure, timeout)."""


class Fetcher:
    async def fetch(self, request: Request, *, no_store: bool = False) -> Response:
        """
        Send the request over the network.

        HTTP error statuses are returned as responses. Raises NetworkError when
        no response could be obtained. ``no_store`` asks intermediaries not to
        serve or keep a cached copy.
        """
        raise NotImplementedError


class Cache:
    """A named request-URL to response store with atomic per-key put/match."""

    name: str

    async def match(self, url: str) -> Optional[Response]:
        raise NotImplementedError

    async def put(self, url: str, response: Response) -> None:
        raise NotImplementedError

    async def delete(self, url: str) -> bool:
        raise NotImplementedError

    async def keys(self) -> list[str]:
        raise NotImplementedError


class CacheStorage:
    """The collection of named caches, in creation order."""

    async def open(self, name: str) -> Cache:
        """Return the named cache, creating it when missing."""
        raise NotImplementedError

    async def has(self, name: str) -> bool:
        raise NotImplementedError

    async def delete(self, name: str) -> bool:
        raise NotImplementedError

    async def keys(self) -> list[str]:
        raise NotImplementedError

    async def match(self, url: str) -> Optional[Response]:
        """First match across all caches, searched in creation order."""
        for name in await self.keys():
            cache = await self.open(name)
            response = await cache.match(url)
            if response is not None:
                return response
        return None
