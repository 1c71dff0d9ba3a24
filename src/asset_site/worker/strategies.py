from __future__ import annotations

import logging
from typing import Optional

from asset_site.worker.events import ExtendableEvent
from asset_site.worker.interfaces import Cache, CacheStorage, Fetcher, NetworkError
from asset_site.worker.models import Request, Response, offline_response

logger = logging.getLogger(__name__)


class CacheStrategies:
    """
    The request-caching strategies, bound to a cache storage and a fetcher.

    Network responses are persisted into ``dynamic_cache`` only when their
    status is exactly 200. A failed write is logged and the network response
    is returned regardless.
    """

    def __init__(self, *, caches: CacheStorage, fetcher: Fetcher, dynamic_cache: str, root_url: str):
        self._caches = caches
        self._fetcher = fetcher
        self._dynamic_cache = dynamic_cache
        self._root_url = root_url

    async def _store(self, cache: Cache, request: Request, response: Response) -> None:
        if not response.cacheable:
            logger.debug("worker.cache_skip url=%s status=%s", request.url, response.status)
            return
        try:
            await cache.put(request.url, response.clone())
        except OSError as e:
            logger.warning("Failed to store cache entry. cache=%s url=%s error=%s", cache.name, request.url, e)

    async def _fetch_and_store(self, request: Request) -> Response:
        response = await self._fetcher.fetch(request)
        await self._store(await self._caches.open(self._dynamic_cache), request, response)
        return response

    async def cache_first(self, request: Request) -> Response:
        cached = await self._caches.match(request.url)
        if cached is not None:
            logger.debug("worker.cache_hit url=%s", request.url)
            return cached

        try:
            return await self._fetch_and_store(request)
        except NetworkError as e:
            logger.info("Cache-first failed. url=%s error=%s", request.url, e)

        cached = await self._caches.match(request.url)
        if cached is None:
            cached = await self._caches.match(self._root_url)
        return cached if cached is not None else offline_response(request.url)

    async def network_first(self, request: Request) -> Response:
        try:
            return await self._fetch_and_store(request)
        except NetworkError as e:
            logger.info("Network-first failed. url=%s error=%s", request.url, e)

        cached = await self._caches.match(request.url)
        return cached if cached is not None else offline_response(request.url)

    async def cache_only(self, request: Request) -> Optional[Response]:
        return await self._caches.match(request.url)

    async def stale_while_revalidate(self, request: Request, event: ExtendableEvent) -> Response:
        cache = await self._caches.open(self._dynamic_cache)
        cached = await cache.match(request.url)

        if cached is not None:
            event.wait_until(self._revalidate_in_background(cache, request))
            return cached

        try:
            response = await self._fetcher.fetch(request)
        except NetworkError as e:
            logger.info("Stale-while-revalidate fetch failed. url=%s error=%s", request.url, e)
            return offline_response(request.url)
        await self._store(cache, request, response)
        return response

    async def _revalidate_in_background(self, cache: Cache, request: Request) -> None:
        try:
            response = await self._fetcher.fetch(request)
        except NetworkError as e:
            logger.info("Background revalidation failed. url=%s error=%s", request.url, e)
            return
        await self._store(cache, request, response)
        logger.debug("worker.revalidated url=%s status=%s", request.url, response.status)
