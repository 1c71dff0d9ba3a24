from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Collection, Optional
from urllib.parse import urljoin, urlsplit

from asset_site.config.models import WorkerSettings
from asset_site.worker.events import ExtendableEvent, FetchEvent, MessageEvent
from asset_site.worker.interfaces import Cache, CacheStorage, Fetcher, NetworkError
from asset_site.worker.models import (
    CACHE_FIRST,
    CACHE_ONLY,
    NETWORK_FIRST,
    NETWORK_ONLY,
    SKIP_WAITING_MESSAGE,
    STALE_WHILE_REVALIDATE,
    Request,
    Response,
    not_cached_response,
)
from asset_site.worker.routing import StrategyTable, hostname_of, normalize_origin
from asset_site.worker.strategies import CacheStrategies

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CacheNames:
    """The cache names of one generation."""

    aggregate: str
    static: str
    dynamic: str

    @classmethod
    def for_generation(cls, prefix: str, version: str) -> CacheNames:
        return cls(
            aggregate=f"{prefix}-v{version}",
            static=f"{prefix}-static-v{version}",
            dynamic=f"{prefix}-dynamic-v{version}",
        )

    def current(self) -> tuple[str, str, str]:
        return (self.aggregate, self.static, self.dynamic)


def is_dev_host(hostname: str, dev_hosts: Collection[str], dev_suffixes: Collection[str]) -> bool:
    host = hostname.lower()
    if not host:
        return False
    return host in dev_hosts or any(host.endswith(suffix) for suffix in dev_suffixes)


class CacheWorker:
    """
    Event handlers of the caching worker.

    The worker keeps no state of its own beyond two flags the host reads back:
    ``skip_waiting_requested`` and ``clients_claimed``. Everything else lives
    in the cache storage.
    """

    def __init__(
        self,
        config: WorkerSettings,
        *,
        caches: CacheStorage,
        fetcher: Fetcher,
        table: Optional[StrategyTable] = None,
    ):
        self.config = config
        self.caches = caches
        self.fetcher = fetcher
        self.origin = normalize_origin(config.origin)
        self.cache_names = CacheNames.for_generation(config.cache_prefix, config.cache_version)
        self.table = table or StrategyTable.from_settings(config.strategies, config.default_strategy)
        self.dev_host = is_dev_host(hostname_of(config.origin), config.dev_hosts, config.dev_host_suffixes)
        self.strategies = CacheStrategies(
            caches=caches,
            fetcher=fetcher,
            dynamic_cache=self.cache_names.dynamic,
            root_url=self.resolve("/"),
        )
        self.skip_waiting_requested = False
        self.clients_claimed = False

    def resolve(self, path: str) -> str:
        return urljoin(self.origin + "/", path)

    def skip_waiting(self) -> None:
        self.skip_waiting_requested = True

    def claim_clients(self) -> None:
        self.clients_claimed = True

    async def _purge_all(self) -> None:
        for name in await self.caches.keys():
            await self.caches.delete(name)
            logger.info("worker.cache_deleted name=%s", name)

    async def on_install(self, event: ExtendableEvent) -> None:
        logger.info("Installing worker. origin=%s dev_host=%s", self.origin, self.dev_host)
        if self.dev_host:
            await self._purge_all()
            self.skip_waiting()
            return

        static_cache = await self.caches.open(self.cache_names.static)
        dynamic_cache = await self.caches.open(self.cache_names.dynamic)
        await asyncio.gather(
            self._precache(static_cache, self.config.static_assets),
            self._precache(dynamic_cache, self.config.critical_assets),
        )
        if self.config.skip_waiting_on_install:
            self.skip_waiting()

    async def _precache(self, cache: Cache, assets: Collection[str]) -> None:
        await asyncio.gather(*(self._precache_one(cache, asset) for asset in assets))

    async def _precache_one(self, cache: Cache, asset: str) -> None:
        url = self.resolve(asset)
        try:
            response = await self.fetcher.fetch(Request(url=url))
        except NetworkError as e:
            logger.warning("Skipped caching asset. cache=%s url=%s error=%s", cache.name, url, e)
            return
        if not response.cacheable:
            logger.warning("Skipped caching asset. cache=%s url=%s status=%s", cache.name, url, response.status)
            return
        try:
            await cache.put(url, response)
        except OSError as e:
            logger.warning("Skipped caching asset. cache=%s url=%s error=%s", cache.name, url, e)
            return
        logger.debug("worker.precached cache=%s url=%s", cache.name, url)

    async def on_activate(self, event: ExtendableEvent) -> None:
        logger.info("Activating worker. generation=%s", self.config.cache_version)
        if self.dev_host:
            await self._purge_all()
        else:
            current = self.cache_names.current()
            for name in await self.caches.keys():
                if name in current:
                    continue
                logger.info("Deleting old cache. name=%s", name)
                await self.caches.delete(name)
        self.claim_clients()

    def _is_owned(self, url: str) -> bool:
        if normalize_origin(url) == self.origin:
            return True
        return urlsplit(url).path.startswith(self.config.owned_assets_prefix)

    async def on_fetch(self, event: FetchEvent) -> Optional[Response]:
        """
        Answer an intercepted request, or return None to let it through untouched.
        """
        request = event.request

        if self.dev_host:
            return await self.fetcher.fetch(request, no_store=True)

        if request.method.upper() != "GET":
            return None

        if not self._is_owned(request.url):
            return None

        strategy = self.table.select(request.url)
        logger.debug("worker.dispatch url=%s strategy=%s", request.url, strategy)

        if strategy == CACHE_FIRST:
            return await self.strategies.cache_first(request)
        if strategy == NETWORK_FIRST:
            return await self.strategies.network_first(request)
        if strategy == CACHE_ONLY:
            cached = await self.strategies.cache_only(request)
            return cached if cached is not None else not_cached_response(request.url)
        if strategy == NETWORK_ONLY:
            return None
        if strategy == STALE_WHILE_REVALIDATE:
            return await self.strategies.stale_while_revalidate(request, event)
        return await self.strategies.network_first(request)

    def on_message(self, event: MessageEvent) -> None:
        data = event.data
        if not isinstance(data, dict):
            logger.info("Ignoring malformed worker message. data=%r", data)
            return
        message_type = data.get("type")
        if message_type == SKIP_WAITING_MESSAGE:
            logger.info("Skip-waiting requested by client.")
            self.skip_waiting()
            return
        logger.info("Ignoring unrecognized worker message. type=%r", message_type)
