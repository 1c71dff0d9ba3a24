from __future__ import annotations

import json
import logging
from typing import Optional

from aiohttp import web
from multidict import CIMultiDict

from asset_site.config.models import WorkerSettings
from asset_site.worker.cache_storage import FileCacheStorage, MemoryCacheStorage
from asset_site.worker.host import WorkerHost
from asset_site.worker.interfaces import CacheStorage, Fetcher
from asset_site.worker.models import Request
from asset_site.worker.network import HttpFetcher, filter_headers
from asset_site.worker.service_worker import CacheWorker

logger = logging.getLogger(__name__)

CONTROL_PREFIX = "/__worker__"

HOST_KEY = web.AppKey("worker_host", WorkerHost)
FETCHER_KEY = web.AppKey("fetcher", Fetcher)


def build_cache_storage(config: WorkerSettings) -> CacheStorage:
    if config.cache_dir.strip():
        return FileCacheStorage(config.cache_dir)
    return MemoryCacheStorage()


def build_host(
    config: WorkerSettings,
    *,
    fetcher: Optional[Fetcher] = None,
    caches: Optional[CacheStorage] = None,
) -> WorkerHost:
    if fetcher is None:
        fetcher = HttpFetcher(
            origin=config.origin,
            upstream_url=config.upstream_url,
            timeout_seconds=config.fetch_timeout_seconds,
        )
    if caches is None:
        caches = build_cache_storage(config)
    return WorkerHost(CacheWorker(config, caches=caches, fetcher=fetcher))


async def _handle_message(request: web.Request) -> web.Response:
    host = request.app[HOST_KEY]
    raw = await request.text()
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.info("Ignoring malformed worker message body. error=%s", e)
        return web.json_response({"accepted": False}, status=202)
    await host.post_message(data)
    return web.json_response({"accepted": True, "state": host.state}, status=202)


async def _handle_status(request: web.Request) -> web.Response:
    return web.json_response(await request.app[HOST_KEY].status())


async def _handle_proxy(request: web.Request) -> web.Response:
    host = request.app[HOST_KEY]
    worker_request = Request(
        url=host.worker.origin + str(request.rel_url),
        method=request.method,
        headers=CIMultiDict(request.headers),
        body=await request.read(),
    )
    response = await host.handle_fetch(worker_request)
    return web.Response(status=response.status, headers=filter_headers(response.headers), body=response.body)


async def _on_startup(app: web.Application) -> None:
    await app[HOST_KEY].start()


async def _on_cleanup(app: web.Application) -> None:
    await app[HOST_KEY].drain()
    fetcher = app[FETCHER_KEY]
    if isinstance(fetcher, HttpFetcher):
        await fetcher.close()


def create_app(
    config: WorkerSettings,
    *,
    fetcher: Optional[Fetcher] = None,
    caches: Optional[CacheStorage] = None,
) -> web.Application:
    """
    Build the caching proxy application.

    ``POST /__worker__/message`` and ``GET /__worker__/status`` form the
    control channel; every other request is dispatched through the worker.
    """
    host = build_host(config, fetcher=fetcher, caches=caches)

    app = web.Application()
    app[HOST_KEY] = host
    app[FETCHER_KEY] = host.worker.fetcher
    app.router.add_post(f"{CONTROL_PREFIX}/message", _handle_message)
    app.router.add_get(f"{CONTROL_PREFIX}/status", _handle_status)
    app.router.add_route("*", "/{tail:.*}", _handle_proxy)
    app.on_startup.append(_on_startup)
    app.on_cleanup.append(_on_cleanup)
    return app
