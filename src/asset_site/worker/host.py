from __future__ import annotations

import asyncio
import logging
from typing import Any

from asset_site.worker.events import ExtendableEvent, FetchEvent, MessageEvent
from asset_site.worker.interfaces import NetworkError
from asset_site.worker.models import Request, Response, WorkerState, bad_gateway_response
from asset_site.worker.service_worker import CacheWorker

logger = logging.getLogger(__name__)


def _log_background_result(task: asyncio.Future) -> None:
    try:
        task.result()
    except asyncio.CancelledError:
        return
    except Exception:
        logger.exception("Worker background work failed.")


class WorkerHost:
    """
    Runtime that drives a :class:`CacheWorker` through its lifecycle.

    parsed -> installing -> installed -> activating -> activated. An installed
    worker waits until it asks to skip waiting; until it is activated and has
    claimed clients, every request goes straight to the network.
    """

    def __init__(self, worker: CacheWorker):
        self.worker = worker
        self.state: WorkerState = "parsed"
        self._background: set[asyncio.Future] = set()

    @property
    def controlling(self) -> bool:
        return self.state == "activated" and self.worker.clients_claimed

    def _keep_alive(self, event: ExtendableEvent) -> None:
        for work in event.pending:
            self._background.add(work)
            work.add_done_callback(self._background.discard)
            work.add_done_callback(_log_background_result)

    async def start(self) -> None:
        await self.install()
        await self._maybe_activate()

    async def install(self) -> None:
        self.state = "installing"
        event = ExtendableEvent()
        try:
            await self.worker.on_install(event)
            await event.settle()
        except Exception:
            logger.exception("Worker install failed; worker is redundant.")
            self.state = "redundant"
            return
        self.state = "installed"
        logger.info("worker.installed waiting=%s", not self.worker.skip_waiting_requested)

    async def activate(self) -> None:
        if self.state != "installed":
            return
        self.state = "activating"
        event = ExtendableEvent()
        try:
            await self.worker.on_activate(event)
            await event.settle()
        except Exception:
            logger.exception("Worker activation failed; worker is redundant.")
            self.state = "redundant"
            return
        self.state = "activated"
        logger.info("worker.activated controlling=%s", self.controlling)

    async def _maybe_activate(self) -> None:
        if self.state == "installed" and self.worker.skip_waiting_requested:
            await self.activate()

    async def post_message(self, data: Any) -> None:
        try:
            self.worker.on_message(MessageEvent(data))
        except Exception as e:
            logger.info("Message handling error. error=%s", e)
            return
        await self._maybe_activate()

    async def passthrough(self, request: Request) -> Response:
        try:
            return await self.worker.fetcher.fetch(request)
        except NetworkError as e:
            logger.warning("Network request failed. url=%s error=%s", request.url, e)
            return bad_gateway_response(request.url)

    async def handle_fetch(self, request: Request) -> Response:
        if not self.controlling:
            return await self.passthrough(request)

        event = FetchEvent(request)
        try:
            response = await self.worker.on_fetch(event)
        except NetworkError as e:
            logger.warning("Network request failed. url=%s error=%s", request.url, e)
            response = bad_gateway_response(request.url)
        finally:
            self._keep_alive(event)

        if response is None:
            return await self.passthrough(request)
        return response

    async def drain(self) -> None:
        """Wait for background work registered by fetch events to settle."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def status(self) -> dict[str, Any]:
        caches: dict[str, int] = {}
        for name in await self.worker.caches.keys():
            cache = await self.worker.caches.open(name)
            caches[name] = len(await cache.keys())
        return {
            "state": self.state,
            "controlling": self.controlling,
            "origin": self.worker.origin,
            "dev_host": self.worker.dev_host,
            "generation": self.worker.config.cache_version,
            "cache_names": list(self.worker.cache_names.current()),
            "caches": caches,
            "pending_background": len(self._background),
        }
