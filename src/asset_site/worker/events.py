from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable

from asset_site.worker.models import Request

logger = logging.getLogger(__name__)


class ExtendableEvent:
    """
    A lifecycle event whose handler may register work that outlives it.

    Work passed to :meth:`wait_until` starts immediately; the host keeps it
    alive until it settles.
    """

    def __init__(self) -> None:
        self._pending: list[asyncio.Future] = []

    def wait_until(self, work: Awaitable[Any]) -> None:
        self._pending.append(asyncio.ensure_future(work))

    @property
    def pending(self) -> tuple[asyncio.Future, ...]:
        return tuple(self._pending)

    async def settle(self) -> None:
        """Wait for all registered work, logging failures instead of raising."""
        if not self._pending:
            return
        results = await asyncio.gather(*self._pending, return_exceptions=True)
        for result in results:
            if isinstance(result, asyncio.CancelledError):
                continue
            if isinstance(result, BaseException):
                logger.error("Extended event work failed. error=%r", result, exc_info=result)


class FetchEvent(ExtendableEvent):
    def __init__(self, request: Request) -> None:
        super().__init__()
        self.request = request


class MessageEvent:
    def __init__(self, data: Any) -> None:
        self.data = data
