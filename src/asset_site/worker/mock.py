from __future__ import annotations

import asyncio
from typing import Dict, Optional, Union

from asset_site.worker.interfaces import Fetcher, NetworkError
from asset_site.worker.models import Request, Response

MockRoute = Union[Response, NetworkError]


class MockFetcher(Fetcher):
    """
    A deterministic in-process network for worker testing.

    Each URL maps to a response or to a NetworkError to raise. Unknown URLs
    answer 404. When ``gate`` is set, every fetch waits for it first, which
    lets tests hold background revalidation open.
    """

    def __init__(self, routes: Optional[Dict[str, MockRoute]] = None, *, gate: Optional[asyncio.Event] = None):
        self.routes: Dict[str, MockRoute] = dict(routes or {})
        self.gate = gate
        self.calls: list[Request] = []
        self.no_store_calls: list[Request] = []

    def set(self, url: str, route: MockRoute) -> None:
        self.routes[url] = route

    def calls_for(self, url: str) -> int:
        return sum(1 for call in self.calls if call.url == url)

    async def fetch(self, request: Request, *, no_store: bool = False) -> Response:
        self.calls.append(request)
        if no_store:
            self.no_store_calls.append(request)
        if self.gate is not None:
            await self.gate.wait()

        route = self.routes.get(request.url)
        if route is None:
            return Response(status=404, body=b"Not Found", url=request.url)
        if isinstance(route, NetworkError):
            raise route
        return route.clone()
