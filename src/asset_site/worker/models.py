from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Literal, Mapping

from multidict import CIMultiDict

from asset_site.config.models import StrategyName

WorkerState = Literal["parsed", "installing", "installed", "activating", "activated", "redundant"]

CACHE_FIRST: StrategyName = "cache-first"
NETWORK_FIRST: StrategyName = "network-first"
CACHE_ONLY: StrategyName = "cache-only"
NETWORK_ONLY: StrategyName = "network-only"
STALE_WHILE_REVALIDATE: StrategyName = "stale-while-revalidate"

SKIP_WAITING_MESSAGE = "SKIP_WAITING"


@dataclass(frozen=True, slots=True)
class Request:
    url: str
    method: str = "GET"
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""


@dataclass(frozen=True, slots=True)
class Response:
    status: int
    # A CIMultiDict when built from the network, so repeated headers survive
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""
    url: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status <= 299

    @property
    def cacheable(self) -> bool:
        # Only complete responses are stored; 206 partial content never is.
        return self.status == 200

    def clone(self) -> Response:
        return replace(self, headers=CIMultiDict(self.headers))


def offline_response(url: str = "") -> Response:
    return Response(
        status=503,
        headers={"Content-Type": "text/plain; charset=utf-8"},
        body=b"Offline",
        url=url,
    )


def not_cached_response(url: str = "") -> Response:
    return Response(
        status=504,
        headers={"Content-Type": "text/plain; charset=utf-8"},
        body=b"Not cached",
        url=url,
    )


def bad_gateway_response(url: str = "") -> Response:
    return Response(
        status=502,
        headers={"Content-Type": "text/plain; charset=utf-8"},
        body=b"Bad Gateway",
        url=url,
    )
