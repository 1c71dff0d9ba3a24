import asyncio
import errno
import unittest

from asset_site.config.models import WorkerSettings
from asset_site.worker.cache_storage import MemoryCache, MemoryCacheStorage
from asset_site.worker.events import FetchEvent
from asset_site.worker.interfaces import NetworkError
from asset_site.worker.mock import MockFetcher
from asset_site.worker.models import Request, Response
from asset_site.worker.routing import StrategyTable, prefix_rule
from asset_site.worker.service_worker import CacheWorker

ORIGIN = "https://assets.example.com"
DYNAMIC = "doge-minna-dynamic-v2.0.0"


def _ok(body: bytes, status: int = 200) -> Response:
    return Response(status=status, headers={"Content-Type": "application/octet-stream"}, body=body)


class FullDiskCache(MemoryCache):
    async def put(self, url: str, response: Response) -> None:
        raise OSError(errno.ENOSPC, "No space left on device")


class FullDiskCacheStorage(MemoryCacheStorage):
    async def open(self, name: str) -> MemoryCache:
        cache = self._caches.get(name)
        if cache is None:
            cache = FullDiskCache(name)
            self._caches[name] = cache
        return cache


class StrategyTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.fetcher = MockFetcher()
        self.caches = MemoryCacheStorage()
        self.worker = CacheWorker(WorkerSettings(origin=ORIGIN), caches=self.caches, fetcher=self.fetcher)

    async def fetch(self, url: str, method: str = "GET") -> tuple[Response | None, FetchEvent]:
        event = FetchEvent(Request(url=url, method=method))
        response = await self.worker.on_fetch(event)
        return response, event

    async def cached(self, url: str) -> Response | None:
        return await self.caches.match(url)


class CacheFirstTests(StrategyTestCase):
    async def test_second_request_is_served_from_cache_without_network(self) -> None:
        url = f"{ORIGIN}/assets/app.js"
        self.fetcher.set(url, _ok(b"v1"))

        first, _ = await self.fetch(url)
        second, _ = await self.fetch(url)

        self.assertEqual(first.body, b"v1")
        self.assertEqual(second.body, b"v1")
        self.assertEqual(self.fetcher.calls_for(url), 1)

    async def test_partial_content_is_never_cached(self) -> None:
        url = f"{ORIGIN}/music/theme.mp3"
        self.fetcher.set(url, _ok(b"part", status=206))

        response, _ = await self.fetch(url)

        self.assertEqual(response.status, 206)
        self.assertIsNone(await self.cached(url))
        await self.fetch(url)
        self.assertEqual(self.fetcher.calls_for(url), 2)

    async def test_network_failure_falls_back_to_root_document(self) -> None:
        root = await self.caches.open("doge-minna-static-v2.0.0")
        await root.put(f"{ORIGIN}/", _ok(b"<html>shell</html>"))
        url = f"{ORIGIN}/textures/stone.png"
        self.fetcher.set(url, NetworkError("offline"))

        response, _ = await self.fetch(url)

        self.assertEqual(response.body, b"<html>shell</html>")

    async def test_network_failure_without_any_cache_is_offline(self) -> None:
        url = f"{ORIGIN}/textures/stone.png"
        self.fetcher.set(url, NetworkError("offline"))

        response, _ = await self.fetch(url)

        self.assertEqual(response.status, 503)


class NetworkFirstTests(StrategyTestCase):
    async def test_success_is_stored(self) -> None:
        url = f"{ORIGIN}/api/scores"
        self.fetcher.set(url, _ok(b"[1,2]"))

        response, _ = await self.fetch(url)

        self.assertEqual(response.body, b"[1,2]")
        cached = await (await self.caches.open(DYNAMIC)).match(url)
        self.assertEqual(cached.body, b"[1,2]")

    async def test_failure_falls_back_to_cached_entry(self) -> None:
        url = f"{ORIGIN}/api/scores"
        self.fetcher.set(url, _ok(b"old"))
        await self.fetch(url)
        self.fetcher.set(url, NetworkError("offline"))

        response, _ = await self.fetch(url)

        self.assertEqual(response.status, 200)
        self.assertEqual(response.body, b"old")

    async def test_failure_without_cache_is_service_unavailable(self) -> None:
        url = f"{ORIGIN}/api/scores"
        self.fetcher.set(url, NetworkError("offline"))

        response, _ = await self.fetch(url)

        self.assertEqual(response.status, 503)
        self.assertEqual(response.body, b"Offline")

    async def test_partial_content_is_never_cached(self) -> None:
        url = f"{ORIGIN}/worlds/w1"
        self.fetcher.set(url, _ok(b"part", status=206))

        await self.fetch(url)

        self.assertIsNone(await self.cached(url))

    async def test_unmatched_path_defaults_to_network_first(self) -> None:
        url = f"{ORIGIN}/manifests/game.json"
        self.fetcher.set(url, _ok(b"{}"))

        await self.fetch(url)
        await self.fetch(url)

        self.assertEqual(self.fetcher.calls_for(url), 2)


class CacheWriteFailureTests(StrategyTestCase):
    def setUp(self) -> None:
        self.fetcher = MockFetcher()
        self.caches = FullDiskCacheStorage()
        self.worker = CacheWorker(WorkerSettings(origin=ORIGIN), caches=self.caches, fetcher=self.fetcher)

    async def test_cache_first_returns_network_response_when_store_fails(self) -> None:
        url = f"{ORIGIN}/assets/app.js"
        self.fetcher.set(url, _ok(b"js"))

        with self.assertLogs("asset_site.worker.strategies", level="WARNING"):
            response, _ = await self.fetch(url)

        self.assertEqual(response.status, 200)
        self.assertEqual(response.body, b"js")
        self.assertIsNone(await self.cached(url))

    async def test_network_first_returns_network_response_when_store_fails(self) -> None:
        url = f"{ORIGIN}/api/scores"
        self.fetcher.set(url, _ok(b"[1,2]"))

        with self.assertLogs("asset_site.worker.strategies", level="WARNING"):
            response, _ = await self.fetch(url)

        self.assertEqual(response.status, 200)
        self.assertEqual(response.body, b"[1,2]")
        self.assertIsNone(await self.cached(url))


class CacheOnlyAndNetworkOnlyTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.fetcher = MockFetcher()
        self.caches = MemoryCacheStorage()
        table = StrategyTable(
            [prefix_rule("/offline/", "cache-only"), prefix_rule("/live/", "network-only")]
        )
        self.worker = CacheWorker(
            WorkerSettings(origin=ORIGIN), caches=self.caches, fetcher=self.fetcher, table=table
        )

    async def test_cache_only_never_touches_network(self) -> None:
        url = f"{ORIGIN}/offline/page"
        cache = await self.caches.open(DYNAMIC)
        await cache.put(url, _ok(b"cached"))

        hit = await self.worker.on_fetch(FetchEvent(Request(url=url)))
        miss = await self.worker.on_fetch(FetchEvent(Request(url=f"{ORIGIN}/offline/other")))

        self.assertEqual(hit.body, b"cached")
        self.assertEqual(miss.status, 504)
        self.assertEqual(self.fetcher.calls, [])

    async def test_network_only_is_not_intercepted(self) -> None:
        response = await self.worker.on_fetch(FetchEvent(Request(url=f"{ORIGIN}/live/feed")))

        self.assertIsNone(response)
        self.assertEqual(self.fetcher.calls, [])


class StaleWhileRevalidateTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.gate = asyncio.Event()
        self.fetcher = MockFetcher(gate=self.gate)
        self.caches = MemoryCacheStorage()
        table = StrategyTable([prefix_rule("/feed/", "stale-while-revalidate")])
        self.worker = CacheWorker(
            WorkerSettings(origin=ORIGIN), caches=self.caches, fetcher=self.fetcher, table=table
        )
        self.url = f"{ORIGIN}/feed/latest"

    async def test_cached_entry_returned_immediately_then_refreshed(self) -> None:
        cache = await self.caches.open(DYNAMIC)
        await cache.put(self.url, _ok(b"stale"))
        self.fetcher.set(self.url, _ok(b"fresh"))

        event = FetchEvent(Request(url=self.url))
        response = await self.worker.on_fetch(event)

        self.assertEqual(response.body, b"stale")
        self.assertEqual(len(event.pending), 1)
        self.assertFalse(event.pending[0].done())

        self.gate.set()
        await event.settle()

        second_event = FetchEvent(Request(url=self.url))
        second = await self.worker.on_fetch(second_event)
        await second_event.settle()
        self.assertEqual(second.body, b"fresh")

    async def test_background_failure_keeps_stale_entry(self) -> None:
        cache = await self.caches.open(DYNAMIC)
        await cache.put(self.url, _ok(b"stale"))
        self.fetcher.set(self.url, NetworkError("offline"))
        self.gate.set()

        event = FetchEvent(Request(url=self.url))
        response = await self.worker.on_fetch(event)
        await event.settle()

        self.assertEqual(response.body, b"stale")
        self.assertEqual((await cache.match(self.url)).body, b"stale")

    async def test_without_cache_waits_for_network(self) -> None:
        self.fetcher.set(self.url, _ok(b"fresh"))
        self.gate.set()

        event = FetchEvent(Request(url=self.url))
        response = await self.worker.on_fetch(event)

        self.assertEqual(response.body, b"fresh")
        self.assertEqual(event.pending, ())
        self.assertEqual((await (await self.caches.open(DYNAMIC)).match(self.url)).body, b"fresh")


class DispatchRulesTests(StrategyTestCase):
    async def test_non_get_requests_pass_through(self) -> None:
        response, _ = await self.fetch(f"{ORIGIN}/assets/app.js", method="POST")

        self.assertIsNone(response)
        self.assertEqual(self.fetcher.calls, [])

    async def test_cross_origin_passes_through_unless_owned_asset(self) -> None:
        foreign, _ = await self.fetch("https://cdn.other.com/lib.js")
        self.assertIsNone(foreign)

        owned_url = "https://cdn.other.com/assets/lib.js"
        self.fetcher.set(owned_url, _ok(b"lib"))
        owned, _ = await self.fetch(owned_url)
        self.assertEqual(owned.body, b"lib")

    async def test_path_matching_is_case_insensitive(self) -> None:
        self.assertEqual(self.worker.table.select(f"{ORIGIN}/Textures/STONE.PNG"), "cache-first")
        self.assertEqual(self.worker.table.select(f"{ORIGIN}/API/x"), "network-first")
        self.assertEqual(self.worker.table.select("wss://assets.example.com/socket"), "network-only")

    async def test_first_matching_rule_wins(self) -> None:
        table = StrategyTable(
            [prefix_rule("/api/", "network-only"), prefix_rule("/api/cached/", "cache-first")],
            default="cache-only",
        )
        self.assertEqual(table.select(f"{ORIGIN}/api/cached/x"), "network-only")
        self.assertEqual(table.select(f"{ORIGIN}/other"), "cache-only")


if __name__ == "__main__":
    unittest.main()
