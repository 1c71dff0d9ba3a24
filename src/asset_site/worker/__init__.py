"""Request-caching worker: strategies, cache storage and the hosting runtime."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from asset_site.worker.host import WorkerHost
    from asset_site.worker.service_worker import CacheWorker
    from asset_site.worker.server import create_app

__all__ = ["CacheWorker", "WorkerHost", "create_app"]


def __getattr__(name: str):
    if name == "CacheWorker":
        from asset_site.worker.service_worker import CacheWorker as _CacheWorker

        return _CacheWorker
    if name == "WorkerHost":
        from asset_site.worker.host import WorkerHost as _WorkerHost

        return _WorkerHost
    if name == "create_app":
        from asset_site.worker.server import create_app as _create_app

        return _create_app
    raise AttributeError(name)
