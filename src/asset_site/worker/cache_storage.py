from __future__ import annotations

import hashlib
import logging
import shutil
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import quote, urldefrag

from multidict import CIMultiDict

from asset_site.core.io import atomic_write_bytes, atomic_write_json, read_json
from asset_site.worker.interfaces import Cache, CacheStorage
from asset_site.worker.models import Response

logger = logging.getLogger(__name__)


def cache_key(url: str) -> str:
    return urldefrag(url).url


class MemoryCache(Cache):
    def __init__(self, name: str) -> None:
        self.name = name
        self._entries: Dict[str, Response] = {}

    async def match(self, url: str) -> Optional[Response]:
        response = self._entries.get(cache_key(url))
        return response.clone() if response is not None else None

    async def put(self, url: str, response: Response) -> None:
        self._entries[cache_key(url)] = response.clone()

    async def delete(self, url: str) -> bool:
        return self._entries.pop(cache_key(url), None) is not None

    async def keys(self) -> list[str]:
        return list(self._entries)


class MemoryCacheStorage(CacheStorage):
    def __init__(self) -> None:
        self._caches: Dict[str, MemoryCache] = {}

    async def open(self, name: str) -> Cache:
        cache = self._caches.get(name)
        if cache is None:
            cache = MemoryCache(name)
            self._caches[name] = cache
        return cache

    async def has(self, name: str) -> bool:
        return name in self._caches

    async def delete(self, name: str) -> bool:
        return self._caches.pop(name, None) is not None

    async def keys(self) -> list[str]:
        return list(self._caches)


def _entry_id(url: str) -> str:
    return hashlib.sha256(url.encode("utf-8")).hexdigest()


def _encode_metadata(url: str, response: Response) -> dict:
    return {
        "url": url,
        "status": response.status,
        # Pairs rather than an object so repeated headers are kept
        "headers": [[k, v] for k, v in response.headers.items()],
    }


def _decode_response(payload: dict, body: bytes) -> Response:
    return Response(
        status=int(payload["status"]),
        headers=CIMultiDict((k, v) for k, v in payload.get("headers", [])),
        body=body,
        url=payload.get("url", ""),
    )


class FileCache(Cache):
    """
    One JSON metadata file plus one body file per entry, both named by the
    SHA-256 of the request URL. The body is written first, so a metadata file
    only ever points at a complete body.
    """

    def __init__(self, name: str, directory: Path) -> None:
        self.name = name
        self._dir = directory

    def _entry_paths(self, url: str) -> tuple[Path, Path]:
        entry_id = _entry_id(cache_key(url))
        return self._dir / f"{entry_id}.json", self._dir / f"{entry_id}.body"

    async def match(self, url: str) -> Optional[Response]:
        meta_path, body_path = self._entry_paths(url)
        if not meta_path.exists():
            return None
        try:
            return _decode_response(read_json(meta_path), body_path.read_bytes())
        except (OSError, ValueError, KeyError) as e:
            logger.warning("Unreadable cache entry ignored. cache=%s url=%s error=%s", self.name, url, e)
            return None

    async def put(self, url: str, response: Response) -> None:
        key = cache_key(url)
        meta_path, body_path = self._entry_paths(key)
        atomic_write_bytes(body_path, response.body)
        atomic_write_json(meta_path, _encode_metadata(key, response))

    async def delete(self, url: str) -> bool:
        meta_path, body_path = self._entry_paths(url)
        if not meta_path.exists():
            return False
        meta_path.unlink()
        body_path.unlink(missing_ok=True)
        return True

    async def keys(self) -> list[str]:
        if not self._dir.exists():
            return []
        urls: list[str] = []
        for path in sorted(self._dir.glob("*.json")):
            try:
                urls.append(read_json(path)["url"])
            except (OSError, ValueError, KeyError) as e:
                logger.warning("Unreadable cache entry ignored. path=%s error=%s", path, e)
        return urls


class FileCacheStorage(CacheStorage):
    """
    Directory-backed caches that survive restarts.

    Each cache is a subdirectory named after the (quoted) cache name. Creation
    order is kept in ``caches.json`` so cross-cache matching is stable.
    """

    MANIFEST = "caches.json"

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)

    def _manifest_path(self) -> Path:
        return self._root / self.MANIFEST

    def _read_names(self) -> list[str]:
        path = self._manifest_path()
        if not path.exists():
            return []
        return list(read_json(path).get("caches", []))

    def _write_names(self, names: list[str]) -> None:
        atomic_write_json(self._manifest_path(), {"caches": names})

    def _cache_dir(self, name: str) -> Path:
        return self._root / quote(name, safe="")

    async def open(self, name: str) -> Cache:
        names = self._read_names()
        if name not in names:
            names.append(name)
            self._write_names(names)
            self._cache_dir(name).mkdir(parents=True, exist_ok=True)
        return FileCache(name, self._cache_dir(name))

    async def has(self, name: str) -> bool:
        return name in self._read_names()

    async def delete(self, name: str) -> bool:
        names = self._read_names()
        if name not in names:
            return False
        names.remove(name)
        self._write_names(names)
        shutil.rmtree(self._cache_dir(name), ignore_errors=True)
        return True

    async def keys(self) -> list[str]:
        return self._read_names()
