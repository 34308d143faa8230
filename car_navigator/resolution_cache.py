"""
Resolution Cache

Redis store for answers produced by the generative backend. Only
history-free queries that came back as CAR_RESULTS with at least one vehicle
are written; local resolutions and apologies never are.

A missing or unreachable Redis turns every operation into a no-op.
"""

import hashlib
import json
import re
import unicodedata
from datetime import datetime, timezone
from typing import Optional

import redis.asyncio as aioredis

from car_navigator.models import Resolution
from car_navigator.pipeline_logger import log_cache, log_error


KEY_PREFIX = "cache:v1:resolve:"

_RE_PUNCT = re.compile(r"[^\w\s]", re.UNICODE)
_RE_SPACES = re.compile(r"\s+")


def normalize_query(query: str) -> str:
    """
    Fold a query so that trivially different spellings share a key.

        "  トヨタ の  ＳＵＶ！！ " -> "トヨタ の suv"
    """
    if not query:
        return ""
    text = _RE_PUNCT.sub("", unicodedata.normalize("NFKC", query))
    return _RE_SPACES.sub(" ", text).strip().lower()


def make_cache_key(query: str) -> str:
    digest = hashlib.sha256(normalize_query(query).encode("utf-8")).hexdigest()
    return KEY_PREFIX + digest[:16]


def is_cacheable(resolution: Resolution) -> bool:
    return resolution.source == "backend" and bool(resolution.vehicles)


class ResolutionCache:
    """
    Usage:
        cache = ResolutionCache(host="redis")
        await cache.connect()

        resolution = await cache.get(text)
        if resolution is None:
            resolution = ...
            await cache.set(text, resolution)
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 6379,
        password: str = "",
        db: int = 0,
        default_ttl: int = 86400,
    ):
        self._connection_kwargs = {
            "host": host,
            "port": port,
            "password": password or None,
            "db": db,
            "decode_responses": True,
        }
        self._ttl = default_ttl
        self._redis: Optional[aioredis.Redis] = None

    @property
    def available(self) -> bool:
        return self._redis is not None

    async def connect(self) -> bool:
        client = aioredis.Redis(**self._connection_kwargs)
        try:
            await client.ping()
        except Exception as e:
            log_error("CACHE", f"Redis unreachable at {self._connection_kwargs['host']}", e)
            self._redis = None
            return False
        self._redis = client
        log_cache("Resolution cache ready", {
            "host": self._connection_kwargs["host"],
            "port": self._connection_kwargs["port"],
        })
        return True

    async def get(self, query: str) -> Optional[Resolution]:
        if self._redis is None:
            return None

        key = make_cache_key(query)
        try:
            raw = await self._redis.get(key)
            entry = json.loads(raw) if raw is not None else None
            resolution = Resolution.model_validate(entry["resolution"]) if entry else None
        except Exception as e:
            log_error("CACHE", f"Unreadable cache entry {key}", e)
            return None

        log_cache("hit" if resolution else "miss", {"key": key, "query": query[:50]})
        return resolution

    async def set(self, query: str, resolution: Resolution, ttl: Optional[int] = None) -> bool:
        if self._redis is None or not is_cacheable(resolution):
            return False

        key = make_cache_key(query)
        entry = {
            "resolution": resolution.model_dump(by_alias=True),
            "cached_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            await self._redis.set(key, json.dumps(entry, ensure_ascii=False), ex=ttl or self._ttl)
        except Exception as e:
            log_error("CACHE", f"Could not store {key}", e)
            return False

        log_cache("stored", {"key": key, "vehicles": len(resolution.vehicles), "ttl": ttl or self._ttl})
        return True

    async def _count_keys(self) -> int:
        total, cursor = 0, 0
        while True:
            cursor, keys = await self._redis.scan(cursor, match=f"{KEY_PREFIX}*", count=100)
            total += len(keys)
            if not cursor:
                return total

    async def get_stats(self) -> dict:
        if self._redis is None:
            return {"available": False}
        try:
            count = await self._count_keys()
        except Exception as e:
            return {"available": False, "error": str(e)}
        return {
            "available": True,
            "cached_resolutions": count,
            "host": self._connection_kwargs["host"],
            "default_ttl": self._ttl,
        }

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
