import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

import redis

from app.config.settings import Settings
from app.core.exceptions.exceptions import CacheUnavailableError
from app.utils.cache_keys import generation_key, user_cache_pattern, user_prefix
from app.utils.log import app_logger


class CacheStatus(str, Enum):
    HIT = "hit"
    MISS = "miss"
    ERROR = "error"


@dataclass(frozen=True)
class CacheResult:
    """Outcome of a cache read.

    ERROR is kept apart from MISS so callers can log it, but both mean
    "go to the store": a cache outage never fails a read.
    """
    status: CacheStatus
    value: Optional[str] = None
    error: Optional[Exception] = None

    @property
    def hit(self) -> bool:
        return self.status is CacheStatus.HIT

    @classmethod
    def found(cls, value: str) -> "CacheResult":
        return cls(CacheStatus.HIT, value=value)

    @classmethod
    def missing(cls) -> "CacheResult":
        return cls(CacheStatus.MISS)

    @classmethod
    def failed(cls, error: Exception) -> "CacheResult":
        return cls(CacheStatus.ERROR, error=error)


class PaginationCache(ABC):
    """Key-value page cache with TTL and per-user bulk invalidation."""

    def __init__(self, namespace: str = "mylist", ttl_seconds: int = 300):
        self.namespace = namespace
        self.ttl = ttl_seconds

    def open(self) -> None:
        pass

    def close(self) -> None:
        pass

    @abstractmethod
    def get(self, key: str) -> CacheResult:
        ...

    @abstractmethod
    def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        """Best-effort write; returns False instead of raising."""

    @abstractmethod
    def invalidate_user(self, user_id: str) -> int:
        """Bump the user's generation and delete every key of `user_id`.

        Raises CacheUnavailableError if the sweep fails.
        """

    @abstractmethod
    def generation(self, user_id: str) -> Optional[int]:
        """Current invalidation counter of `user_id`, or None when it cannot be read."""

    @abstractmethod
    def set_if_current(self, key: str, value: str, user_id: str, generation: int, ttl: Optional[int] = None) -> bool:
        """Write only if no invalidation of `user_id` happened since `generation` was read."""


class MemoryPaginationCache(PaginationCache):
    """Simple in-memory cache for pagination results.

    Only valid within a single process; use the Redis backend whenever more
    than one worker serves the same users.
    """

    def __init__(self, namespace: str = "mylist", ttl_seconds: int = 300):
        super().__init__(namespace, ttl_seconds)
        self._store: Dict[str, Dict[str, Any]] = {}
        self._generations: Dict[str, int] = {}
        # requests run in a threadpool; check-then-set must not interleave with a sweep
        self._lock = threading.Lock()

    def get(self, key: str) -> CacheResult:
        entry = self._store.get(key)
        if not entry:
            app_logger.debug("cache.miss", key=key)
            return CacheResult.missing()
        if time.monotonic() >= entry["expires"]:
            # expired
            with self._lock:
                self._store.pop(key, None)
            app_logger.debug("cache.expired", key=key)
            return CacheResult.missing()
        app_logger.debug("cache.hit", key=key)
        return CacheResult.found(entry["value"])

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        ttl = self.ttl if ttl is None else ttl
        with self._lock:
            self._put(key, value, ttl)
        app_logger.debug("cache.set", key=key, ttl=ttl)
        return True

    def set_if_current(self, key: str, value: str, user_id: str, generation: int, ttl: Optional[int] = None) -> bool:
        ttl = self.ttl if ttl is None else ttl
        with self._lock:
            if self._generations.get(user_id, 0) != generation:
                app_logger.debug("cache.set.stale", key=key, user_id=user_id)
                return False
            self._put(key, value, ttl)
        app_logger.debug("cache.set", key=key, ttl=ttl)
        return True

    def _put(self, key: str, value: str, ttl: int) -> None:
        now = time.monotonic()
        # cursor keys are rarely read twice, so expired entries are dropped on write too
        for stale in [k for k, entry in list(self._store.items()) if now >= entry["expires"]]:
            self._store.pop(stale, None)
        self._store[key] = {"value": value, "expires": now + ttl}

    def generation(self, user_id: str) -> Optional[int]:
        return self._generations.get(user_id, 0)

    def invalidate_user(self, user_id: str) -> int:
        prefix = user_prefix(self.namespace, user_id)
        with self._lock:
            self._generations[user_id] = self._generations.get(user_id, 0) + 1
            doomed = [key for key in list(self._store) if key.startswith(prefix)]
            for key in doomed:
                self._store.pop(key, None)
        if doomed:
            app_logger.debug("cache.invalidated", user_id=user_id, keys_deleted=len(doomed))
        return len(doomed)

    def keys(self) -> List[str]:
        return list(self._store)

    def close(self) -> None:
        self._store.clear()


class RedisPaginationCache(PaginationCache):
    """Redis-backed page cache shared by all workers.

    Values are stored with SETEX; invalidation SCANs the user's key prefix
    and deletes the matches in batches.
    """

    SCAN_COUNT = 100
    DELETE_BATCH = 500

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        namespace: str = "mylist",
        ttl_seconds: int = 300,
        client: Optional[redis.Redis] = None,
    ):
        super().__init__(namespace, ttl_seconds)
        self.redis_url = redis_url
        self._client = client

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.from_url(
                self.redis_url,
                decode_responses=True,  # return str, not bytes
                socket_connect_timeout=5,
                socket_timeout=5,
                health_check_interval=30,
            )
        return self._client

    def open(self) -> None:
        try:
            self.client.ping()
            app_logger.info("cache.redis.connected", redis_url=self.redis_url)
        except redis.RedisError as e:
            # reads degrade to misses until Redis comes back
            app_logger.warning("cache.redis.unavailable", redis_url=self.redis_url, exc_info=e)

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            app_logger.info("cache.redis.closed")

    def get(self, key: str) -> CacheResult:
        try:
            value = self.client.get(key)
        except (redis.RedisError, OSError) as e:
            app_logger.error("cache.get.failed", key=key, exc_info=e)
            return CacheResult.failed(CacheUnavailableError("get", str(e)))
        if value is None:
            app_logger.debug("cache.miss", key=key)
            return CacheResult.missing()
        app_logger.debug("cache.hit", key=key)
        return CacheResult.found(value)

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        ttl = self.ttl if ttl is None else ttl
        try:
            self.client.setex(key, ttl, value)
        except (redis.RedisError, OSError) as e:
            app_logger.error("cache.set.failed", key=key, exc_info=e)
            return False
        app_logger.debug("cache.set", key=key, ttl=ttl)
        return True

    def generation(self, user_id: str) -> Optional[int]:
        try:
            value = self.client.get(generation_key(self.namespace, user_id))
        except (redis.RedisError, OSError) as e:
            app_logger.error("cache.generation.failed", user_id=user_id, exc_info=e)
            return None
        return int(value or 0)

    def set_if_current(self, key: str, value: str, user_id: str, generation: int, ttl: Optional[int] = None) -> bool:
        ttl = self.ttl if ttl is None else ttl
        gen_key = generation_key(self.namespace, user_id)
        try:
            with self.client.pipeline() as pipe:
                # EXEC aborts if an invalidation bumps the counter after WATCH
                pipe.watch(gen_key)
                if int(pipe.get(gen_key) or 0) != generation:
                    app_logger.debug("cache.set.stale", key=key, user_id=user_id)
                    return False
                pipe.multi()
                pipe.setex(key, ttl, value)
                pipe.execute()
        except redis.WatchError:
            app_logger.debug("cache.set.stale", key=key, user_id=user_id)
            return False
        except (redis.RedisError, OSError) as e:
            app_logger.error("cache.set.failed", key=key, exc_info=e)
            return False
        app_logger.debug("cache.set", key=key, ttl=ttl)
        return True

    def invalidate_user(self, user_id: str) -> int:
        pattern = user_cache_pattern(self.namespace, user_id)
        try:
            # bumped first: a read that started before this sweep cannot write back
            self.client.incr(generation_key(self.namespace, user_id))
            keys = list(self.client.scan_iter(match=pattern, count=self.SCAN_COUNT))
            deleted = 0
            for start in range(0, len(keys), self.DELETE_BATCH):
                deleted += self.client.delete(*keys[start:start + self.DELETE_BATCH])
        except (redis.RedisError, OSError) as e:
            raise CacheUnavailableError("invalidate", str(e)) from e
        if keys:
            app_logger.debug("cache.invalidated", user_id=user_id, keys_deleted=deleted)
        return deleted


def build_cache(settings: Settings) -> PaginationCache:
    backend = (settings.CACHE_BACKEND or "redis").lower()
    if backend == "memory":
        return MemoryPaginationCache(settings.CACHE_NAMESPACE, settings.CACHE_TTL_SECONDS)
    if backend == "redis":
        return RedisPaginationCache(settings.REDIS_URL, settings.CACHE_NAMESPACE, settings.CACHE_TTL_SECONDS)
    raise ValueError(f"unknown CACHE_BACKEND: {settings.CACHE_BACKEND}")
