import json, logging, time
from typing import Any, Optional

import redis

logger = logging.getLogger(__name__)

SESSION_KEY = "ds:session:{}"


class Cache:
    """JSON cache on Redis when REDIS_URL is set and reachable, else an in-process TTL dict."""

    def __init__(self, url: str = "", ttl: int = 3600):
        self.ttl = ttl
        self._local = {}
        self._r = None
        if url:
            try:
                self._r = redis.Redis.from_url(url, decode_responses=True)
                self._r.ping()
            except redis.RedisError as e:
                logger.warning("redis unavailable (%s), using local cache", e)
                self._r = None

    def get(self, key: str) -> Optional[Any]:
        if self._r:
            try:
                v = self._r.get(key)
            except redis.RedisError as e:
                logger.warning("cache get failed: %s", e)
                return None
            return json.loads(v) if v else None
        v = self._local.get(key)
        if not v: return None
        if v["exp"] < time.time():
            self._local.pop(key, None)
            return None
        return v["v"]

    def set(self, key: str, value: Any, ttl: Optional[int] = None):
        ttl = ttl or self.ttl
        if self._r:
            try:
                self._r.setex(key, ttl, json.dumps(value))
            except redis.RedisError as e:
                logger.warning("cache set failed: %s", e)
        else:
            now = time.time()
            self._prune(now)
            self._local[key] = {"v": value, "exp": now + ttl}

    def _prune(self, now: float):
        for k in [k for k, v in self._local.items() if v["exp"] < now]:
            del self._local[k]
