"""
Linked credentials stored in Redis.

Redis Schema:
  Key: {prefix}{subject_id}_{provider}
  Value: hash, one field per record field, each value JSON-encoded so that
         nulls and integers survive the round trip
  TTL: none, records are never expired by this service

HSET only touches the fields it is given, which gives merge-upsert
semantics, and a single HSET is atomic per key.
"""

import json
import logging
from typing import Any, Dict, Optional

import redis.asyncio

logger = logging.getLogger(__name__)


class RedisCredentialStore:
    """Merge-upsert credential store backed by Redis hashes."""

    def __init__(self, redis_client: redis.asyncio.Redis, key_prefix: str = "connections:"):
        """
        Args:
            redis_client: Redis async client
            key_prefix: Namespace prepended to every record key
        """
        self.redis = redis_client
        self.key_prefix = key_prefix

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> "RedisCredentialStore":
        return cls(redis.asyncio.from_url(url, decode_responses=True), **kwargs)

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    async def upsert(self, key: str, fields: Dict[str, Any]) -> None:
        mapping = {name: json.dumps(value) for name, value in fields.items()}
        await self.redis.hset(self._key(key), mapping=mapping)
        logger.debug(f"HSET {self._key(key)} ({len(mapping)} fields)")

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        raw = await self.redis.hgetall(self._key(key))
        if not raw:
            return None
        return {
            _text(name): json.loads(_text(value)) for name, value in raw.items()
        }

    async def close(self) -> None:
        await self.redis.aclose()


def _text(value: Any) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else value
