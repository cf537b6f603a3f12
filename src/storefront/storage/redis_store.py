"""
Redis token storage, shared by every instance of the site.

The only backend that works when the authorization start and the callback may
be served by different instances.
"""

import json
import logging
from typing import Any, Optional

from redis import Redis
from redis.exceptions import RedisError

from storefront.core.errors import StorageError
from storefront.core.settings import StorageBackend
from storefront.storage.base import STATE_TTL_SECONDS, TOKENS_TTL_SECONDS, TokenStore

logger = logging.getLogger("storage")


class RedisTokenStore(TokenStore):
    """
    Keep tokens (7 day TTL) and state (15 minute TTL) under two fixed keys.

    Args:
        client (Redis): Redis client created with ``decode_responses=True``.
        key_prefix (str): Namespace for the keys.
    """

    backend = StorageBackend.REDIS

    def __init__(self, client: Redis, key_prefix: str = "lanina", **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.client = client
        self.tokens_key = f"{key_prefix}:oauth:tokens"
        self.state_key = f"{key_prefix}:oauth:state"

    @classmethod
    def from_url(cls, url: str, key_prefix: str = "lanina", **kwargs: Any) -> "RedisTokenStore":
        client = Redis.from_url(url, decode_responses=True, socket_connect_timeout=5)
        return cls(client, key_prefix=key_prefix, **kwargs)

    def _get(self, key: str) -> Optional[dict[str, Any]]:
        try:
            raw = self.client.get(key)
        except RedisError as e:
            logger.warning("Redis GET failed for %s: %s", key, e)
            return None
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except (TypeError, json.JSONDecodeError) as e:
            logger.warning("Could not decode %s: %s", key, e)
            return None
        return data if isinstance(data, dict) else None

    def _setex(self, key: str, ttl_seconds: int, data: dict[str, Any]) -> None:
        try:
            self.client.setex(key, ttl_seconds, json.dumps(data))
        except RedisError as e:
            raise StorageError(f"Redis SET failed for {key}: {e}") from e

    def _delete(self, key: str) -> None:
        try:
            self.client.delete(key)
        except RedisError as e:
            logger.warning("Redis DELETE failed for %s: %s", key, e)

    def _read_tokens(self) -> Optional[dict[str, Any]]:
        return self._get(self.tokens_key)

    def _write_tokens(self, data: dict[str, Any]) -> None:
        self._setex(self.tokens_key, TOKENS_TTL_SECONDS, data)

    def _delete_tokens(self) -> None:
        self._delete(self.tokens_key)

    def _read_state(self) -> Optional[dict[str, Any]]:
        return self._get(self.state_key)

    def _write_state(self, data: dict[str, Any]) -> None:
        self._setex(self.state_key, STATE_TTL_SECONDS, data)

    def _delete_state(self) -> None:
        self._delete(self.state_key)

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except RedisError as e:
            logger.error("Redis connection test failed: %s", e)
            return False
