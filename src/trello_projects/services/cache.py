"""Redis-backed store for the serialised board artifacts."""

import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import Any

import redis.asyncio as redis
from redis.exceptions import RedisError

from trello_projects.models import CARDS_KEY, CONTENT_KEY, LABELS_KEY, PROJECTS_KEY

REFRESH_CHANNEL = 'trello:refresh'

logger = logging.getLogger(__name__)

__all__ = [
    'CARDS_KEY',
    'CONTENT_KEY',
    'LABELS_KEY',
    'PROJECTS_KEY',
    'REFRESH_CHANNEL',
    'CacheError',
    'CacheGateway',
]


class CacheError(Exception):
    """Connecting to, reading from or writing to the cache failed."""

    pass


def _default_client_factory(url: str) -> Any:
    return redis.from_url(url, decode_responses=True)


class CacheGateway:
    """Async get/set/publish over a lazily opened Redis connection.

    Values are stored as given; callers serialise them. The connection is
    opened by the first command and reused until close().
    """

    def __init__(
        self,
        url: str,
        client_factory: Callable[[str], Any] = _default_client_factory,
    ) -> None:
        self.url = url
        self._client_factory = client_factory
        self._client: Any = None
        self._connect_lock = asyncio.Lock()

    @property
    def connected(self) -> bool:
        return self._client is not None

    async def _get_client(self) -> Any:
        async with self._connect_lock:
            if self._client is None:
                logger.debug("Connecting to cache at %s", self.url)
                try:
                    client = self._client_factory(self.url)
                    await client.ping()
                except (RedisError, OSError) as e:
                    raise CacheError(f"Couldn't connect to cache: {e}") from e
                self._client = client
        return self._client

    async def get(self, key: str) -> str | None:
        """Get a value, None if the key is not set.

        Raises:
            CacheError: If the cache can't be reached.
        """
        client = await self._get_client()
        try:
            return await client.get(key)
        except (RedisError, OSError) as e:
            raise CacheError(f"Couldn't read '{key}' from cache: {e}") from e

    async def set(self, key: str, value: str) -> None:
        """Overwrite a value.

        Raises:
            CacheError: If the cache can't be reached.
        """
        client = await self._get_client()
        try:
            await client.set(key, value)
        except (RedisError, OSError) as e:
            raise CacheError(f"Couldn't write '{key}' to cache: {e}") from e

    async def set_many(self, values: Mapping[str, str]) -> None:
        """Overwrite several values in one command.

        Raises:
            CacheError: If the cache can't be reached.
        """
        if not values:
            return
        client = await self._get_client()
        try:
            await client.mset(dict(values))
        except (RedisError, OSError) as e:
            raise CacheError(f"Couldn't write {', '.join(values)} to cache: {e}") from e

    async def publish(self, channel: str, message: str) -> int:
        """Publish a message, returning how many subscribers received it.

        Raises:
            CacheError: If the cache can't be reached.
        """
        client = await self._get_client()
        try:
            return await client.publish(channel, message)
        except (RedisError, OSError) as e:
            raise CacheError(f"Couldn't publish to '{channel}': {e}") from e

    async def close(self) -> None:
        """Close the connection, if there is one."""
        if self._client is None:
            return
        client, self._client = self._client, None
        try:
            await client.aclose()
        except (RedisError, OSError) as e:
            logger.warning("Error closing cache connection: %s", e)

    async def __aenter__(self) -> 'CacheGateway':
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
