"""Redis-backed dedup store shared by every feeder node."""

import asyncio
from typing import Optional

from loguru import logger
from redis.asyncio import Redis
from redis.exceptions import RedisError

from feeder.errors import StoreUnavailableError
from .base import DedupStore


class RedisDedupStore(DedupStore):
    """Keeps the map in one Redis hash named after the dedup map.

    Hash field is the decimal bounded key, value is the raw 8-byte signature.
    `insert_if_absent` queues HGET and HSETNX in a MULTI/EXEC block; Redis
    runs the block without interleaving other clients, so the HGET result is
    the value that HSETNX saw.
    """

    name = "redis"

    def __init__(
        self,
        map_name: str,
        url: str = "redis://localhost:6379/0",
        socket_timeout: float = 5.0,
        connect_timeout: float = 5.0,
        client: Optional[Redis] = None,
    ):
        self.map_name = map_name
        self.url = url
        self._socket_timeout = socket_timeout
        self._connect_timeout = connect_timeout
        self._client = client

    async def connect(self) -> None:
        if self._client is None:
            self._client = Redis.from_url(
                self.url,
                socket_timeout=self._socket_timeout,
                socket_connect_timeout=self._connect_timeout,
                decode_responses=False,
            )
        try:
            await self._client.ping()
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            client, self._client = self._client, None
            await client.aclose()
            raise StoreUnavailableError(f"Cannot reach Redis at {self.url}: {e}") from e
        logger.info(f"Redis dedup store connected (map: {self.map_name})")

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("Redis dedup store closed")

    def _require_client(self) -> Redis:
        if self._client is None:
            raise StoreUnavailableError("Redis dedup store is not connected")
        return self._client

    async def insert_if_absent(self, key: int, value: bytes) -> Optional[bytes]:
        self._check_entry(key, value)
        client = self._require_client()
        try:
            async with client.pipeline(transaction=True) as pipe:
                previous, _ = await pipe.hget(self.map_name, str(key)).hsetnx(
                    self.map_name, str(key), value
                ).execute()
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            raise StoreUnavailableError(f"insert_if_absent failed for key {key}: {e}") from e
        return self._check_stored(key, previous)

    async def get(self, key: int) -> Optional[bytes]:
        self._check_entry(key)
        client = self._require_client()
        try:
            value = await client.hget(self.map_name, str(key))
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            raise StoreUnavailableError(f"get failed for key {key}: {e}") from e
        return self._check_stored(key, value)

    async def put(self, key: int, value: bytes) -> None:
        self._check_entry(key, value)
        client = self._require_client()
        try:
            await client.hset(self.map_name, str(key), value)
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            raise StoreUnavailableError(f"put failed for key {key}: {e}") from e

    async def size(self) -> int:
        client = self._require_client()
        try:
            return await client.hlen(self.map_name)
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            raise StoreUnavailableError(f"size failed: {e}") from e
