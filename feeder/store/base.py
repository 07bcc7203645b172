"""Base dedup store interface."""

from abc import ABC, abstractmethod
from typing import Optional

from feeder.errors import StoreCorruptedError
from feeder.schemas import KEY_SPACE, SIGNATURE_SIZE


class DedupStore(ABC):
    """Cluster-shared map of bounded key -> 8-byte signature.

    `insert_if_absent` is the only primitive that may be used to claim a key;
    it must be atomic across every node sharing the map.
    """

    name: str = "dedup"

    async def connect(self) -> None:
        """Open connections to the backing store."""
        pass

    async def close(self) -> None:
        """Release connections to the backing store."""
        pass

    @abstractmethod
    async def insert_if_absent(self, key: int, value: bytes) -> Optional[bytes]:
        """
        Store value under key unless the key is already present.
        Return the previous value, or None if this call inserted it.
        """
        pass

    @abstractmethod
    async def get(self, key: int) -> Optional[bytes]:
        """Return the value stored under key, or None."""
        pass

    @abstractmethod
    async def put(self, key: int, value: bytes) -> None:
        """Unconditionally store value under key."""
        pass

    @abstractmethod
    async def size(self) -> int:
        """Number of entries currently held."""
        pass

    async def __aenter__(self) -> "DedupStore":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    @staticmethod
    def _check_entry(key: int, value: Optional[bytes] = None) -> None:
        if not isinstance(key, int) or not 0 <= key < KEY_SPACE:
            raise ValueError(f"key must be in [0, {KEY_SPACE - 1}], got {key!r}")
        if value is not None and len(value) != SIGNATURE_SIZE:
            raise ValueError(f"value must be {SIGNATURE_SIZE} bytes, got {len(value)}")

    @staticmethod
    def _check_stored(key: int, value: Optional[bytes]) -> Optional[bytes]:
        if value is None:
            return None
        if len(value) != SIGNATURE_SIZE:
            raise StoreCorruptedError(
                f"Entry for key {key} holds {len(value)} bytes, expected {SIGNATURE_SIZE}"
            )
        return bytes(value)
