"""Claim decisions against the shared dedup store."""

from typing import Callable

from loguru import logger

from feeder.fingerprint import fingerprint
from feeder.schemas import ClaimDecision, Fingerprint
from feeder.store import DedupStore


class ClaimManager:
    """Decides which node processes an identifier.

    Only `insert_if_absent` is used to claim a key. When two distinct
    identifiers share a bounded key the newer one overwrites the stored
    signature and is claimed; the displaced identifier loses its record and
    may be processed again if it is ever seen later. This keeps the map
    bounded at the cost of occasional reprocessing.

    StoreUnavailableError from the store is never caught here.
    """

    def __init__(
        self,
        store: DedupStore,
        fingerprinter: Callable[[str], Fingerprint] = fingerprint,
    ):
        self.store = store
        self._fingerprint = fingerprinter

    async def decide(self, identifier: str) -> ClaimDecision:
        fp = self._fingerprint(identifier)
        existing = await self.store.insert_if_absent(fp.bounded_key, fp.signature)

        if existing is None:
            logger.debug(f"Claimed {identifier} (mapKey: {fp.bounded_key})")
            return ClaimDecision.NEW

        if fp.matches(existing):
            logger.debug(f"Already claimed (skip): {identifier} (mapKey: {fp.bounded_key})")
            return ClaimDecision.DUPLICATE

        logger.warning(f"Map key collision for mapKey {fp.bounded_key}, reclaiming for {identifier}")
        await self.store.put(fp.bounded_key, fp.signature)
        return ClaimDecision.COLLISION

    async def should_claim(self, identifier: str) -> bool:
        """True if this node should process the identifier."""
        return await self.decide(identifier) != ClaimDecision.DUPLICATE

    async def mark_claimed(self, identifier: str) -> None:
        fp = self._fingerprint(identifier)
        await self.store.put(fp.bounded_key, fp.signature)
        logger.debug(f"Explicitly marked as claimed: {identifier} (mapKey: {fp.bounded_key})")

    async def is_claimed(self, identifier: str) -> bool:
        """Check the store without modifying it."""
        fp = self._fingerprint(identifier)
        return fp.matches(await self.store.get(fp.bounded_key))
