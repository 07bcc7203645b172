"""Periodic scan scheduler driving the claim protocol."""

import asyncio
import concurrent.futures
import math
import os
from typing import List, Optional, Sequence

from loguru import logger

from feeder.claim import ClaimManager
from feeder.collectors import BaseCollector
from feeder.errors import EnumerationPendingError, PerIdentifierError, StoreUnavailableError
from feeder.processors import BaseProcessor
from feeder.schemas import ClaimDecision, CycleSummary, ProcessOutcome, utcnow


class ScanScheduler:
    """Runs one serialized scan loop per node.

    The first cycle starts immediately; later cycles start on a fixed-rate
    grid measured from cycle start. A cycle that overruns the interval is
    never overlapped: the next cycle waits for the next grid tick.
    """

    def __init__(
        self,
        enumerator: BaseCollector,
        claim_manager: ClaimManager,
        processor: BaseProcessor,
        directories: Sequence[str],
        interval: float,
        claim_key: str = "name",
        enumeration_timeout: float = 60.0,
        stop_timeout: float = 30.0,
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.enumerator = enumerator
        self.claim_manager = claim_manager
        self.processor = processor
        self.directories = list(directories)
        self.interval = interval
        self.claim_key = claim_key
        self.enumeration_timeout = enumeration_timeout
        self.stop_timeout = stop_timeout

        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._wakeup: Optional[asyncio.Event] = None
        self._executor: Optional[concurrent.futures.ThreadPoolExecutor] = None
        self._enumeration: Optional[concurrent.futures.Future] = None
        self._cycle = 0
        self._recent_cycles: List[CycleSummary] = []
        self._max_recent = 100

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Schedule the first cycle now and the rest every interval."""
        if self._running:
            logger.warning("Scan scheduler is already running")
            return

        self._running = True
        self._wakeup = asyncio.Event()
        logger.info("Starting scan scheduler")
        logger.info(f"  Scan interval: {self.interval}s")
        logger.info(f"  Source directories: {self.directories}")
        self._task = asyncio.create_task(self._run(), name="scan-scheduler")

    async def stop(self) -> None:
        """Stop scheduling and wait (bounded) for the in-flight cycle."""
        if not self._running:
            return

        logger.info("Stopping scan scheduler")
        self._running = False
        self._wakeup.set()

        task, self._task = self._task, None
        if task is not None and not task.done():
            try:
                await asyncio.wait_for(asyncio.shield(task), timeout=self.stop_timeout)
            except asyncio.TimeoutError:
                logger.warning("Scanner did not finish within timeout, cancelling")
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None
            self._enumeration = None

        logger.info("Scan scheduler stopped")

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_start = loop.time()

        while self._running:
            await self.run_cycle()

            next_start += self.interval
            now = loop.time()
            if now > next_start:
                skipped = math.ceil((now - next_start) / self.interval)
                next_start += skipped * self.interval
                logger.warning(f"Scan cycle overran the interval, skipping {skipped} tick(s)")

            await self._sleep_until(next_start)

    async def _sleep_until(self, deadline: float) -> None:
        delay = deadline - asyncio.get_running_loop().time()
        if delay <= 0:
            return
        try:
            await asyncio.wait_for(self._wakeup.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass  # tick reached

    async def run_cycle(self) -> CycleSummary:
        """Enumerate, claim and dispatch once. Never raises on cycle failure."""
        self._cycle += 1
        summary = CycleSummary(cycle=self._cycle)
        logger.info(f"Starting scan cycle {summary.cycle}")

        try:
            identifiers = await self._enumerate()
            summary.candidates = len(identifiers)

            for identifier in identifiers:
                try:
                    await self._evaluate(identifier, summary)
                except PerIdentifierError as e:
                    summary.failed += 1
                    logger.opt(exception=e.cause).error(f"Failed to evaluate file: {identifier}")

        except StoreUnavailableError as e:
            summary.error = f"Dedup store unavailable: {e}"
            logger.error(f"Scan cycle {summary.cycle} aborted, dedup store unavailable: {e}")
        except asyncio.TimeoutError:
            summary.error = f"Enumeration timed out after {self.enumeration_timeout}s"
            logger.error(f"Scan cycle {summary.cycle} aborted: {summary.error}")
        except EnumerationPendingError as e:
            summary.error = str(e)
            logger.warning(f"Scan cycle {summary.cycle} skipped: {e}")
        except Exception as e:
            summary.error = str(e)
            logger.exception(f"Scan cycle {summary.cycle} failed")
        finally:
            summary.finished_at = utcnow()
            self._record(summary)

        self._log_summary(summary)
        return summary

    async def _enumerate(self) -> List[str]:
        # Filesystem listing blocks; keep it off the event loop and bounded.
        # A listing stuck on a dead mount keeps its thread, so at most one
        # listing runs at a time on the scheduler's own worker.
        if self._enumeration is not None and not self._enumeration.done():
            raise EnumerationPendingError("Previous enumeration is still running")

        if self._executor is None:
            self._executor = concurrent.futures.ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="feeder-enumerate"
            )
        self._enumeration = self._executor.submit(self.enumerator.enumerate, self.directories)
        return await asyncio.wait_for(
            asyncio.shield(asyncio.wrap_future(self._enumeration)),
            timeout=self.enumeration_timeout,
        )

    def _claim_identifier(self, identifier: str) -> str:
        if self.claim_key == "name":
            return os.path.basename(identifier)
        return identifier

    async def _evaluate(self, identifier: str, summary: CycleSummary) -> None:
        try:
            decision = await self.claim_manager.decide(self._claim_identifier(identifier))
        except StoreUnavailableError:
            raise
        except Exception as e:
            raise PerIdentifierError(identifier, e) from e

        if decision == ClaimDecision.DUPLICATE:
            summary.duplicates += 1
            logger.debug(f"File already claimed (skip): {identifier}")
            return

        summary.claimed += 1
        if decision == ClaimDecision.COLLISION:
            summary.collisions += 1
        logger.info(f"File claimed: {identifier}")

        try:
            outcome = await self.processor.process(identifier)
        except Exception as e:
            raise PerIdentifierError(identifier, e) from e

        if outcome == ProcessOutcome.SUCCESS:
            summary.processed_ok += 1
        else:
            summary.processed_failed += 1

    def _record(self, summary: CycleSummary) -> None:
        self._recent_cycles.insert(0, summary)
        if len(self._recent_cycles) > self._max_recent:
            self._recent_cycles = self._recent_cycles[:self._max_recent]

    def _log_summary(self, summary: CycleSummary) -> None:
        fields = summary.model_dump(
            include={"cycle", "candidates", "claimed", "duplicates", "collisions", "failed"}
        )
        logger.bind(**fields).info(
            f"Scan cycle {summary.cycle} summary: {summary.newly_claimed} newly claimed, "
            f"{summary.duplicates} duplicate(s) skipped, {summary.collisions} collision(s) reclaimed, "
            f"{summary.failed} failed"
        )

    def recent_cycles(self, limit: int = 50) -> List[CycleSummary]:
        """Most recent cycle summaries, newest first."""
        return self._recent_cycles[:limit]
