"""Main orchestration engine."""

import asyncio
import atexit
from typing import Optional

from loguru import logger

from feeder.claim import ClaimManager
from feeder.collectors import DirectoryEnumerator
from feeder.config import Settings
from feeder.fingerprint import ensure_hashing_available
from feeder.monitor import ReportDirectoryMonitor
from feeder.notifiers import BaseNotifier, WebhookNotifier
from feeder.processors import BaseProcessor, LoggingProcessor
from feeder.scheduler import ScanScheduler
from feeder.store import DedupStore, create_store


class FeederEngine:
    """Builds the scan pipeline and owns its lifetime.

    Use as an async context manager: entering connects the store and starts
    scanning, leaving stops scanning and closes the store on every exit path.
    """

    def __init__(
        self,
        settings: Settings,
        store: Optional[DedupStore] = None,
        processor: Optional[BaseProcessor] = None,
        notifier: Optional[BaseNotifier] = None,
    ):
        self.settings = settings
        directories = settings.scan.require_directories()

        self.store = store or create_store(settings.store)
        self.claim_manager = ClaimManager(self.store)
        self.scheduler = ScanScheduler(
            enumerator=DirectoryEnumerator(),
            claim_manager=self.claim_manager,
            processor=processor or LoggingProcessor(),
            directories=directories,
            interval=settings.scan.scan_interval_minutes * 60,
            claim_key=settings.scan.claim_key,
            enumeration_timeout=settings.scan.enumeration_timeout,
            stop_timeout=settings.scan.stop_timeout,
        )

        self.monitor: Optional[ReportDirectoryMonitor] = None
        if settings.monitor.enabled:
            if notifier is None and settings.monitor.netcool_url:
                notifier = WebhookNotifier(
                    settings.monitor.netcool_url, timeout=settings.monitor.netcool_timeout_seconds
                )
            self.monitor = ReportDirectoryMonitor(
                directories=settings.report_directories,
                notifier=notifier,
                interval=settings.scan.scan_interval_minutes * 60,
                threshold_hours=settings.monitor.alert_threshold_hours,
            )

        self._started = False

    @property
    def running(self) -> bool:
        return self._started and self.scheduler.is_running

    async def start(self) -> None:
        if self._started:
            return
        logger.info("Feeder Engine Starting...")
        ensure_hashing_available()
        await self.store.connect()
        self._started = True
        atexit.register(self._exit_hook)
        try:
            await self.scheduler.start()
            if self.monitor:
                await self.monitor.start()
        except BaseException:
            await self.stop()
            raise
        logger.info("Feeder is running. Directory scanning started.")

    async def stop(self) -> None:
        if not self._started:
            return
        self._started = False
        atexit.unregister(self._exit_hook)
        try:
            if self.monitor:
                await self.monitor.stop()
            await self.scheduler.stop()
        finally:
            await self.store.close()
        logger.info("Feeder Engine Stopped")

    async def __aenter__(self) -> "FeederEngine":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    def _exit_hook(self) -> None:
        # Last resort when the interpreter exits without stop() having run.
        if not self._started:
            return
        logger.warning("Feeder was not stopped cleanly, stopping from exit hook")
        try:
            asyncio.run(asyncio.wait_for(self.stop(), timeout=self.settings.scan.stop_timeout))
        except Exception as e:
            logger.error(f"Exit hook shutdown failed: {e}")
