"""Raises an alert when report directories stop receiving files."""

import asyncio
import os
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from loguru import logger

from feeder.notifiers import BaseNotifier
from feeder.schemas import AlertSeverity, DirectoryStatus, utcnow

NO_REPORTS_ALERT_ID = "FRS_0253"


def inspect_directory(path: str) -> DirectoryStatus:
    """File count and newest modification time of one directory."""
    status = DirectoryStatus(path=path)
    if not os.path.exists(path):
        status.error = "Directory does not exist"
        return status
    if not os.path.isdir(path):
        status.error = "Path is not a directory"
        return status

    newest: Optional[float] = None
    try:
        with os.scandir(path) as entries:
            for entry in entries:
                try:
                    if not entry.is_file():
                        continue
                    mtime = entry.stat().st_mtime
                except OSError as e:
                    logger.warning(f"Error reading modification time for {entry.path}: {e}")
                    continue
                status.file_count += 1
                if newest is None or mtime > newest:
                    newest = mtime
    except OSError as e:
        logger.error(f"Error scanning directory {path}: {e}")
        status.error = str(e)
        return status

    if newest is not None:
        status.last_modified = datetime.fromtimestamp(newest, tz=timezone.utc)
    return status


class ReportDirectoryMonitor:
    """Periodically checks report directories and alerts on staleness."""

    def __init__(
        self,
        directories: Sequence[str],
        notifier: Optional[BaseNotifier],
        interval: float,
        threshold_hours: float = 24.0,
    ):
        self.directories = list(directories)
        self.notifier = notifier
        self.interval = interval
        self.threshold_hours = threshold_hours
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            logger.warning("ReportDirectoryMonitor is already running")
            return
        self._running = True
        logger.info(
            f"Starting ReportDirectoryMonitor: {len(self.directories)} directory(ies) "
            f"every {self.interval}s, threshold {self.threshold_hours}h"
        )
        self._task = asyncio.create_task(self._run(), name="report-monitor")

    async def stop(self) -> None:
        if not self._running:
            return
        logger.info("Stopping ReportDirectoryMonitor")
        self._running = False
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        if self.notifier:
            await self.notifier.close()
        logger.info("ReportDirectoryMonitor stopped")

    async def _run(self) -> None:
        while self._running:
            try:
                await self.check()
            except Exception as e:
                logger.error(f"Error in report monitor loop: {e}")
            await asyncio.sleep(self.interval)

    async def check(self) -> List[DirectoryStatus]:
        """Inspect every directory and alert if any needs attention."""
        loop = asyncio.get_running_loop()
        results = [
            await loop.run_in_executor(None, inspect_directory, path) for path in self.directories
        ]

        now = utcnow()
        if any(r.needs_alert(self.threshold_hours, now) for r in results):
            await self._trigger_alert(results, now)
        else:
            logger.debug("All report directories have files within threshold. No alert needed.")
        return results

    def build_message(self, results: Sequence[DirectoryStatus], now: Optional[datetime] = None) -> str:
        parts = [
            "No reports found for extended period of time.",
            f"Threshold: {self.threshold_hours:g} hours.",
            "Details:",
        ]
        for r in results:
            if r.error is not None:
                detail = f"Error: {r.error}"
            elif r.last_modified is None:
                detail = "Status: No files found"
            else:
                detail = f"Last file: {int(r.hours_since_last_file(now))} hours ago"
            parts.append(f"[Directory: {r.path}, {detail}]")
        return " ".join(parts)

    async def _trigger_alert(self, results: Sequence[DirectoryStatus], now: datetime) -> None:
        message = self.build_message(results, now)
        logger.warning(message)

        if self.notifier is None:
            logger.warning("No alert notifier configured, alert not delivered")
            return

        payload = self.notifier.create_payload(
            NO_REPORTS_ALERT_ID, "No Reports Found Alert", message, AlertSeverity.CRITICAL
        )
        if not await self.notifier.send(payload):
            logger.error("Failed to deliver no-reports alert")
