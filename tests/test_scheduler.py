"""Test the scan scheduler."""

import asyncio
import time
from unittest.mock import AsyncMock

import pytest

from feeder.claim import ClaimManager
from feeder.collectors import BaseCollector, DirectoryEnumerator
from feeder.errors import StoreUnavailableError
from feeder.fingerprint import fingerprint
from feeder.processors import BaseProcessor
from feeder.scheduler import ScanScheduler
from feeder.schemas import ProcessOutcome
from feeder.store import MemoryDedupStore


class RecordingProcessor(BaseProcessor):
    def __init__(self, delay: float = 0.0, outcome: ProcessOutcome = ProcessOutcome.SUCCESS):
        self.seen = []
        self.delay = delay
        self.outcome = outcome
        self.active = 0
        self.max_active = 0

    async def process(self, identifier: str) -> ProcessOutcome:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            self.seen.append(identifier)
            return self.outcome
        finally:
            self.active -= 1


class StaticCollector(BaseCollector):
    def __init__(self, identifiers=None, error=None, delay=0.0):
        self.identifiers = identifiers or []
        self.error = error
        self.delay = delay
        self.calls = 0

    def enumerate(self, directories):
        self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.error:
            raise self.error
        return list(self.identifiers)


def make_scheduler(collector, store=None, processor=None, interval=60.0, **kwargs):
    store = store or MemoryDedupStore()
    return ScanScheduler(
        enumerator=collector,
        claim_manager=ClaimManager(store),
        processor=processor or RecordingProcessor(),
        directories=["/unused"],
        interval=interval,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_end_to_end_two_cycles(tmp_path):
    (tmp_path / "a.csv").write_text("1")
    (tmp_path / "b.csv").write_text("2")
    processor = RecordingProcessor()
    scheduler = ScanScheduler(
        enumerator=DirectoryEnumerator(),
        claim_manager=ClaimManager(MemoryDedupStore()),
        processor=processor,
        directories=[str(tmp_path)],
        interval=60.0,
    )

    first = await scheduler.run_cycle()
    assert (first.candidates, first.claimed, first.duplicates) == (2, 2, 0)
    assert sorted(processor.seen) == sorted([str(tmp_path / "a.csv"), str(tmp_path / "b.csv")])

    second = await scheduler.run_cycle()
    assert (second.candidates, second.claimed, second.duplicates) == (2, 0, 2)
    assert second.newly_claimed == 0
    assert len(processor.seen) == 2

    assert [c.cycle for c in scheduler.recent_cycles()] == [2, 1]


@pytest.mark.asyncio
async def test_claim_key_name_dedups_across_directories():
    collector = StaticCollector(["/mnt/a/report.txt", "/mnt/b/report.txt"])
    summary = await make_scheduler(collector).run_cycle()
    assert (summary.claimed, summary.duplicates) == (1, 1)


@pytest.mark.asyncio
async def test_claim_key_path_keeps_directories_apart():
    collector = StaticCollector(["/mnt/a/report.txt", "/mnt/b/report.txt"])
    summary = await make_scheduler(collector, claim_key="path").run_cycle()
    assert (summary.claimed, summary.duplicates) == (2, 0)


@pytest.mark.asyncio
async def test_per_identifier_failure_does_not_abort_cycle():
    def flaky(identifier):
        if identifier == "bad.txt":
            raise RuntimeError("boom")
        return fingerprint(identifier)

    processor = RecordingProcessor()
    scheduler = ScanScheduler(
        enumerator=StaticCollector(["/in/good1.txt", "/in/bad.txt", "/in/good2.txt"]),
        claim_manager=ClaimManager(MemoryDedupStore(), fingerprinter=flaky),
        processor=processor,
        directories=["/in"],
        interval=60.0,
    )

    summary = await scheduler.run_cycle()
    assert summary.failed == 1
    assert summary.claimed == 2
    assert summary.error is None
    assert processor.seen == ["/in/good1.txt", "/in/good2.txt"]


@pytest.mark.asyncio
async def test_processor_failure_is_counted():
    class Exploding(BaseProcessor):
        async def process(self, identifier):
            raise OSError("disk full")

    summary = await make_scheduler(StaticCollector(["/in/a.txt"]), processor=Exploding()).run_cycle()
    assert (summary.claimed, summary.failed, summary.processed_ok) == (1, 1, 0)


@pytest.mark.asyncio
async def test_processor_outcomes_are_counted():
    processor = RecordingProcessor(outcome=ProcessOutcome.FAILURE)
    summary = await make_scheduler(StaticCollector(["/in/a.txt", "/in/b.txt"]), processor=processor).run_cycle()
    assert (summary.processed_ok, summary.processed_failed) == (0, 2)


@pytest.mark.asyncio
async def test_store_unavailable_aborts_cycle_without_raising():
    store = MemoryDedupStore()
    store.insert_if_absent = AsyncMock(side_effect=StoreUnavailableError("timeout"))
    processor = RecordingProcessor()

    summary = await make_scheduler(
        StaticCollector(["/in/a.txt", "/in/b.txt"]), store=store, processor=processor
    ).run_cycle()

    assert summary.error is not None and "unavailable" in summary.error
    assert summary.claimed == 0
    assert store.insert_if_absent.await_count == 1
    assert processor.seen == []


@pytest.mark.asyncio
async def test_enumeration_failure_is_recorded():
    summary = await make_scheduler(StaticCollector(error=RuntimeError("nfs gone"))).run_cycle()
    assert summary.error == "nfs gone"
    assert summary.candidates == 0


@pytest.mark.asyncio
async def test_enumeration_timeout():
    scheduler = make_scheduler(StaticCollector(["/in/a.txt"], delay=0.5), enumeration_timeout=0.05)
    summary = await scheduler.run_cycle()
    assert "timed out" in summary.error


@pytest.mark.asyncio
async def test_start_runs_first_cycle_immediately_and_repeats():
    collector = StaticCollector(["/in/a.txt"])
    scheduler = make_scheduler(collector, interval=0.05)

    await scheduler.start()
    assert scheduler.is_running
    await asyncio.sleep(0.02)
    assert collector.calls == 1

    await asyncio.sleep(0.2)
    await scheduler.stop()
    assert not scheduler.is_running
    assert collector.calls >= 3

    calls = collector.calls
    await asyncio.sleep(0.1)
    assert collector.calls == calls


@pytest.mark.asyncio
async def test_cycles_never_overlap():
    processor = RecordingProcessor(delay=0.08)
    collector = StaticCollector()
    counter = iter(range(1000))
    collector.enumerate = lambda directories: [f"/in/file-{next(counter)}.txt"]
    scheduler = make_scheduler(collector, processor=processor, interval=0.02)

    await scheduler.start()
    await asyncio.sleep(0.3)
    await scheduler.stop()

    assert processor.max_active == 1
    assert len(processor.seen) >= 2


@pytest.mark.asyncio
async def test_stop_is_bounded_when_cycle_hangs():
    processor = RecordingProcessor(delay=10)
    scheduler = make_scheduler(StaticCollector(["/in/a.txt"]), processor=processor, stop_timeout=0.05)

    await scheduler.start()
    await asyncio.sleep(0.05)
    started = time.monotonic()
    await scheduler.stop()
    assert time.monotonic() - started < 2
    assert not scheduler.is_running


@pytest.mark.asyncio
async def test_stop_lets_in_flight_cycle_finish():
    processor = RecordingProcessor(delay=0.2)
    scheduler = make_scheduler(StaticCollector(["/in/a.txt"]), processor=processor, stop_timeout=5)

    await scheduler.start()
    await asyncio.sleep(0.05)
    assert processor.active == 1
    await scheduler.stop()

    assert processor.seen == ["/in/a.txt"]
    summary = scheduler.recent_cycles()[0]
    assert summary.processed_ok == 1
    assert summary.error is None


@pytest.mark.asyncio
async def test_stuck_enumeration_is_not_started_twice():
    collector = StaticCollector(["/in/a.txt"], delay=0.3)
    scheduler = make_scheduler(collector, enumeration_timeout=0.05)

    assert "timed out" in (await scheduler.run_cycle()).error
    assert "still running" in (await scheduler.run_cycle()).error
    assert collector.calls == 1

    await asyncio.sleep(0.4)
    scheduler.enumeration_timeout = 5
    summary = await scheduler.run_cycle()
    assert summary.error is None
    assert summary.claimed == 1
    assert collector.calls == 2


@pytest.mark.asyncio
async def test_start_twice_and_stop_twice_are_safe():
    scheduler = make_scheduler(StaticCollector(), interval=0.05)
    await scheduler.start()
    await scheduler.start()
    await asyncio.gather(scheduler.stop(), scheduler.stop())
    assert not scheduler.is_running


def test_interval_must_be_positive():
    with pytest.raises(ValueError):
        make_scheduler(StaticCollector(), interval=0)
