"""Test engine wiring, lifecycle and the status API."""

import asyncio
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from feeder.config import Settings
from feeder.engine import FeederEngine
from feeder.errors import ConfigurationError, StoreUnavailableError
from feeder.monitor import ReportDirectoryMonitor
from feeder.server import create_app
from feeder.store import MemoryDedupStore


@pytest.fixture
def settings(monkeypatch, tmp_path):
    inbox = tmp_path / "inbox"
    inbox.mkdir()
    (inbox / "a.csv").write_text("1")
    (inbox / "b.csv").write_text("2")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("FEEDER_SOURCE_DIRECTORIES", str(inbox))
    monkeypatch.setenv("FEEDER_STORE_BACKEND", "memory")
    monkeypatch.delenv("FEEDER_MONITOR_ENABLED", raising=False)
    return Settings()


async def _wait_for_cycle(engine, count=1):
    for _ in range(100):
        if len(engine.scheduler.recent_cycles()) >= count:
            return
        await asyncio.sleep(0.01)
    raise AssertionError("scan cycle did not run")


@pytest.mark.asyncio
async def test_engine_scans_on_enter_and_closes_on_exit(settings):
    store = MemoryDedupStore()
    store.close = AsyncMock()

    async with FeederEngine(settings, store=store) as engine:
        assert engine.running
        await _wait_for_cycle(engine)
        assert engine.scheduler.recent_cycles()[0].claimed == 2
        assert await store.size() == 2

    assert not engine.running
    store.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_engine_closes_store_when_body_raises(settings):
    store = MemoryDedupStore()
    store.close = AsyncMock()

    with pytest.raises(RuntimeError):
        async with FeederEngine(settings, store=store):
            raise RuntimeError("boom")

    store.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_engine_store_connect_failure(settings):
    store = MemoryDedupStore()
    store.connect = AsyncMock(side_effect=StoreUnavailableError("down"))
    engine = FeederEngine(settings, store=store)

    with pytest.raises(StoreUnavailableError):
        await engine.start()
    assert not engine.running


def test_engine_requires_directories(settings):
    empty = settings.model_copy(update={"scan": settings.scan.model_copy(update={"source_directories": ""})})
    with pytest.raises(ConfigurationError):
        FeederEngine(empty)


def test_engine_builds_monitor_when_enabled(settings):
    enabled = settings.model_copy(update={
        "monitor": settings.monitor.model_copy(update={"enabled": True, "netcool_url": "http://n/alerts"})
    })
    engine = FeederEngine(enabled, store=MemoryDedupStore())
    assert isinstance(engine.monitor, ReportDirectoryMonitor)
    assert engine.monitor.directories == settings.scan.directories
    assert engine.monitor.notifier is not None


def test_exit_hook_stops_a_running_engine(settings):
    store = MemoryDedupStore()
    engine = FeederEngine(settings, store=store)
    engine._started = True
    engine._exit_hook()
    assert not engine._started


def test_status_api(settings):
    engine = FeederEngine(settings, store=MemoryDedupStore())
    client = TestClient(create_app(engine))

    status = client.get("/api/status").json()
    assert status["status"] == "stopped"
    assert status["store"] == "memory"
    assert status["map_name"] == "feeder-file-semaphore"
    assert status["entries"] is None

    assert client.get("/api/cycles").json() == []
    assert client.get("/health").json() == {"healthy": False}


def test_status_api_reports_unavailable_store(settings, monkeypatch):
    store = MemoryDedupStore()
    store.size = AsyncMock(side_effect=StoreUnavailableError("connection refused"))
    engine = FeederEngine(settings, store=store)
    monkeypatch.setattr(FeederEngine, "running", property(lambda self: True))
    client = TestClient(create_app(engine))

    response = client.get("/api/status")
    assert response.status_code == 200
    status = response.json()
    assert status["status"] == "running"
    assert status["entries"] is None
    assert "connection refused" in status["store_error"]


@pytest.mark.asyncio
async def test_cycles_api_lists_recent_cycles(settings):
    engine = FeederEngine(settings, store=MemoryDedupStore())
    await engine.scheduler.run_cycle()
    await engine.scheduler.run_cycle()

    client = TestClient(create_app(engine))
    cycles = client.get("/api/cycles", params={"limit": 1}).json()
    assert len(cycles) == 1
    assert cycles[0]["cycle"] == 2
    assert cycles[0]["duplicates"] == 2
