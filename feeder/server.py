"""Status API."""

from fastapi import FastAPI, Query

from feeder.engine import FeederEngine
from feeder.errors import StoreUnavailableError


def create_app(engine: FeederEngine) -> FastAPI:
    """Build the status app for a (separately managed) engine."""
    app = FastAPI(
        title="Feeder",
        description="Distributed file-intake gate status",
        version="0.1.0",
    )

    @app.get("/api/status")
    async def get_status():
        """Get system status."""
        store = engine.store
        entries, store_error = None, None
        if engine.running:
            try:
                entries = await store.size()
            except StoreUnavailableError as e:
                store_error = str(e)
        return {
            "status": "running" if engine.running else "stopped",
            "store": store.name,
            "map_name": engine.settings.store.map_name,
            "entries": entries,
            "store_error": store_error,
            "directories": engine.scheduler.directories,
            "interval_seconds": engine.scheduler.interval,
        }

    @app.get("/api/cycles")
    async def get_cycles(limit: int = Query(20, ge=1, le=100)):
        """Get recent scan cycle summaries."""
        return [c.model_dump(mode="json") for c in engine.scheduler.recent_cycles(limit)]

    @app.get("/health")
    async def health():
        return {"healthy": engine.running}

    return app
