"""Feeder - distributed file-intake gate."""

import argparse
import asyncio
import signal
import sys
from typing import List, Optional

from loguru import logger
from pydantic import ValidationError
from pydantic_settings import BaseSettings

from feeder.config import Settings
from feeder.engine import FeederEngine
from feeder.errors import FeederError
from feeder.log import setup_logging


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="feeder",
        description="Scan shared directories and claim each incoming file on exactly one node.",
    )
    p.add_argument(
        "directories",
        nargs="?",
        help="Source directories (',' or ';' separated)",
    )
    p.add_argument(
        "-d", "--source-directories",
        dest="source_directories",
        help="Source directories (',' or ';' separated); wins over the positional form",
    )
    p.add_argument("--interval", type=int, help="Minutes between scan cycle starts")
    p.add_argument("--map-name", help="Name of the shared dedup map")
    p.add_argument("--store", choices=["redis", "memory"], help="Dedup store backend")
    p.add_argument("--log-level", help="Log level (DEBUG, INFO, ...)")
    return p.parse_args(argv)


def _revalidate(section: BaseSettings, update: dict) -> BaseSettings:
    if not update:
        return section
    return type(section).model_validate({**section.model_dump(), **update})


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Command-line values take precedence over the environment.

    Overrides go through the same validators as environment values.

    Raises:
        ValidationError: an override is rejected.
    """
    scan, store, logging_ = {}, {}, {}

    directories = args.source_directories or args.directories
    if directories:
        scan["source_directories"] = directories
    if args.interval is not None:
        scan["scan_interval_minutes"] = args.interval
    if args.map_name is not None:
        store["map_name"] = args.map_name
    if args.store:
        store["backend"] = args.store
    if args.log_level:
        logging_["level"] = args.log_level

    return settings.model_copy(update={
        "scan": _revalidate(settings.scan, scan),
        "store": _revalidate(settings.store, store),
        "logging": _revalidate(settings.logging, logging_),
    })


async def _wait_for_shutdown() -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows: KeyboardInterrupt still ends asyncio.run
            pass
    await stop.wait()
    logger.info("Shutdown signal received")


async def serve(settings: Settings) -> None:
    """Run the engine until a shutdown signal (or the status server exits)."""
    settings.log_summary()
    async with FeederEngine(settings) as engine:
        if settings.server.enabled:
            import uvicorn
            from feeder.server import create_app

            logger.info(f"Status API available at http://{settings.server.host}:{settings.server.port}")
            config = uvicorn.Config(
                create_app(engine),
                host=settings.server.host,
                port=settings.server.port,
                log_level=settings.logging.level.lower(),
            )
            await uvicorn.Server(config).serve()
        else:
            await _wait_for_shutdown()


def main(argv: Optional[List[str]] = None) -> int:
    """Run the feeder."""
    args = parse_args(argv)
    try:
        settings = apply_overrides(Settings(), args)
    except ValidationError as e:
        setup_logging()
        logger.error(f"Invalid configuration: {e}")
        return 2

    setup_logging(settings.logging.level, settings.logging.json_format)
    logger.info("Starting Feeder...")

    try:
        asyncio.run(serve(settings))
    except FeederError as e:
        logger.error(f"Feeder startup failed: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Feeder interrupted")

    logger.info("Feeder stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
