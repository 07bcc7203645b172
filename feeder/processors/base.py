"""Base processor interface."""

from abc import ABC, abstractmethod

from loguru import logger

from feeder.schemas import ProcessOutcome


class BaseProcessor(ABC):
    """Interface for handling a claimed file downstream."""

    @abstractmethod
    async def process(self, identifier: str) -> ProcessOutcome:
        """
        Process a claimed identifier.
        Return SUCCESS or FAILURE; the scheduler only counts the result.
        """
        pass


class LoggingProcessor(BaseProcessor):
    """Default hand-off: records the claim and reports success."""

    async def process(self, identifier: str) -> ProcessOutcome:
        logger.info(f"Handing off claimed file: {identifier}")
        return ProcessOutcome.SUCCESS
