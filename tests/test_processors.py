"""Test processors."""

import pytest

from feeder.processors import BaseProcessor, LoggingProcessor
from feeder.schemas import ProcessOutcome


@pytest.mark.asyncio
async def test_logging_processor_reports_success():
    processor = LoggingProcessor()
    assert await processor.process("/data/in/report.txt") == ProcessOutcome.SUCCESS


def test_base_processor_is_abstract():
    with pytest.raises(TypeError):
        BaseProcessor()
