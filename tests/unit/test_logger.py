"""
Unit tests for queue-based logging.
"""

import logging
import re
from pathlib import Path

from dexarb.telemetry.logger import AsyncLogger, MicrosecondFormatter, setup_logging


class TestAsyncLogger:
    """Tests for AsyncLogger."""

    def test_records_reach_log_file(self, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "engine.log"

        with AsyncLogger(name="dexarb.test_file", log_file=log_file):
            logging.getLogger("dexarb.test_file.scheduler").debug("pass 3 cancelled")

        text = log_file.read_text()
        assert "pass 3 cancelled" in text
        assert "dexarb.test_file.scheduler" in text

    def test_stop_detaches_handler(self) -> None:
        async_logger = AsyncLogger(name="dexarb.test_detach")
        async_logger.start()
        async_logger.start()
        assert len(async_logger.logger.handlers) == 1

        async_logger.stop()
        assert async_logger.logger.handlers == []

    def test_setup_logging_level(self) -> None:
        async_logger = setup_logging(level="warning")
        try:
            assert async_logger.logger.name == "dexarb"
            assert async_logger.logger.level == logging.WARNING
        finally:
            async_logger.stop()

    def test_microsecond_timestamps(self) -> None:
        formatter = MicrosecondFormatter("%(asctime)s %(message)s")
        record = logging.LogRecord("dexarb", logging.INFO, __file__, 1, "hello", None, None)

        assert re.match(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\.\d{6} hello", formatter.format(record))
