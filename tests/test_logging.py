"""
Tests for the depwatch logging system.
"""

import asyncio
import json
import logging
import tempfile
import threading
import time
from pathlib import Path

import pytest

from depwatch.utils.logging import (
    StructuredFormatter,
    initialize_logging,
    shutdown_logging,
    MetricsLogger,
    PackageLoggerAdapter,
    get_logger,
    with_correlation_id,
    set_correlation_id,
    get_correlation_id,
    clear_correlation_id
)
from depwatch.utils.logging_config import (
    LoggingPresets,
    configure_from_environment,
    get_logging_config
)


def read_json_lines(path):
    with open(path, 'r') as f:
        return [json.loads(line) for line in f if line.strip()]


class TestLoggingSystem:
    """Test the logging system functionality."""

    def setup_method(self):
        """Set up test environment."""
        shutdown_logging()
        clear_correlation_id()
        self.temp_dir = tempfile.mkdtemp()
        self.log_file = Path(self.temp_dir) / "test.log"

    def teardown_method(self):
        """Clean up test environment."""
        import shutil
        shutdown_logging()
        clear_correlation_id()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_basic_logging_initialization(self):
        """Test basic logging initialization."""
        log_manager = initialize_logging(
            log_level="DEBUG",
            log_format="json",
            log_file=str(self.log_file),
            include_correlation_id=True
        )

        assert log_manager is not None
        assert log_manager.log_level == 10  # DEBUG level

        logger = get_logger("test.basic")
        logger.info("Test message", extra={"test_field": "test_value"})

        assert self.log_file.exists()

        log_data = read_json_lines(self.log_file)[0]
        assert log_data["level"] == "INFO"
        assert log_data["logger"] == "test.basic"
        assert log_data["message"] == "Test message"
        assert log_data["test_field"] == "test_value"

    def test_initialize_twice_returns_same_manager(self):
        first = initialize_logging(log_level="DEBUG")
        second = initialize_logging(log_level="ERROR")
        assert first is second
        assert second.log_level == logging.DEBUG

    def test_correlation_id_functionality(self):
        """Test correlation ID functionality."""
        initialize_logging(log_level="DEBUG", log_format="json")

        test_id = "test-correlation-123"
        set_correlation_id(test_id)
        assert get_correlation_id() == test_id

        clear_correlation_id()
        assert get_correlation_id() is None

    def test_correlation_id_context_manager(self):
        """Test correlation ID context manager."""
        initialize_logging(log_level="DEBUG", log_format="json")

        set_correlation_id("initial-id")

        with with_correlation_id("context-id") as correlation_id:
            assert correlation_id == "context-id"
            assert get_correlation_id() == "context-id"

        assert get_correlation_id() == "initial-id"

    def test_generated_correlation_id_appears_in_log(self):
        initialize_logging(log_level="DEBUG", log_format="json", log_file=str(self.log_file))
        logger = get_logger("test.correlation")

        with with_correlation_id() as correlation_id:
            logger.info("Inside batch")

        assert correlation_id
        log_data = read_json_lines(self.log_file)[0]
        assert log_data["correlation_id"] == correlation_id

    def test_formatter_does_not_reuse_messages(self):
        """Two records from the same line keep their own messages."""
        formatter = StructuredFormatter(include_correlation_id=False)
        records = [
            logging.LogRecord("depwatch", logging.INFO, __file__, 1, "checked %s", (name,), None)
            for name in ("react", "lodash")
        ]
        messages = [json.loads(formatter.format(record))["message"] for record in records]
        assert messages == ["checked react", "checked lodash"]

    def test_package_adapter_binds_fields(self):
        """Bound fields appear as top-level keys and stack across binds."""
        initialize_logging(log_level="DEBUG", log_format="json", log_file=str(self.log_file))

        adapter = PackageLoggerAdapter(get_logger("test.adapter"), {"registry": "npm"})
        adapter.info("Adapter test message")

        scoped = adapter.bind(package="react", declared="^17.0.2")
        with with_correlation_id("batch-7"):
            scoped.warning("Lookup failed", extra={"extra_fields": {"attempt": 2}})

        first, second = read_json_lines(self.log_file)
        assert first["registry"] == "npm"
        assert "package" not in first
        assert second["registry"] == "npm"
        assert second["package"] == "react"
        assert second["declared"] == "^17.0.2"
        assert second["attempt"] == 2
        assert second["correlation_id"] == "batch-7"

    def test_metrics_logger(self):
        """Test metrics logger functionality."""
        initialize_logging(log_level="DEBUG", log_format="json", log_file=str(self.log_file))

        metrics_logger = MetricsLogger(get_logger("test.metrics"))

        metrics_logger.log_operation_start("resolve_many", total=3)
        metrics_logger.log_operation_end("resolve_many", 0.5, True, updates=1)
        metrics_logger.log_cache_hit("versions", "version:react")
        metrics_logger.log_cache_miss("versions", "version:lodash")
        metrics_logger.log_error_rate("resolve_many", 1, 4)

        lines = read_json_lines(self.log_file)
        assert [line["event_type"] for line in lines] == [
            "operation_start", "operation_end", "cache_hit", "cache_miss", "error_rate"
        ]
        assert lines[0]["total"] == 3
        assert lines[-1]["level"] == "WARNING"
        assert lines[-1]["error_rate"] == 0.25

    def test_logging_presets(self):
        """Test logging presets."""
        dev_manager = LoggingPresets.development(log_file=str(self.log_file))
        assert dev_manager.log_level == 10  # DEBUG
        assert dev_manager.log_format == "json"
        shutdown_logging()

        prod_manager = LoggingPresets.production(log_file=str(self.log_file))
        assert prod_manager.log_level == 20  # INFO
        assert prod_manager.log_format == "json"
        shutdown_logging()

        test_manager = LoggingPresets.testing()
        assert test_manager.log_level == 30  # WARNING
        assert test_manager.log_format == "text"
        assert not test_manager.include_correlation_id

    def test_environment_configuration(self, monkeypatch):
        """Test environment-based configuration."""
        monkeypatch.setenv("DEPWATCH_LOG_LEVEL", "ERROR")
        monkeypatch.setenv("DEPWATCH_LOG_FORMAT", "text")
        monkeypatch.setenv("DEPWATCH_LOG_BACKUP_COUNT", "2")
        monkeypatch.setenv("DEPWATCH_LOG_INCLUDE_CORRELATION_ID", "false")

        log_manager = configure_from_environment()

        assert log_manager.log_level == 40  # ERROR
        assert log_manager.log_format == "text"
        assert log_manager.backup_count == 2
        assert not log_manager.include_correlation_id

    def test_thread_safety(self):
        """Test thread safety of logging system."""
        initialize_logging(log_level="DEBUG", log_format="json", log_file=str(self.log_file))

        results = []
        errors = []

        def worker(thread_id):
            try:
                logger = get_logger(f"test.thread.{thread_id}")
                set_correlation_id(f"thread-{thread_id}")

                for i in range(10):
                    logger.info(f"Message {i} from thread {thread_id}")
                    time.sleep(0.001)

                results.append(f"thread-{thread_id}-completed")
            except Exception as e:
                errors.append(f"thread-{thread_id}-error: {e}")

        threads = []
        for i in range(5):
            thread = threading.Thread(target=worker, args=(i,))
            threads.append(thread)
            thread.start()

        for thread in threads:
            thread.join()

        assert len(results) == 5
        assert len(errors) == 0
        assert len(read_json_lines(self.log_file)) == 50

    def test_correlation_id_propagates_to_tasks(self):
        initialize_logging(log_level="DEBUG", log_format="json")
        seen = []

        async def worker():
            await asyncio.sleep(0)
            seen.append(get_correlation_id())

        async def batch():
            with with_correlation_id("batch-1"):
                await asyncio.gather(worker(), worker())

        asyncio.run(batch())
        assert seen == ["batch-1", "batch-1"]

    def test_logging_config(self):
        """Test logging configuration retrieval."""
        assert get_logging_config() == {"status": "not_initialized"}

        initialize_logging(
            log_level="WARNING",
            log_format="text",
            log_file=str(self.log_file),
            include_correlation_id=False
        )

        config = get_logging_config()

        assert config["status"] == "initialized"
        assert config["log_level"] == 30  # WARNING
        assert config["log_format"] == "text"
        assert config["log_file"] == str(self.log_file)
        assert not config["include_correlation_id"]

    def test_error_handling(self):
        """Test error handling in logging system."""
        with pytest.raises(AttributeError):
            initialize_logging(log_level="INVALID_LEVEL")

        log_manager = initialize_logging(log_format="invalid_format")
        # Should fall back to text format
        assert log_manager.log_format == "text"

    def test_structured_logging_with_exceptions(self):
        """Test structured logging with exceptions."""
        initialize_logging(log_level="DEBUG", log_format="json", log_file=str(self.log_file))

        logger = get_logger("test.exceptions")

        try:
            raise ValueError("Test exception")
        except ValueError:
            logger.error("Caught exception", exc_info=True)

        log_data = read_json_lines(self.log_file)[0]
        assert log_data["level"] == "ERROR"
        assert "exception" in log_data
        assert log_data["exception"]["type"] == "ValueError"
        assert "Test exception" in log_data["exception"]["message"]
        assert "traceback" in log_data["exception"]


if __name__ == "__main__":
    pytest.main([__file__])
