"""Tests for performance monitoring and logging helpers."""

import logging

import pytest
from rich.logging import RichHandler

from vidlook import config
from vidlook.logging_config import (
    PerformanceLogger,
    SecurityLogger,
    get_logger,
    set_module_log_level,
    setup_logging,
)
from vidlook.performance import PerformanceMonitor, measure_time


class TestPerformanceMonitor:
    """Test metric recording."""

    def test_record_metric(self):
        monitor = PerformanceMonitor()
        monitor.record_metric("req", 10.0)
        monitor.record_metric("req", 30.0)

        stats = monitor.get_stats("req")

        assert stats["count"] == 2
        assert stats["min"] == 10.0
        assert stats["max"] == 30.0
        assert stats["avg"] == 20.0
        assert stats["failures"] == 0

    def test_unknown_metric(self):
        assert PerformanceMonitor().get_stats("nothing") is None

    def test_measure_time_records_failure(self):
        """Test that an exception inside the block counts as a failure."""
        monitor = PerformanceMonitor()

        with pytest.raises(RuntimeError):
            with monitor.measure_time("op"):
                raise RuntimeError("boom")
        with monitor.measure_time("op"):
            pass

        stats = monitor.get_stats("op")
        assert stats["count"] == 2
        assert stats["failures"] == 1

    def test_module_measure_time_without_monitor(self):
        with measure_time(None, "op") as outcome:
            assert outcome["success"]

    def test_reset(self):
        monitor = PerformanceMonitor()
        monitor.record_metric("req", 1.0)
        monitor.reset()
        assert monitor.get_all_stats() == {}

    def test_slow_metric_logged(self, caplog):
        monitor = PerformanceMonitor(slow_threshold_ms=100)

        with caplog.at_level(logging.INFO, logger="vidlook.perf.monitor"):
            monitor.record_metric("req", 50.0)
            monitor.record_metric("req", 250.0)

        assert len(caplog.records) == 1
        assert "req took 0.250s" in caplog.records[0].getMessage()


class TestLoggers:
    """Test the helper loggers."""

    def test_slow_request(self, caplog):
        perf = PerformanceLogger("transport")

        with caplog.at_level(logging.WARNING, logger="vidlook.perf.transport"):
            assert not perf.log_slow_request("https://inv1.example.com/x", 100, 3000)
            assert perf.log_slow_request("https://inv1.example.com/x", 4000, 3000)

        assert "Slow provider request (4000ms)" in caplog.text

    def test_relay_rejection(self, caplog):
        with caplog.at_level(logging.WARNING, logger="vidlook.security"):
            SecurityLogger().log_relay_rejection("evil.example.net", "https://evil/x")

        assert "evil.example.net" in caplog.text

    def test_validation_failure_truncates(self, caplog):
        with caplog.at_level(logging.WARNING, logger="vidlook.security"):
            SecurityLogger().log_validation_failure("relay_target", "x" * 100, "bad")

        assert "x" * 50 + "..." in caplog.text
        assert "x" * 51 not in caplog.text

    def test_get_logger_namespace(self):
        assert get_logger("cache").name == "vidlook.cache"
        assert get_logger("vidlook.cache").name == "vidlook.cache"

    def test_set_module_log_level(self):
        set_module_log_level("paginator", "error")
        assert logging.getLogger("vidlook.paginator").level == logging.ERROR
        logging.getLogger("vidlook.paginator").setLevel(logging.NOTSET)


class TestSetupLogging:
    """Test logging setup."""

    def teardown_method(self):
        app_logger = logging.getLogger(config.APP_NAME)
        for handler in list(app_logger.handlers):
            handler.close()
            app_logger.removeHandler(handler)
        app_logger.setLevel(logging.NOTSET)

    def test_file_and_rich_console(self, tmp_path):
        log_file = tmp_path / "vidlook.log"

        setup_logging("DEBUG", log_file=log_file)

        handlers = logging.getLogger(config.APP_NAME).handlers
        assert len(handlers) == 2
        assert any(isinstance(h, RichHandler) for h in handlers)

        logging.getLogger("vidlook.test").warning("hello log")
        for handler in handlers:
            handler.flush()
        assert "hello log" in log_file.read_text()

    def test_plain_console(self, tmp_path):
        setup_logging("INFO", log_file=tmp_path / "a.log", enable_colors=False)

        handlers = logging.getLogger(config.APP_NAME).handlers
        assert not any(isinstance(h, RichHandler) for h in handlers)

    def test_default_log_file(self, temp_config_dir):
        """Test that the log file goes under the user config directory."""
        setup_logging("INFO", enable_console=False)

        assert (temp_config_dir / "logs" / "vidlook.log").exists()
