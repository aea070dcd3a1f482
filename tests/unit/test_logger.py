"""Unit tests for logging setup."""

import logging

import pytest

from seconde.utils.logger import PACKAGE_LOGGER, configure_logging, get_logger, set_log_level


@pytest.fixture
def package_logger(tmp_path):
    root = configure_logging("INFO", tmp_path)
    yield root
    configure_logging()


class TestLogging:
    """Test package logger configuration."""

    def test_handlers_on_package_logger_only(self, package_logger):
        module_logger = get_logger("seconde.core.jobs.pruning")

        assert module_logger.handlers == []
        assert len(package_logger.handlers) == 2
        assert not package_logger.propagate

    def test_file_output(self, package_logger, tmp_path):
        get_logger("seconde.tests").warning("index pruned")
        for handler in package_logger.handlers:
            handler.flush()

        assert "index pruned" in (tmp_path / "seconde.log").read_text(encoding="utf-8")

    def test_reconfigure_does_not_duplicate(self, package_logger, tmp_path):
        configure_logging("DEBUG", tmp_path)
        assert len(logging.getLogger(PACKAGE_LOGGER).handlers) == 2

    def test_set_log_level(self, package_logger):
        set_log_level("warning")

        assert package_logger.level == logging.WARNING
        assert all(h.level == logging.WARNING for h in package_logger.handlers)

    def test_unknown_level_defaults_to_info(self, package_logger):
        set_log_level("chatty")
        assert package_logger.level == logging.INFO
