"""
Tests for logging setup — the package logger and its single handler
"""

import io
import logging

import pytest

from grainmirror.logging_setup import ROOT_LOGGER, configure_logging


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


class TestConfigureLogging:

    def test_single_handler_after_repeat_calls(self):
        configure_logging("INFO")
        logger = configure_logging("DEBUG")
        assert len(logger.handlers) == 1
        assert logger.level == logging.DEBUG
        assert logger.propagate is False

    def test_child_loggers_write_to_stream(self):
        stream = io.StringIO()
        configure_logging("INFO", stream=stream)
        logging.getLogger("grainmirror.services.sync").info("Synced %s", "a.md")
        line = stream.getvalue()
        assert "grainmirror.services.sync - INFO - Synced a.md" in line

    def test_level_filters(self):
        stream = io.StringIO()
        configure_logging("WARNING", stream=stream)
        logging.getLogger("grainmirror.core.registry").info("quiet")
        assert stream.getvalue() == ""

    def test_unknown_level_defaults_to_warning(self):
        assert configure_logging("chatty").level == logging.WARNING
