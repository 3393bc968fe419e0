"""
Tests for the logging setup.
"""

import io
import logging

from pharmacy_match.logger import ROOT_LOGGER_NAME, configure_logging, get_logger


class TestLogger:
    def test_names_nest_under_package_root(self):
        assert get_logger().name == ROOT_LOGGER_NAME
        assert get_logger("pharmacy_match.scorer").name == "pharmacy_match.scorer"
        assert get_logger("scripts.run_matching").name == "pharmacy_match.scripts.run_matching"

    def test_single_handler_after_repeat_configuration(self):
        configure_logging("INFO")
        configure_logging("DEBUG")

        root = logging.getLogger(ROOT_LOGGER_NAME)
        assert len(root.handlers) == 1
        assert root.level == logging.DEBUG
        assert root.propagate is False

    def test_format(self):
        stream = io.StringIO()
        configure_logging("INFO", stream=stream)

        get_logger("pharmacy_match.repository").info("Fetched %d rows", 3)

        line = stream.getvalue().strip()
        assert line.endswith("| INFO     | pharmacy_match.repository | Fetched 3 rows")

    def test_level_filters(self):
        stream = io.StringIO()
        configure_logging("WARNING", stream=stream)

        get_logger("pharmacy_match.ingest").info("hidden")
        get_logger("pharmacy_match.ingest").warning("shown")

        assert "hidden" not in stream.getvalue()
        assert "shown" in stream.getvalue()

    def test_library_use_adds_no_console_handler(self):
        """Without configure_logging only the null handler is attached."""
        get_logger("pharmacy_match.recommender")

        root = logging.getLogger(ROOT_LOGGER_NAME)
        assert all(isinstance(h, logging.NullHandler) for h in root.handlers)
        assert root.propagate is True

    def test_records_reach_host_handlers(self, caplog):
        """Records propagate to the application's root logger when unconfigured."""
        with caplog.at_level(logging.DEBUG, logger=ROOT_LOGGER_NAME):
            get_logger("pharmacy_match.ingest").debug("Loaded %d rows", 2)

        assert "Loaded 2 rows" in caplog.text
