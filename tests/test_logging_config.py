"""Tests for logging setup."""

import json
import logging
import time

from atmosclient.logging_config import JSONFormatter, configure_logging, request_extra


class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_sets_level_and_single_handler(self):
        """Repeated calls replace the handler instead of stacking them."""
        configure_logging("DEBUG", logger_name="atmosclient.test_a")
        logger = configure_logging("WARNING", logger_name="atmosclient.test_a")
        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 1

    def test_json_format(self):
        """fmt='json' installs the JSON formatter."""
        logger = configure_logging("INFO", "json", logger_name="atmosclient.test_b")
        assert isinstance(logger.handlers[0].formatter, JSONFormatter)

    def test_unknown_level_defaults_to_info(self):
        """Unknown level names fall back to INFO."""
        logger = configure_logging("LOUD", logger_name="atmosclient.test_c")
        assert logger.level == logging.INFO


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_request_fields(self):
        """Request extras are copied into the JSON object."""
        record = logging.LogRecord(
            "atmosclient.client", logging.DEBUG, __file__, 1, "GET %s", ("/rest/objects",), None
        )
        for key, value in request_extra("GET", "/rest/objects", 200, time.monotonic(), "u").items():
            setattr(record, key, value)
        entry = json.loads(JSONFormatter().format(record))
        assert entry["message"] == "GET /rest/objects"
        assert entry["level"] == "DEBUG"
        assert entry["method"] == "GET"
        assert entry["status"] == 200
        assert entry["uid"] == "u"
        assert entry["duration_ms"] >= 0

    def test_missing_fields_omitted(self):
        """Absent extras are left out."""
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "hi", (), None)
        entry = json.loads(JSONFormatter().format(record))
        assert "method" not in entry
