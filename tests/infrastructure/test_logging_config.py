"""Tests for structured logging."""

import json
import logging

from trial_lookup.infrastructure.logging_config import StructuredFormatter, setup_logging


def make_record(level=logging.INFO, **attributes):
    record = logging.LogRecord(
        name="trial_lookup.adapters.search_client",
        level=level,
        pathname=__file__,
        lineno=10,
        msg="Trial search returned %d trials",
        args=(2,),
        exc_info=None,
    )
    for name, value in attributes.items():
        setattr(record, name, value)
    return record


class TestStructuredFormatter:
    """Test the JSON formatter."""

    def test_lookup_context(self):
        formatter = StructuredFormatter(service="Breast Cancer Trial Lookup")
        record = make_record(
            endpoint="https://trials.example.org/search",
            trial_count=2,
            cache_hit=False,
            extra_fields={"batch": 1},
        )

        data = json.loads(formatter.format(record))

        assert data["message"] == "Trial search returned 2 trials"
        assert data["level"] == "INFO"
        assert data["service"] == "Breast Cancer Trial Lookup"
        assert data["endpoint"] == "https://trials.example.org/search"
        assert data["trial_count"] == 2
        assert data["cache_hit"] is False
        assert data["batch"] == 1
        assert data["timestamp"].endswith("Z")

    def test_unset_context_is_omitted(self):
        data = json.loads(StructuredFormatter().format(make_record()))

        assert "service" not in data
        assert "endpoint" not in data
        assert "request_id" not in data

    def test_location_on_warnings_only(self):
        formatter = StructuredFormatter()

        info = json.loads(formatter.format(make_record()))
        warning = json.loads(formatter.format(make_record(logging.WARNING, error_type="status")))

        assert "location" not in info
        assert warning["error_type"] == "status"
        assert warning["location"].endswith(":10")


class TestSetupLogging:
    """Test root logger configuration."""

    def test_json_handler(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging(use_json=True, log_level="WARNING", service="lookup")

            assert root.level == logging.WARNING
            assert len(root.handlers) == 1
            formatter = root.handlers[0].formatter
            assert isinstance(formatter, StructuredFormatter)
            assert formatter.service == "lookup"
            assert logging.getLogger("httpx").level == logging.WARNING
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
