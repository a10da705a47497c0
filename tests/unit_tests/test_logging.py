"""Test suite for logging configuration and the request context middleware."""

import json
import sys
from unittest.mock import MagicMock

import pytest
from loguru import logger

from nexus_api.monitoring.logger import configure_logger
from nexus_api.monitoring.logger import get_formatted_stacktrace
from nexus_api.monitoring.logger import process_log_record
from nexus_api.monitoring.request_context import REQUEST_ID_HEADER
from nexus_api.monitoring.request_context import RequestContextMiddleware
from tests.consts import API_BASE


@pytest.fixture
def captured_records():
    """Collect loguru records emitted during the test."""
    records = []

    def sink(message):
        extra = message.record["extra"]
        # the stdout sink filter may already have serialized extra to JSON
        if isinstance(extra, str):
            extra = json.loads(extra)
        records.append({"message": message.record["message"], "extra": dict(extra)})

    sink_id = logger.add(sink, level="DEBUG")
    yield records
    logger.remove(sink_id)


class TestProcessLogRecord:
    """Tests for process_log_record."""

    def test_extra_is_serialized_to_json(self):
        record = {"extra": {"project_id": 3, "status": "OPEN"}, "exception": None}

        result = process_log_record(record)

        assert json.loads(result["extra"]) == {"project_id": 3, "status": "OPEN"}
        assert result["stacktrace"] == ""

    def test_already_serialized_extra_is_left_alone(self):
        record = {"extra": '{"a": 1}', "exception": None}

        assert process_log_record(record)["extra"] == '{"a": 1}'

    def test_exception_adds_single_line_stacktrace(self):
        try:
            raise ValueError("bad budget")
        except ValueError:
            exc_info = sys.exc_info()

        record = {"extra": {}, "exception": exc_info}
        result = process_log_record(record)

        assert "ValueError: bad budget" in result["stacktrace"]
        assert "\n" not in result["stacktrace"]

    def test_formatted_stacktrace_keeps_newlines_when_asked(self):
        try:
            raise KeyError("freelancer_id")
        except KeyError:
            exc_info = sys.exc_info()

        stacktrace = get_formatted_stacktrace(exc_info, replace_newline_character_with_carriage_return=False)

        assert "\n" in stacktrace
        assert "KeyError" in stacktrace


class TestConfigureLogger:
    def test_file_sink(self, tmp_path):
        log_file = tmp_path / "nexus.log"

        configure_logger(log_level="DEBUG", log_file_path=str(log_file), service_name="test-service")
        logger.info("Project created", project_id=1)
        logger.complete()

        content = log_file.read_text()
        assert "Project created" in content
        assert '"service": "test-service"' in content

        configure_logger(log_level="DEBUG")


class TestRequestContextMiddleware:
    """Tests for RequestContextMiddleware."""

    def test_request_id_is_echoed(self, client):
        response = client.get(f"{API_BASE}/health", headers={REQUEST_ID_HEADER: "req-123"})

        assert response.headers[REQUEST_ID_HEADER] == "req-123"

    def test_request_id_is_generated(self, client):
        response = client.get(f"{API_BASE}/health")

        assert len(response.headers[REQUEST_ID_HEADER]) == 36

    def test_request_is_logged_with_context(self, client, captured_records):
        client.get(f"{API_BASE}/projects/999", headers={REQUEST_ID_HEADER: "req-456"})

        request_logs = [r for r in captured_records if r["extra"].get("event_type") == "http_request"]
        assert len(request_logs) == 1
        extra = request_logs[0]["extra"]
        assert extra["request_id"] == "req-456"
        assert extra["status_code"] == 404
        assert extra["user_identity"] == "10 (client10@example.com)"

    def test_client_ip_prefers_forwarded_for(self):
        middleware = RequestContextMiddleware(app=MagicMock())
        request = MagicMock()
        request.headers = {"X-Forwarded-For": "203.0.113.7, 10.0.0.1"}

        assert middleware._get_client_ip(request) == "203.0.113.7"

    def test_client_ip_falls_back_to_peer(self):
        middleware = RequestContextMiddleware(app=MagicMock())
        request = MagicMock()
        request.headers = {}
        request.client.host = "127.0.0.1"

        assert middleware._get_client_ip(request) == "127.0.0.1"

    @pytest.mark.parametrize(
        "headers,expected",
        [
            ({"X-User-Id": "10", "X-User-Email": "c@example.com"}, "10 (c@example.com)"),
            ({"X-User-Id": "10"}, "10"),
            ({}, "anonymous"),
        ],
        ids=["id_and_email", "id_only", "anonymous"],
    )
    def test_user_identity(self, headers, expected):
        middleware = RequestContextMiddleware(app=MagicMock())
        request = MagicMock()
        request.headers = headers

        assert middleware._get_user_identity(request) == expected
