"""Tests for request-scoped logging and metric hooks."""

import json
import logging
import sys
import time

import pytest

from bucket_repo.observability import (
    JSONFormatter,
    RequestContext,
    Timer,
    clear_metric_callbacks,
    configure_logging,
    emit_counter,
    emit_timer,
    get_logger,
    register_metric_callback,
)


@pytest.fixture
def metrics():
    """Collect emitted metrics."""
    events: list[tuple] = []
    register_metric_callback(lambda name, value, labels: events.append((name, value, labels)))
    yield events
    clear_metric_callbacks()


def make_record(message: str = "Artifact stored", **attrs) -> logging.LogRecord:
    record = logging.LogRecord("bucket_repo.repository", logging.INFO, "service.py", 1, message, (), None)
    for name, value in attrs.items():
        setattr(record, name, value)
    return record


class TestRequestContext:
    """Tests for RequestContext."""

    def test_current_outside_request(self) -> None:
        assert RequestContext.current() is None

    def test_current_inside_request(self) -> None:
        with RequestContext(principal="reader", method="GET", path="/libs/") as request:
            assert RequestContext.current() is request

        assert RequestContext.current() is None

    def test_nested_requests_restore_outer(self) -> None:
        with RequestContext(request_id="outer") as outer:
            with RequestContext(request_id="inner"):
                assert RequestContext.current().request_id == "inner"
            assert RequestContext.current() is outer

    def test_fields_skip_missing_values(self) -> None:
        request = RequestContext(request_id="req-1", method="PUT")

        assert request.fields() == {"request_id": "req-1", "method": "PUT"}

    def test_generates_request_id(self) -> None:
        assert RequestContext().request_id != RequestContext().request_id

    @pytest.mark.asyncio
    async def test_async_context_manager(self) -> None:
        async with RequestContext(path="/libs/app-1.0.jar") as request:
            assert RequestContext.current() is request
        assert RequestContext.current() is None


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_plain_record(self) -> None:
        parsed = json.loads(JSONFormatter().format(make_record()))

        assert parsed["level"] == "INFO"
        assert parsed["logger"] == "bucket_repo.repository"
        assert parsed["message"] == "Artifact stored"
        assert "request" not in parsed
        assert "context" not in parsed

    def test_request_and_artifact_fields(self) -> None:
        record = make_record(context={"key": "libs/app-1.0.jar", "size": 3}, duration_ms=1.23456)

        with RequestContext(request_id="req-1", principal="deployer", method="PUT", path="/libs/app-1.0.jar"):
            parsed = json.loads(JSONFormatter().format(record))

        assert parsed["request"] == {
            "request_id": "req-1",
            "principal": "deployer",
            "method": "PUT",
            "path": "/libs/app-1.0.jar",
        }
        assert parsed["context"] == {"key": "libs/app-1.0.jar", "size": 3}
        assert parsed["duration_ms"] == 1.235

    def test_error_summary(self) -> None:
        try:
            raise OSError("disk gone")
        except OSError:
            record = make_record("Download failed", exc_info=sys.exc_info())

        parsed = json.loads(JSONFormatter().format(record))

        assert parsed["error"] == {"type": "OSError", "message": "disk gone"}


class TestRepositoryLogger:
    """Tests for the keyword-accepting logger."""

    def test_context_and_duration_become_record_attributes(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = get_logger("bucket_repo.test")

        with caplog.at_level(logging.INFO, logger="bucket_repo.test"):
            logger.info("Artifact stored", context={"key": "libs/a.jar"}, duration_ms=2.5)

        record = caplog.records[0]
        assert record.context == {"key": "libs/a.jar"}
        assert record.duration_ms == 2.5

    def test_error_attaches_exception(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = get_logger("bucket_repo.test")

        with caplog.at_level(logging.ERROR, logger="bucket_repo.test"):
            logger.error("Storage failure", error=OSError("boom"))

        assert caplog.records[0].exc_info[0] is OSError

    def test_plain_message(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = get_logger("bucket_repo.test")

        with caplog.at_level(logging.WARNING, logger="bucket_repo.test"):
            logger.warning("Rejected credentials")

        assert caplog.records[0].getMessage() == "Rejected credentials"
        assert not hasattr(caplog.records[0], "context")


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_single_json_handler(self) -> None:
        configure_logging("debug")
        configure_logging("debug")

        package_logger = logging.getLogger("bucket_repo")
        assert package_logger.level == logging.DEBUG
        assert len(package_logger.handlers) == 1
        assert isinstance(package_logger.handlers[0].formatter, JSONFormatter)

    def test_text_format(self) -> None:
        configure_logging("INFO", format="text")

        formatter = logging.getLogger("bucket_repo").handlers[0].formatter
        assert not isinstance(formatter, JSONFormatter)


class TestTimer:
    """Tests for Timer."""

    def test_measures_block(self) -> None:
        with Timer() as timer:
            time.sleep(0.02)

        assert 15 <= timer.duration_ms < 1000

    def test_unstarted_timer(self) -> None:
        assert Timer().duration_ms == 0.0


class TestMetrics:
    """Tests for counters and timers."""

    def test_counter_carries_request_method(self, metrics: list) -> None:
        with RequestContext(method="PUT"):
            emit_counter("repository.upload.rejected")

        assert metrics == [("repository.upload.rejected", 1.0, {"method": "PUT"})]

    def test_timer_value_and_labels(self, metrics: list) -> None:
        emit_timer("repository.upload", 12.5, {"backend": "memory"})

        assert metrics == [("repository.upload", 12.5, {"backend": "memory"})]

    def test_caller_labels_not_mutated(self, metrics: list) -> None:
        labels = {"size": 3}

        with RequestContext(method="GET"):
            emit_counter("repository.download.bytes", labels)

        assert labels == {"size": 3}

    def test_failing_callback_does_not_break_caller(self, metrics: list) -> None:
        def broken(name: str, value: float, labels: dict) -> None:
            raise RuntimeError("broken")

        register_metric_callback(broken)
        emit_counter("auth.failed")

        assert metrics[-1][0] == "auth.failed"
