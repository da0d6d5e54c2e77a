# =====================================================================
# error_alerter Error Record Unit Tests
# =====================================================================
# Run with: pytest tests/test_error_record.py -v
# =====================================================================

import dataclasses

import pytest
import requests

from error_alerter.configuration import Configuration
from error_alerter.error_record import (
    ErrorRecord,
    error_class_name,
    extract_backtrace,
    from_exception,
    from_job,
    from_request,
    new_record,
)


pytestmark = pytest.mark.unit


def _raise(error):
    try:
        raise error
    except Exception as e:
        return e


class TestNewRecord:
    """Low-level constructor"""

    def test_defaults_to_worker_source(self):
        record = new_record(worker_class="TestWorker", error_class="RuntimeError", error_message="boom")

        assert record.source == "Worker"
        assert record.source_detail == "TestWorker"
        assert record.queue is None
        assert record.job_id is None
        assert record.backtrace is None

    def test_source_detail_wins_over_worker_class(self):
        record = new_record(
            source_detail="Explicit",
            worker_class="TestWorker",
            error_class="RuntimeError",
            error_message="boom",
        )

        assert record.source_detail == "Explicit"

    def test_truncates_message_to_default_length(self):
        record = new_record(error_class="RuntimeError", error_message="x" * 1000)

        assert len(record.error_message) == 500

    def test_truncates_message_to_configured_length(self):
        record = new_record(error_class="RuntimeError", error_message="abcdefghij", max_error_length=4)

        assert record.error_message == "abcd"

    def test_short_message_untouched(self):
        record = new_record(error_class="RuntimeError", error_message="short")

        assert record.error_message == "short"

    def test_none_message_becomes_empty(self):
        record = new_record(error_class="RuntimeError", error_message=None)

        assert record.error_message == ""

    def test_backtrace_frozen_as_tuple(self):
        frames = ["a.py:1:in f"]
        record = new_record(error_class="E", error_message="m", backtrace=frames)
        frames.append("b.py:2:in g")

        assert record.backtrace == ("a.py:1:in f",)

    def test_record_is_immutable(self):
        record = new_record(error_class="E", error_message="m")

        with pytest.raises(dataclasses.FrozenInstanceError):
            record.error_message = "changed"


class TestErrorClassName:

    def test_builtin_has_no_module(self):
        assert error_class_name(RuntimeError("x")) == "RuntimeError"

    def test_library_error_is_qualified(self):
        assert error_class_name(requests.exceptions.ReadTimeout()) == "requests.exceptions.ReadTimeout"


class TestExtractBacktrace:

    def test_unraised_error_has_no_backtrace(self):
        assert extract_backtrace(RuntimeError("never raised")) is None

    def test_frames_formatted_with_location(self):
        error = _raise(ValueError("bad"))

        frames = extract_backtrace(error)

        assert len(frames) == 1
        assert "test_error_record.py:" in frames[0]
        assert frames[0].endswith(":in _raise")


class TestFromException:
    """Generic call site with a free-form context"""

    def test_defaults_to_application_source(self):
        record = from_exception(_raise(RuntimeError("boom")))

        assert record.source == "Application"
        assert record.source_detail is None
        assert record.error_class == "RuntimeError"
        assert record.error_message == "boom"
        assert record.backtrace

    def test_context_supplies_source_and_queue(self):
        record = from_exception(
            RuntimeError("boom"),
            context={"source": "Rake", "source_detail": "backfill:run", "queue": "low"},
        )

        assert record.source == "Rake"
        assert record.source_detail == "backfill:run"
        assert record.queue == "low"

    def test_uses_settings_truncation(self):
        settings = Configuration(max_error_length=10)

        record = from_exception(RuntimeError("y" * 50), settings)

        assert record.error_message == "y" * 10


class TestFromRequest:
    """Web request call site"""

    def test_controller_source_and_handler_detail(self):
        record = from_request(RuntimeError("controller error"), "TransactionsView", "create")

        assert isinstance(record, ErrorRecord)
        assert record.source == "Controller"
        assert record.source_detail == "TransactionsView#create"
        assert record.queue is None


class TestFromJob:
    """Job death call site"""

    def test_captures_job_metadata(self):
        job = {"class": "HardWorker", "jid": "abc123", "queue": "critical"}

        record = from_job(job, RuntimeError("job died"))

        assert record.source == "Worker"
        assert record.source_detail == "HardWorker"
        assert record.queue == "critical"
        assert record.job_id == "abc123"
        assert record.error_class == "RuntimeError"
        assert record.error_message == "job died"

    def test_explicit_source_detail(self):
        job = {"class": "HardWorker", "source_detail": "HardWorker[tenant=7]"}

        record = from_job(job, RuntimeError("job died"))

        assert record.source_detail == "HardWorker[tenant=7]"
