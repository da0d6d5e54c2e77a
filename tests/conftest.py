# =====================================================================
# error_alerter Pytest Configuration and Fixtures
# =====================================================================
# Shared fixtures for all tests
# =====================================================================

import os
from datetime import datetime, timezone
from unittest.mock import MagicMock

import fakeredis
import pytest
import redis
from prometheus_client import REGISTRY

import error_alerter
from error_alerter.configuration import Configuration
from error_alerter.error_record import new_record

APP_ROOT = "/srv/app"
WEBHOOK_URL = "https://hooks.slack.com/services/T000/B000/XXXX"


# --- Default configuration isolation ---

@pytest.fixture(autouse=True)
def reset_default_configuration():
    """Every test starts and ends with a fresh process-wide configuration."""
    error_alerter.reset()
    yield
    error_alerter.reset()


# --- Configuration ---

@pytest.fixture
def fake_redis():
    """In-memory Redis with real SET NX EX semantics."""
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def settings(fake_redis):
    """Enabled configuration with a dedup cache and a fixed app root."""
    return Configuration(
        webhook_url=WEBHOOK_URL,
        redis=fake_redis,
        app_root=APP_ROOT,
    )


@pytest.fixture
def settings_without_cache():
    return Configuration(webhook_url=WEBHOOK_URL, app_root=APP_ROOT)


@pytest.fixture
def mock_redis_client():
    """Mock Redis client"""
    client = MagicMock(spec=redis.Redis)
    client.ping.return_value = True
    client.set.return_value = True
    return client


@pytest.fixture
def fixed_clock():
    """Clock pinned to 2025-11-08 14:05 UTC."""
    return lambda: datetime(2025, 11, 8, 14, 5, tzinfo=timezone.utc)


# --- Sample Data Fixtures ---

@pytest.fixture
def worker_record():
    """The canonical worker failure used across tests"""
    return new_record(
        worker_class="TestWorker",
        error_class="RuntimeError",
        error_message="boom",
    )


@pytest.fixture
def sample_backtrace():
    """Frames inside and outside the application root, outermost first"""
    return [
        f"{APP_ROOT}/app/workers/test_worker.py:10:in perform",
        "/usr/lib/python3.12/site-packages/celery/app/trace.py:453:in trace_task",
        f"{APP_ROOT}/app/services/some_service.py:25:in call",
    ]


# --- Recording delivery client ---

class RecordingClient:
    """Stands in for WebhookClient and remembers every payload posted."""

    def __init__(self, result=True):
        self.result = result
        self.posted = []

    def post(self, payload):
        self.posted.append(payload)
        return self.result


@pytest.fixture
def recording_client():
    return RecordingClient()


# --- Environment ---

@pytest.fixture
def clean_env(monkeypatch):
    """Remove every ERROR_ALERTER_* variable from the environment."""
    for key in list(os.environ):
        if key.startswith("ERROR_ALERTER_"):
            monkeypatch.delenv(key, raising=False)
    return monkeypatch


# --- Pytest Configuration ---

def pytest_configure(config):
    """Pytest configuration hook"""
    config.addinivalue_line(
        "markers", "unit: Unit tests (mock all external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (requires real services)"
    )


# --- Helper Functions ---

def assert_log_contains(caplog, level, message_fragment):
    """Assert that logs contain a specific message"""
    for record in caplog.records:
        if record.levelname == level and message_fragment in record.getMessage():
            return True
    raise AssertionError(
        f"Log message containing '{message_fragment}' at level '{level}' not found"
    )


def block_text(payload, label):
    """Text of the first section block whose text starts with *label:*"""
    for block in payload["blocks"]:
        text = block.get("text", {}).get("text", "")
        if text.startswith(f"*{label}:*"):
            return text
    return None


def field_text(payload, label):
    """Text of the metadata field labelled *label:*"""
    for field in payload["blocks"][1]["fields"]:
        if field["text"].startswith(f"*{label}:*"):
            return field["text"]
    return None


def metric_value(name, labels=None):
    """Current value of a sample in the default Prometheus registry (0 if unseen)"""
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0
