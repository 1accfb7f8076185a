"""Root conftest — shared test configuration and store fixtures."""

import os

# Tests never touch the network or the working directory's store
os.environ.setdefault("SKIP_DOMAIN_CHECK", "true")
os.environ.setdefault("STORE_PATH", "test-subscriptions.db")
os.environ.setdefault("LOG_FORMAT", "text")

from datetime import datetime, timezone  # noqa: E402

import pytest  # noqa: E402

from email_subscribe.infrastructure.record_store import RecordStore  # noqa: E402

FIXED_NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "subscriptions.db"


@pytest.fixture
async def store(store_path):
    """Fresh record store in a temporary file, closed after the test."""
    s = await RecordStore.open(store_path)
    yield s
    await s.close()
