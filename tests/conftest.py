"""
Shared fixtures for the docsession test suite.
"""

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from docsession.db.document import DocumentStore
from docsession.sessions.store import SessionStore


@pytest.fixture
def now() -> datetime:
    return datetime.now(timezone.utc)


@pytest.fixture
def storage_file(tmp_path):
    return tmp_path / "sessions.db"


@pytest_asyncio.fixture
async def documents(storage_file):
    """A loaded DocumentStore on a temporary file."""
    store = DocumentStore(storage_file, collection="docs")
    await store.load()
    yield store
    await store.close()


@pytest_asyncio.fixture
async def session_store(storage_file):
    """An open SessionStore without a background sweeper."""
    store = SessionStore(storage_file)
    await store.open()
    yield store
    await store.close()


def session_data(expires: datetime, **extra) -> dict:
    """Session payload shaped the way session middleware writes it."""
    return {
        "cookie": {
            "originalMaxAge": 3600000,
            "_expires": expires,
            "httpOnly": True,
            "path": "/",
        },
        **extra,
    }


@pytest.fixture
def make_session():
    def _make(offset: timedelta, **extra) -> dict:
        return session_data(datetime.now(timezone.utc) + offset, **extra)

    return _make
