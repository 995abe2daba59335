"""
Session Store
=============

Session persistence for HTTP session middleware, backed by an embedded
document store. One record per session id; the payload is stored and
returned verbatim. Expired sessions are removed by an optional background
sweeper owned by the store.

Usage:

    async with SessionStore("sessions.db", sweep_interval=3600) as store:
        await store.set(sid, {"cookie": {"_expires": expires}, "user": "alice"})
        data = await store.get(sid)
        await store.destroy(sid)
"""

from __future__ import annotations

import inspect
import logging
from datetime import timedelta
from pathlib import Path
from typing import Any, Awaitable, Callable, Mapping, Optional, Protocol, Union, runtime_checkable

from docsession.config import StoreConfig
from docsession.db.document import DocumentStore
from docsession.errors import StoreUnavailableError
from docsession.sessions.record import COOKIE_FIELD, SID_FIELD, SessionRecord, by_sid
from docsession.sessions.sweeper import ExpirationSweeper

logger = logging.getLogger(__name__)

ReadyCallback = Callable[[Optional[BaseException]], Union[None, Awaitable[None]]]


@runtime_checkable
class Store(Protocol):
    """What session middleware needs from a store."""

    async def get(self, sid: str) -> Optional[dict[str, Any]]: ...

    async def set(self, sid: str, data: Mapping[str, Any]) -> None: ...

    async def destroy(self, sid: str) -> None: ...


def _seconds(interval: float | timedelta | None) -> float:
    if interval is None:
        return 0.0
    if isinstance(interval, timedelta):
        return interval.total_seconds()
    return float(interval)


class SessionStore:
    """Persistent session storage using an embedded document store."""

    def __init__(
        self,
        storage_location: str | Path,
        *,
        sweep_interval: float | timedelta | None = None,
        on_ready: Optional[ReadyCallback] = None,
        collection: str = "sessions",
    ):
        self.storage_location = str(storage_location)
        self.documents = DocumentStore(storage_location, collection=collection)
        self._on_ready = on_ready

        interval = _seconds(sweep_interval)
        if interval < 0:
            raise ValueError("sweep_interval must not be negative")
        self.sweeper: Optional[ExpirationSweeper] = (
            ExpirationSweeper(self.documents, interval) if interval else None
        )

    @classmethod
    def from_config(
        cls, config: StoreConfig, *, on_ready: Optional[ReadyCallback] = None
    ) -> SessionStore:
        return cls(
            config.storage_location,
            sweep_interval=config.sweep_interval,
            on_ready=on_ready,
            collection=config.collection,
        )

    # ── Lifecycle ────────────────────────────────────────────────────────

    async def open(self) -> None:
        """Load the storage file, then start the sweeper if one is configured.

        ``on_ready`` is called once with ``None`` on success, or with the
        StoreUnavailableError before it is raised.
        """
        if self.documents.loaded:
            return
        try:
            await self.documents.load()
            await self.documents.ensure_index(SID_FIELD, unique=True)
        except Exception as e:
            await self.documents.close()
            error = e if isinstance(e, StoreUnavailableError) else StoreUnavailableError(str(e))
            await self._notify_ready(error)
            if error is e:
                raise
            raise error from e

        logger.info("Session store opened: %s", self.storage_location)
        await self._notify_ready(None)
        if self.sweeper:
            self.sweeper.start()

    async def close(self) -> None:
        if self.sweeper:
            await self.sweeper.stop()
        await self.documents.close()
        logger.info("Session store closed: %s", self.storage_location)

    async def _notify_ready(self, error: Optional[BaseException]) -> None:
        if self._on_ready is None:
            return
        result = self._on_ready(error)
        if inspect.isawaitable(result):
            await result

    # ── Store contract ───────────────────────────────────────────────────

    async def get(self, sid: str) -> Optional[dict[str, Any]]:
        """Return the session payload, or None when there is no such session."""
        doc = await self.documents.find_one(by_sid(sid))
        if doc is None:
            return None
        return SessionRecord.from_document(doc).data

    async def set(self, sid: str, data: Mapping[str, Any]) -> None:
        """Create or replace the session for ``sid``."""
        record = SessionRecord(sid=sid, data=dict(data))
        await self.documents.update(
            by_sid(sid), record.to_document(), multi=False, upsert=True
        )

    async def destroy(self, sid: str) -> None:
        """Remove the session for ``sid``. Missing sessions are not an error."""
        await self.documents.remove(by_sid(sid), multi=False)

    # ── Optional store members ───────────────────────────────────────────

    async def touch(self, sid: str, data: Mapping[str, Any]) -> None:
        """Refresh the cookie metadata of an existing session."""
        if "cookie" not in data:
            return
        await self.documents.update_field(by_sid(sid), COOKIE_FIELD, data["cookie"])

    async def all(self) -> dict[str, dict[str, Any]]:
        """All stored sessions keyed by sid."""
        docs = await self.documents.find({})
        records = [SessionRecord.from_document(d) for d in docs]
        return {r.sid: r.data for r in records}

    async def length(self) -> int:
        return await self.documents.count()

    async def clear(self) -> int:
        """Delete every session. Returns the count removed."""
        return await self.documents.remove({}, multi=True)

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, *exc):
        await self.close()
