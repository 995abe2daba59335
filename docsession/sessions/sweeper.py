"""
Expiration Sweeper
==================

Background task that removes sessions whose cookie expiration has passed,
then compacts the storage file. Runs on a fixed interval, owned by the
SessionStore that started it. Failures are logged and never escape the task;
the next tick is the retry.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from docsession.db.document import DocumentStore
from docsession.sessions.record import SID_FIELD, by_sid, expired_before

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    started_at: datetime
    matched: int = 0
    removed: int = 0
    failed: list[str] = field(default_factory=list)
    compacted: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.failed


class ExpirationSweeper:
    """Periodically deletes expired session records."""

    def __init__(self, documents: DocumentStore, interval: float, *, compact: bool = True):
        if interval <= 0:
            raise ValueError("Sweep interval must be positive")
        self.documents = documents
        self.interval = interval
        self.compact = compact
        self.last_result: Optional[SweepResult] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="docsession-sweeper")
        logger.info("Expiration sweeper started (interval=%ss)", self.interval)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        if not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        logger.info("Expiration sweeper stopped")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.sweep()
            except Exception as e:
                logger.error("Sweep tick error: %s", e, exc_info=True)

    async def sweep(self, now: Optional[datetime] = None) -> SweepResult:
        """Run one sweep: scan, remove each expired record, then compact."""
        now = now or datetime.now(timezone.utc)
        result = SweepResult(started_at=now)
        self.last_result = result

        try:
            expired = await self.documents.find(expired_before(now))
        except Exception as e:
            result.error = str(e)
            logger.warning("Expired-session scan failed, skipping this tick: %s", e, exc_info=True)
            return result

        result.matched = len(expired)
        for doc in expired:
            sid = doc.get(SID_FIELD)
            try:
                result.removed += await self.documents.remove(by_sid(sid))
            except Exception as e:
                result.failed.append(sid)
                logger.warning("Could not remove expired session %s: %s", sid, e, exc_info=True)

        if self.compact:
            try:
                await self.documents.compact()
                result.compacted = True
            except Exception as e:
                logger.warning("Compaction after sweep failed: %s", e, exc_info=True)

        if result.matched:
            logger.info(
                "Swept %d expired session(s), %d failed", result.removed, len(result.failed)
            )
        else:
            logger.debug("Sweep found no expired sessions")
        return result
