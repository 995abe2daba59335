"""
Tests for the expiration sweeper, on its own and as run by SessionStore.
"""

import asyncio
import logging
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from docsession.sessions.store import SessionStore
from docsession.sessions.sweeper import ExpirationSweeper


@pytest.fixture
def sweeper(session_store) -> ExpirationSweeper:
    return ExpirationSweeper(session_store.documents, interval=60)


class TestSweep:
    @pytest.mark.asyncio
    async def test_removes_only_expired_sessions(self, session_store, sweeper, make_session) -> None:
        await session_store.set("old", make_session(-timedelta(seconds=1), user="alice"))
        await session_store.set("fresh", make_session(timedelta(hours=1), user="bob"))
        await session_store.set("no-expiry", {"cookie": {}, "user": "carol"})

        result = await sweeper.sweep()

        assert result.matched == 1
        assert result.removed == 1
        assert result.compacted
        assert result.ok
        assert await session_store.get("old") is None
        assert (await session_store.get("fresh"))["user"] == "bob"
        assert (await session_store.get("no-expiry"))["user"] == "carol"

    @pytest.mark.asyncio
    async def test_expiry_is_strictly_before_now(self, session_store, sweeper, now, make_session) -> None:
        data = make_session(timedelta(0))
        data["cookie"]["_expires"] = now
        await session_store.set("edge", data)

        result = await sweeper.sweep(now=now)

        assert result.matched == 0
        assert await session_store.get("edge") is not None

    @pytest.mark.asyncio
    async def test_nothing_expired_still_compacts(self, sweeper) -> None:
        result = await sweeper.sweep()

        assert result.matched == 0
        assert result.compacted
        assert sweeper.last_result is result

    @pytest.mark.asyncio
    async def test_compaction_can_be_disabled(self, session_store) -> None:
        sweeper = ExpirationSweeper(session_store.documents, interval=60, compact=False)

        assert not (await sweeper.sweep()).compacted

    @pytest.mark.asyncio
    async def test_one_failed_removal_does_not_abort_batch(
        self, session_store, sweeper, make_session, caplog
    ) -> None:
        for sid in ("a", "b", "c"):
            await session_store.set(sid, make_session(-timedelta(minutes=1)))
        documents = session_store.documents
        real_remove = documents.remove

        async def flaky_remove(query, *, multi=False):
            if query == {"sid": "b"}:
                raise RuntimeError("locked")
            return await real_remove(query, multi=multi)

        documents.remove = flaky_remove

        with caplog.at_level(logging.WARNING, logger="docsession.sessions.sweeper"):
            result = await sweeper.sweep()

        assert result.matched == 3
        assert result.removed == 2
        assert result.failed == ["b"]
        assert result.compacted
        assert not result.ok
        assert "Could not remove expired session b" in caplog.text

    @pytest.mark.asyncio
    async def test_scan_failure_abandons_tick(self, session_store, sweeper, caplog) -> None:
        session_store.documents.find = AsyncMock(side_effect=RuntimeError("store unavailable"))
        session_store.documents.compact = AsyncMock()

        with caplog.at_level(logging.WARNING, logger="docsession.sessions.sweeper"):
            result = await sweeper.sweep()

        assert result.error == "store unavailable"
        assert not result.compacted
        session_store.documents.compact.assert_not_awaited()
        assert "scan failed" in caplog.text

    @pytest.mark.asyncio
    async def test_compaction_failure_is_logged(self, session_store, sweeper, caplog) -> None:
        session_store.documents.compact = AsyncMock(side_effect=RuntimeError("busy"))

        with caplog.at_level(logging.WARNING, logger="docsession.sessions.sweeper"):
            result = await sweeper.sweep()

        assert not result.compacted
        assert "Compaction after sweep failed" in caplog.text

    def test_interval_must_be_positive(self, session_store) -> None:
        with pytest.raises(ValueError):
            ExpirationSweeper(session_store.documents, interval=0)


class TestBackgroundTask:
    @pytest.mark.asyncio
    async def test_start_is_idempotent_and_stop_cancels(self, session_store) -> None:
        sweeper = ExpirationSweeper(session_store.documents, interval=60)

        sweeper.start()
        task = sweeper._task
        sweeper.start()

        assert sweeper._task is task
        assert sweeper.running

        await sweeper.stop()

        assert task.cancelled()
        assert not sweeper.running

    @pytest.mark.asyncio
    async def test_stop_without_start(self, session_store) -> None:
        await ExpirationSweeper(session_store.documents, interval=60).stop()

    @pytest.mark.asyncio
    async def test_loop_survives_failing_ticks(self, session_store) -> None:
        sweeper = ExpirationSweeper(session_store.documents, interval=0.02)
        sweeper.sweep = AsyncMock(side_effect=RuntimeError("boom"))

        sweeper.start()
        await asyncio.sleep(0.15)

        assert sweeper.running
        assert sweeper.sweep.await_count >= 2
        await sweeper.stop()


class TestStoreSweeping:
    @pytest.mark.asyncio
    async def test_expired_session_is_gone_after_one_tick(self, storage_file, make_session) -> None:
        async with SessionStore(storage_file, sweep_interval=0.1) as store:
            await store.set("abc", make_session(-timedelta(seconds=1), user="alice"))
            await store.set("xyz", make_session(timedelta(seconds=100), user="bob"))

            await asyncio.sleep(0.35)

            assert await store.get("abc") is None
            kept = await store.get("xyz")
            assert kept["user"] == "bob"
            assert "_expires" in kept["cookie"]
            assert store.sweeper.last_result is not None

    @pytest.mark.asyncio
    async def test_no_interval_means_no_sweep(self, storage_file, make_session) -> None:
        async with SessionStore(storage_file) as store:
            await store.set("abc", make_session(-timedelta(seconds=1)))

            await asyncio.sleep(0.1)

            assert await store.get("abc") is not None
