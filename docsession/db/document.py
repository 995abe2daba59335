"""
Document Store
==============

An embedded document collection persisted to a single SQLite file.
Each document is a JSON object stored in one row, keyed by ``_id``.
SQLite provides the query engine, the file format and write-ahead logging;
this class only exposes the find / update / remove / compact primitives
the session layer needs.
"""

from __future__ import annotations

import asyncio
import logging
import re
import uuid
from pathlib import Path
from typing import Any

import aiosqlite

from docsession.db.codec import decode, encode, encode_value
from docsession.db.query import compile_filter, field_expr, json_path
from docsession.errors import QueryError, StoreNotLoadedError, StoreUnavailableError

logger = logging.getLogger(__name__)

MEMORY = ":memory:"
_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class DocumentStore:
    """Async document collection backed by SQLite."""

    def __init__(self, filename: str | Path | None = None, collection: str = "documents"):
        if not _NAME.match(collection):
            raise QueryError(f"Invalid collection name: {collection!r}")
        self.filename = str(filename) if filename else MEMORY
        self.collection = collection
        self._db: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()

    @property
    def in_memory(self) -> bool:
        return self.filename == MEMORY

    @property
    def loaded(self) -> bool:
        return self._db is not None

    @property
    def db(self) -> aiosqlite.Connection:
        if self._db is None:
            raise StoreNotLoadedError("Document store not loaded. Call load() first.")
        return self._db

    async def load(self) -> None:
        """Open the file and ensure the collection table exists."""
        if self._db is not None:
            return
        try:
            if not self.in_memory:
                Path(self.filename).parent.mkdir(parents=True, exist_ok=True)
            db = await aiosqlite.connect(self.filename)
        except (OSError, aiosqlite.Error) as e:
            raise StoreUnavailableError(f"Cannot open {self.filename}: {e}") from e

        try:
            if not self.in_memory:
                await db.execute_fetchall("PRAGMA journal_mode=WAL")
            await db.execute(
                f"""CREATE TABLE IF NOT EXISTS {self.collection} (
                        _id  TEXT PRIMARY KEY,
                        doc  TEXT NOT NULL
                    )"""
            )
            await db.commit()
        except aiosqlite.Error as e:
            await db.close()
            raise StoreUnavailableError(f"Cannot load {self.filename}: {e}") from e

        self._db = db
        logger.info("Document store loaded: %s [%s]", self.filename, self.collection)

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    async def ensure_index(self, field: str, *, unique: bool = False) -> None:
        """Create an expression index on a (possibly nested) field."""
        name = f"idx_{self.collection}_{re.sub(r'[^A-Za-z0-9_]', '_', field)}"
        kind = "UNIQUE INDEX" if unique else "INDEX"
        async with self._write_lock:
            await self.db.execute(
                f"CREATE {kind} IF NOT EXISTS {name} "
                f"ON {self.collection} ({field_expr(field)})"
            )
            await self.db.commit()

    # ── Reads ────────────────────────────────────────────────────────────

    async def find_one(self, query: dict[str, Any]) -> dict[str, Any] | None:
        where, params = compile_filter(query)
        rows = await self.db.execute_fetchall(
            f"SELECT doc FROM {self.collection} WHERE {where} LIMIT 1", params
        )
        return decode(rows[0][0]) if rows else None

    async def find(
        self, query: dict[str, Any] | None = None, *, limit: int | None = None
    ) -> list[dict[str, Any]]:
        where, params = compile_filter(query)
        sql = f"SELECT doc FROM {self.collection} WHERE {where}"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        rows = await self.db.execute_fetchall(sql, params)
        return [decode(r[0]) for r in rows]

    async def count(self, query: dict[str, Any] | None = None) -> int:
        where, params = compile_filter(query)
        rows = await self.db.execute_fetchall(
            f"SELECT COUNT(*) FROM {self.collection} WHERE {where}", params
        )
        return rows[0][0] if rows else 0

    # ── Writes ───────────────────────────────────────────────────────────

    async def insert(self, document: dict[str, Any]) -> dict[str, Any]:
        """Insert a document, assigning an ``_id`` when it has none."""
        doc = dict(document)
        doc.setdefault("_id", uuid.uuid4().hex)
        async with self._write_lock:
            try:
                await self._insert(doc)
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise
        return doc

    async def update(
        self,
        query: dict[str, Any],
        document: dict[str, Any],
        *,
        multi: bool = False,
        upsert: bool = False,
    ) -> int:
        """Replace matching documents with ``document``.

        Matched documents keep their ``_id``. With ``multi=False`` at most one
        document is affected. With ``upsert=True`` and no match, ``document``
        is inserted. Returns the number of documents written.
        """
        where, params = compile_filter(query)
        sql = f"SELECT _id FROM {self.collection} WHERE {where}"
        if not multi:
            sql += " LIMIT 1"

        async with self._write_lock:
            try:
                rows = await self.db.execute_fetchall(sql, params)
                if rows:
                    for (doc_id,) in rows:
                        await self.db.execute(
                            f"UPDATE {self.collection} SET doc = ? WHERE _id = ?",
                            (encode({**document, "_id": doc_id}), doc_id),
                        )
                    written = len(rows)
                elif upsert:
                    doc = dict(document)
                    doc.setdefault("_id", uuid.uuid4().hex)
                    await self._insert(doc)
                    written = 1
                else:
                    written = 0
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise
        return written

    async def update_field(
        self, query: dict[str, Any], field: str, value: Any, *, multi: bool = False
    ) -> int:
        """Set one (possibly nested) field on matching documents in place.

        Runs as a single statement, so a concurrent write to the same
        document is never overwritten with stale content.
        """
        where, params = compile_filter(query)
        target = f"SELECT _id FROM {self.collection} WHERE {where}"
        if not multi:
            target += " LIMIT 1"
        sql = (
            f"UPDATE {self.collection} SET doc = json_set(doc, '{json_path(field)}', json(?)) "
            f"WHERE _id IN ({target})"
        )

        async with self._write_lock:
            try:
                async with self.db.execute(sql, [encode_value(value), *params]) as cursor:
                    written = cursor.rowcount
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise
        return written

    async def remove(self, query: dict[str, Any], *, multi: bool = False) -> int:
        """Delete matching documents. Returns the number removed."""
        where, params = compile_filter(query)
        if multi:
            sql = f"DELETE FROM {self.collection} WHERE {where}"
        else:
            sql = (
                f"DELETE FROM {self.collection} WHERE _id IN "
                f"(SELECT _id FROM {self.collection} WHERE {where} LIMIT 1)"
            )

        async with self._write_lock:
            try:
                async with self.db.execute(sql, params) as cursor:
                    removed = cursor.rowcount
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise
        return removed

    async def compact(self) -> None:
        """Reclaim space left by deleted and overwritten documents."""
        async with self._write_lock:
            await self.db.commit()
            await self.db.execute("VACUUM")
            if not self.in_memory:
                await self.db.execute_fetchall("PRAGMA wal_checkpoint(TRUNCATE)")
        logger.debug("Compacted %s", self.filename)

    async def _insert(self, doc: dict[str, Any]) -> None:
        await self.db.execute(
            f"INSERT INTO {self.collection} (_id, doc) VALUES (?, ?)",
            (str(doc["_id"]), encode(doc)),
        )

    async def __aenter__(self):
        await self.load()
        return self

    async def __aexit__(self, *exc):
        await self.close()
