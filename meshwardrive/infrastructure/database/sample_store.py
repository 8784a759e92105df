"""
Async Sample Store
==================

Persistence for wardriving samples using aiosqlite.

One store object owns one database file and one shared connection. The
connection is opened and migrated lazily on first use; every operation
observes a fully migrated schema.

Usage:
    store = AsyncSampleStore(data_dir)

    result = await store.insert_one(sample)
    batch = await store.insert_many(samples)
    recent = await store.get_since(since_ms)

    await store.close()
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite
from pydantic import ValidationError

from ...domain.models import BatchInsertResult, InsertResult, Sample, to_epoch_ms
from .errors import StorageIOError
from .migrations import get_user_version, migrate
from .schema import DATABASE_FILE_NAME, INSERT_SAMPLE_SQL, SAMPLES_TABLE, SCHEMA_VERSION

logger = logging.getLogger(__name__)


def default_data_dir() -> Path:
    """Application-private data directory for the sample database."""
    env = os.environ.get("MESHWARDRIVE_DATA_DIR")
    if env:
        return Path(env).expanduser()
    xdg = os.environ.get("XDG_DATA_HOME")
    if xdg:
        return Path(xdg).expanduser() / "meshwardrive"
    return Path.home() / ".local" / "share" / "meshwardrive"


class AsyncSampleStore:
    """
    Async store for wardriving samples.

    Safe to share between coroutines of one event loop: open/migrate runs
    once, and operations are serialized on the shared connection so readers
    never see a half-applied batch.
    """

    def __init__(
        self,
        data_dir: str | Path | None = None,
        file_name: str = DATABASE_FILE_NAME,
        timeout: float = 30.0,
    ) -> None:
        base = Path(data_dir).expanduser() if data_dir is not None else default_data_dir()
        self.db_path = base / file_name
        self.timeout = timeout
        self._connection: aiosqlite.Connection | None = None
        self._init_lock = asyncio.Lock()
        self._op_lock = asyncio.Lock()

    async def __aenter__(self) -> AsyncSampleStore:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def open(self) -> aiosqlite.Connection:
        """Open (creating or migrating as needed) and return the shared connection."""
        if self._connection is not None:
            return self._connection
        async with self._init_lock:
            if self._connection is None:
                self._connection = await self._open_and_migrate()
        return self._connection

    async def _open_and_migrate(self) -> aiosqlite.Connection:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = await aiosqlite.connect(
                str(self.db_path), timeout=self.timeout, isolation_level=None
            )
        except (OSError, aiosqlite.Error) as exc:
            raise StorageIOError(f"cannot open {self.db_path}: {exc}") from exc

        try:
            conn.row_factory = aiosqlite.Row
            # Version check runs before anything writes to the file
            old, new = await migrate(conn)
            await conn.execute("PRAGMA journal_mode=WAL")
        except aiosqlite.Error as exc:
            await conn.close()
            raise StorageIOError(f"cannot initialize {self.db_path}: {exc}") from exc
        except BaseException:
            await conn.close()
            raise

        if old == new:
            logger.info("Sample store opened: %s (schema v%d)", self.db_path, new)
        else:
            logger.info("Sample store opened: %s (schema v%d -> v%d)", self.db_path, old, new)
        return conn

    async def close(self) -> None:
        """Close the shared connection. The next operation reopens it."""
        # Lock order is always op -> init
        async with self._op_lock, self._init_lock:
            if self._connection is None:
                return
            conn, self._connection = self._connection, None
            await conn.close()
        logger.debug("Sample store closed: %s", self.db_path)

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[aiosqlite.Connection]:
        """Serialized access to the open connection with error translation."""
        async with self._op_lock:
            conn = await self.open()
            try:
                yield conn
            except aiosqlite.Error as exc:
                raise StorageIOError(str(exc)) from exc

    async def schema_version(self) -> int:
        async with self._session() as conn:
            return await get_user_version(conn)

    # =========================================================================
    # Writes
    # =========================================================================

    async def insert_one(self, sample: Sample) -> InsertResult:
        """Insert a sample. An existing row with the same id wins."""
        async with self._session() as conn:
            cursor = await conn.execute(INSERT_SAMPLE_SQL, sample.to_row())
            if cursor.rowcount == 1:
                return InsertResult.INSERTED
            logger.debug("Duplicate sample ignored: %s", sample.id)
            return InsertResult.IGNORED_DUPLICATE

    async def insert_many(self, samples: Iterable[Sample]) -> BatchInsertResult:
        """
        Insert samples as one transaction with ignore-on-conflict semantics.

        Either every non-conflicting row is committed or, on a storage error,
        none are.
        """
        rows = [sample.to_row() for sample in samples]
        if not rows:
            return BatchInsertResult()

        start = time.monotonic()
        async with self._session() as conn:
            await conn.execute("BEGIN")
            try:
                cursor = await conn.executemany(INSERT_SAMPLE_SQL, rows)
                inserted = max(cursor.rowcount, 0)
                await conn.commit()
            except BaseException:
                if conn.in_transaction:
                    await conn.rollback()
                logger.warning("Batch of %d samples rolled back", len(rows))
                raise

        result = BatchInsertResult(inserted=inserted, ignored=len(rows) - inserted)
        logger.debug(
            "Batch insert: %d inserted, %d ignored in %.3fs",
            result.inserted,
            result.ignored,
            time.monotonic() - start,
        )
        return result

    # =========================================================================
    # Reads
    # =========================================================================

    async def _query(self, where: str = "", params: tuple = (), limit: int | None = None) -> list[Sample]:
        sql = f"SELECT * FROM {SAMPLES_TABLE}"
        if where:
            sql += f" WHERE {where}"
        sql += " ORDER BY timestamp DESC"
        if limit is not None:
            sql += f" LIMIT {int(limit)}"
        async with self._session() as conn:
            cursor = await conn.execute(sql, params)
            rows = await cursor.fetchall()
        try:
            return [Sample.from_row(row) for row in rows]
        except ValidationError as exc:
            raise StorageIOError(f"invalid sample row in {self.db_path}: {exc}") from exc

    async def get_all(self) -> list[Sample]:
        """All samples, most recent first."""
        return await self._query()

    async def get_by_time_range(self, start: int | datetime, end: int | datetime) -> list[Sample]:
        """Samples with ``start <= timestamp <= end``, most recent first."""
        return await self._query(
            "timestamp >= ? AND timestamp <= ?",
            (to_epoch_ms(start), to_epoch_ms(end)),
        )

    async def get_since(self, since: int | datetime) -> list[Sample]:
        """Samples strictly newer than ``since``, most recent first."""
        return await self._query("timestamp > ?", (to_epoch_ms(since),))

    async def get_most_recent(self) -> Sample | None:
        samples = await self._query(limit=1)
        return samples[0] if samples else None

    async def count(self) -> int:
        async with self._session() as conn:
            cursor = await conn.execute(f"SELECT COUNT(*) FROM {SAMPLES_TABLE}")
            row = await cursor.fetchone()
            return int(row[0]) if row else 0

    # =========================================================================
    # Deletes
    # =========================================================================

    async def delete_all(self) -> int:
        """Remove every sample. Returns the number of rows deleted."""
        async with self._session() as conn:
            cursor = await conn.execute(f"DELETE FROM {SAMPLES_TABLE}")
            deleted = cursor.rowcount
        logger.info("Deleted all samples (%d rows)", deleted)
        return deleted

    async def delete_older_than(self, cutoff: int | datetime) -> int:
        """Remove samples with ``timestamp < cutoff``. Returns rows deleted."""
        cutoff_ms = to_epoch_ms(cutoff)
        async with self._session() as conn:
            cursor = await conn.execute(
                f"DELETE FROM {SAMPLES_TABLE} WHERE timestamp < ?",
                (cutoff_ms,),
            )
            deleted = cursor.rowcount
        logger.info("Deleted %d samples older than %d", deleted, cutoff_ms)
        return deleted

    # =========================================================================
    # Export
    # =========================================================================

    async def export_all(self) -> list[dict[str, Any]]:
        """Every sample in ``get_all`` order, as export dicts."""
        return [sample.to_export() for sample in await self.get_all()]


__all__ = ["AsyncSampleStore", "SCHEMA_VERSION", "default_data_dir"]
