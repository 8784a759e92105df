"""
Schema Migrations
=================

Versioned, additive upgrade steps for the samples table.

The applied version lives in the database file itself (``PRAGMA user_version``),
so a crash between steps resumes from the last committed step on next open.

Usage:
    old, new = await migrate(conn)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .errors import SchemaTooNewError
from .schema import CREATE_STATEMENTS, SAMPLES_TABLE, SCHEMA_VERSION

if TYPE_CHECKING:
    import aiosqlite

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MigrationStep:
    """Upgrade from ``version - 1`` to ``version`` by adding nullable columns."""

    version: int
    name: str
    columns: tuple[tuple[str, str], ...]

    async def apply(self, conn: aiosqlite.Connection) -> None:
        existing = await table_columns(conn, SAMPLES_TABLE)
        for column, sql_type in self.columns:
            if column in existing:
                continue
            await conn.execute(f"ALTER TABLE {SAMPLES_TABLE} ADD COLUMN {column} {sql_type}")


MIGRATIONS: tuple[MigrationStep, ...] = (
    MigrationStep(
        version=2,
        name="ping_metrics",
        columns=(("rssi", "INTEGER"), ("snr", "INTEGER"), ("pingSuccess", "INTEGER")),
    ),
    MigrationStep(
        version=3,
        name="observer_names",
        columns=(("observerNames", "TEXT"),),
    ),
)


async def get_user_version(conn: aiosqlite.Connection) -> int:
    cursor = await conn.execute("PRAGMA user_version")
    row = await cursor.fetchone()
    return int(row[0]) if row else 0


async def _set_user_version(conn: aiosqlite.Connection, version: int) -> None:
    # PRAGMA does not accept bound parameters
    await conn.execute(f"PRAGMA user_version = {int(version)}")


async def table_columns(conn: aiosqlite.Connection, table: str) -> list[str]:
    cursor = await conn.execute(f"PRAGMA table_info({table})")
    rows = await cursor.fetchall()
    return [row[1] for row in rows]


async def _table_exists(conn: aiosqlite.Connection, table: str) -> bool:
    cursor = await conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
        (table,),
    )
    return await cursor.fetchone() is not None


async def _run_in_transaction(conn: aiosqlite.Connection, steps, version: int) -> None:
    await conn.execute("BEGIN IMMEDIATE")
    try:
        for step in steps:
            await step(conn)
        await _set_user_version(conn, version)
        await conn.commit()
    except BaseException:
        if conn.in_transaction:
            await conn.rollback()
        raise


async def _create_fresh(conn: aiosqlite.Connection) -> None:
    for statement in CREATE_STATEMENTS:
        await conn.execute(statement)


async def migrate(
    conn: aiosqlite.Connection,
    target: int = SCHEMA_VERSION,
    steps: tuple[MigrationStep, ...] = MIGRATIONS,
) -> tuple[int, int]:
    """
    Bring the database behind ``conn`` to ``target``.

    The connection must be in autocommit mode (``isolation_level=None``);
    every step runs inside its own explicit transaction.

    Returns:
        ``(old_version, new_version)``. ``old_version`` is 0 for a new file.

    Raises:
        SchemaTooNewError: the file was written by a newer release.
    """
    current = await get_user_version(conn)

    if current > target:
        logger.error("Schema version %d is newer than supported %d", current, target)
        raise SchemaTooNewError(current, target)

    if current == 0:
        if not await _table_exists(conn, SAMPLES_TABLE):
            await _run_in_transaction(conn, (_create_fresh,), target)
            logger.info("Created samples schema at version %d", target)
            return 0, target
        # Unversioned file from before version tracking existed
        current = 1

    old = current
    for step in steps:
        if step.version <= current or step.version > target:
            continue
        await _run_in_transaction(conn, (step.apply,), step.version)
        current = step.version
        logger.info("Applied migration %d (%s)", step.version, step.name)

    if old != current:
        logger.info("Migrated samples schema %d -> %d", old, current)
    return old, current
