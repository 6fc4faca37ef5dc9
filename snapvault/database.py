# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Snapvault SQLite Database - Reference owner of the live connection.

The invoicing application owns a single aiosqlite connection to
<data_dir>/database.db. This class implements the DatabaseHandle contract
the backup subsystem relies on: checkpoint, close and reopen.
"""

from pathlib import Path

import aiosqlite
import structlog

from snapvault.exceptions import IOFailureError

logger = structlog.get_logger()


class SQLiteDatabase:
    """
    Owner of the application's live SQLite connection.

    The connection runs in WAL mode so snapshots can be taken while
    requests keep reading and writing.
    """

    def __init__(self, db_path: Path, timeout: float = 5.0) -> None:
        self.db_path = Path(db_path)
        self.timeout = timeout
        self._conn: aiosqlite.Connection | None = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    @property
    def connection(self) -> aiosqlite.Connection:
        """The live connection; raises if closed."""
        if self._conn is None:
            raise IOFailureError(
                "Database connection is closed",
                details={"db_path": str(self.db_path)},
            )
        return self._conn

    async def open(self) -> None:
        """Open the connection (idempotent)."""
        if self._conn is not None:
            return

        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = await aiosqlite.connect(self.db_path, timeout=self.timeout)
            await conn.execute("PRAGMA journal_mode=WAL")
            await conn.execute("PRAGMA foreign_keys=ON")
            await conn.commit()
        except Exception as e:
            raise IOFailureError(
                f"Failed to open database: {e}",
                details={"db_path": str(self.db_path)},
            ) from e

        self._conn = conn
        logger.info("database_opened", db_path=str(self.db_path))

    async def checkpoint(self) -> None:
        """Flush the WAL into the main database file and truncate it."""
        async with self.connection.execute("PRAGMA wal_checkpoint(TRUNCATE)") as cursor:
            row = await cursor.fetchone()

        # (busy, log_frames, checkpointed_frames)
        if row and row[0]:
            logger.warning(
                "database_checkpoint_busy",
                db_path=str(self.db_path),
                log_frames=row[1],
                checkpointed=row[2],
            )
        else:
            logger.debug("database_checkpointed", db_path=str(self.db_path))

    async def close(self) -> None:
        """Optimize and close the connection (idempotent)."""
        if self._conn is None:
            return

        logger.info("database_closing", db_path=str(self.db_path))

        try:
            await self._conn.execute("PRAGMA optimize")
        except Exception as e:
            logger.warning("database_optimize_failed", error=str(e))

        conn, self._conn = self._conn, None
        try:
            await conn.close()
        except Exception as e:
            raise IOFailureError(
                f"Failed to close database: {e}",
                details={"db_path": str(self.db_path)},
            ) from e

    async def reopen(self) -> None:
        """Close (if needed) and open a fresh connection."""
        await self.close()
        await self.open()
        logger.info("database_reopened", db_path=str(self.db_path))

    async def __aenter__(self) -> "SQLiteDatabase":
        await self.open()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
