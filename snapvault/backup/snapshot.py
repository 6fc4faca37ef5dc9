# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Snapvault Snapshot Builder - Consistent archives of the live data directory.

A snapshot is taken while the application keeps serving requests:

1. Best-effort WAL checkpoint through the database owner
2. Consistent copy of the database via the SQLite online backup API
3. gzip tar written under a hidden temporary name in the backup directory
4. Atomic rename into the catalog on success

Snapshots are serialized behind a lock shared with restore.
"""

import asyncio
import tempfile
from datetime import datetime
from pathlib import Path

import aiosqlite
import structlog

from snapvault.backup.archive import write_archive
from snapvault.backup.fileops import remove_file
from snapvault.catalog import ArchiveCatalog, BackupArchive, format_archive_name
from snapvault.config import BackupConfig
from snapvault.connection import ConnectionHandshake, DatabaseHandle
from snapvault.exceptions import BackupError, DatabaseNotFoundError, SnapVaultError

logger = structlog.get_logger()


class SnapshotBuilder:
    """Produces one archive per call; calls never overlap."""

    def __init__(
        self,
        config: BackupConfig,
        database: DatabaseHandle,
        handshake: ConnectionHandshake,
        catalog: ArchiveCatalog,
        lock: asyncio.Lock | None = None,
    ) -> None:
        self.config = config
        self.database = database
        self.handshake = handshake
        self.catalog = catalog
        self.lock = lock or asyncio.Lock()

    async def create_snapshot(self) -> BackupArchive:
        """
        Create a backup archive of the database and asset directories.

        Returns:
            The published archive

        Raises:
            DatabaseNotFoundError: If the live database file is missing
            BackupError: If copying or writing fails (nothing is published)
        """
        async with self.lock:
            try:
                async with asyncio.timeout(self.config.operation_timeout):
                    return await self._create_snapshot_locked()
            except TimeoutError as e:
                raise BackupError(
                    f"Snapshot timed out after {self.config.operation_timeout}s",
                    details={"timeout": self.config.operation_timeout},
                ) from e

    async def _create_snapshot_locked(self) -> BackupArchive:
        start_time = datetime.now()
        logger.info("snapshot_started", data_dir=str(self.config.data_dir))

        source = self._find_database_file()

        await self._checkpoint()

        try:
            self.config.backup_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BackupError(
                f"Failed to create backup directory: {e}",
                details={"backup_dir": str(self.config.backup_path)},
            ) from e

        with tempfile.TemporaryDirectory(prefix=f"{self.config.product_name}-snapshot-") as tmp:
            db_copy = Path(tmp) / "database.db"
            await self._copy_database(source, db_copy)

            filename = self._next_archive_name(start_time)
            final_path = self.config.backup_path / filename
            partial_path = self.config.backup_path / f".{filename}.partial"

            try:
                entries = await write_archive(
                    partial_path,
                    db_copy,
                    [(name, self.config.asset_path(name)) for name in self.config.asset_dirs],
                    self.config.compression_level,
                )
                partial_path.replace(final_path)
            except BaseException as e:
                await remove_file(partial_path)
                if isinstance(e, Exception) and not isinstance(e, SnapVaultError):
                    raise BackupError(
                        f"Failed to write backup archive: {e}",
                        details={"filename": filename},
                    ) from e
                raise

        archive = self.catalog.resolve(filename)
        duration = (datetime.now() - start_time).total_seconds()

        logger.info(
            "snapshot_created",
            filename=archive.filename,
            size=archive.size,
            entries=entries,
            duration=duration,
        )
        return archive

    def _find_database_file(self) -> Path:
        """The live database, falling back to legacy filenames."""
        primary = self.config.database_path
        if primary.is_file():
            return primary

        for legacy in self.config.legacy_database_filenames:
            candidate = (self.config.data_dir / legacy).absolute()
            if candidate.is_file():
                logger.warning(
                    "database_legacy_filename_used",
                    expected=str(primary),
                    found=str(candidate),
                )
                return candidate

        raise DatabaseNotFoundError(
            f"Database file not found: {primary}",
            details={"db_path": str(primary)},
        )

    async def _checkpoint(self) -> None:
        """Best-effort WAL checkpoint; never aborts the snapshot."""
        if not self.handshake.is_open:
            logger.warning(
                "snapshot_checkpoint_skipped",
                connection_status=self.handshake.status.value,
            )
            return

        try:
            await self.database.checkpoint()
        except Exception as e:
            logger.warning("snapshot_checkpoint_failed", error=str(e))

    async def _copy_database(self, source: Path, target: Path) -> None:
        """
        Copy the live database with the SQLite online backup API.

        The copy runs in a single step on a private connection, so it
        reflects one consistent state and holds no long-lived lock.
        """
        try:
            async with aiosqlite.connect(source) as src, aiosqlite.connect(target) as dst:
                await src.backup(dst)
        except Exception as e:
            raise BackupError(
                f"Failed to copy database for backup: {e}",
                details={"db_path": str(source)},
            ) from e

        if not target.is_file() or target.stat().st_size == 0:
            raise BackupError(
                "Database copy is empty",
                details={"db_path": str(source)},
            )

        logger.debug("database_copied", source=str(source), size=target.stat().st_size)

    def _next_archive_name(self, timestamp: datetime) -> str:
        """Timestamped name; same-second collisions get a numeric suffix."""
        sequence = 1
        while True:
            filename = format_archive_name(self.config.archive_prefix, timestamp, sequence)
            if not self.catalog.exists(filename):
                return filename
            sequence += 1
