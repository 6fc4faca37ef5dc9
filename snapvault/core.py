# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Snapvault Core - The backup service facade.

BackupService wires the catalog, snapshot builder, restore coordinator and
scheduler around one engine-wide lock, and exposes the operations the
application calls: create, list, delete and restore backups.
"""

import asyncio
from typing import List

import structlog

from snapvault.backup.archive import inspect_archive
from snapvault.backup.restore import RestoreCoordinator, RestoreResult
from snapvault.backup.snapshot import SnapshotBuilder
from snapvault.catalog import ArchiveCatalog, BackupArchive
from snapvault.config import BackupConfig
from snapvault.connection import ConnectionHandshake, ConnectionStatus, DatabaseHandle
from snapvault.exceptions import BackupError, InvalidArchiveError, RestoreError
from snapvault.scheduler import BackupScheduler

logger = structlog.get_logger()


class BackupService:
    """
    Backup and restore for the application's data directory.

    Args:
        config: Backup configuration
        database: Owner of the live database connection
        handshake: Connection status shared with the owner (created if omitted)
        scheduler: Scheduler component (created if omitted)
    """

    def __init__(
        self,
        config: BackupConfig,
        database: DatabaseHandle,
        handshake: ConnectionHandshake | None = None,
        scheduler: BackupScheduler | None = None,
    ) -> None:
        try:
            config.backup_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BackupError(
                f"Failed to create backup directory: {e}",
                details={"backup_dir": str(config.backup_path)},
            ) from e

        self.config = config
        self.database = database
        self.handshake = handshake or ConnectionHandshake()

        # Serializes every snapshot and restore in the process
        self.lock = asyncio.Lock()

        self.catalog = ArchiveCatalog(config)
        self.snapshots = SnapshotBuilder(
            config, database, self.handshake, self.catalog, self.lock
        )
        self.restorer = RestoreCoordinator(
            config, database, self.handshake, self.catalog, self.lock
        )
        self.scheduler = scheduler or BackupScheduler(self.create_backup)

    async def create_backup(self) -> BackupArchive:
        """Create a backup archive now."""
        return await self.snapshots.create_snapshot()

    async def list_backups(self) -> List[BackupArchive]:
        """List backup archives, newest first."""
        return self.catalog.list_archives()

    async def delete_backup(self, filename: str) -> BackupArchive:
        """Delete a backup archive."""
        return self.catalog.delete_archive(filename)

    async def restore_backup(self, filename: str) -> RestoreResult:
        """
        Restore from an archive and reopen the database connection.

        Returns:
            RestoreResult; check result.ok, a PARTIAL result names the
            stage that failed

        Raises:
            ArchiveNotFoundError, InvalidArchiveError, RestoreError
        """
        result = await self.restorer.restore(filename)

        try:
            await self._reopen_database()
        except RestoreError as e:
            if result.ok:
                raise
            result.errors.append(str(e))

        return result

    async def _reopen_database(self) -> None:
        """Owner side of the handshake, run right after a restore."""
        status = self.handshake.status
        if status not in (ConnectionStatus.PENDING_REOPEN, ConnectionStatus.CLOSED):
            return

        logger.info("database_reopen_required", connection_status=status.value)
        try:
            await self.database.reopen()
        except Exception as e:
            logger.error("database_reopen_failed", error=str(e))
            raise RestoreError(
                f"Backup restored but failed to reopen database connection: {e}",
                details={"connection_status": status.value},
            ) from e

        self.handshake.mark_reopened()
        logger.info("database_reopened_after_restore")

    async def verify_backup(self, filename: str) -> dict:
        """
        Check an archive is readable and holds a non-empty database.db.

        Raises:
            ArchiveNotFoundError: If the archive is not in the catalog
            InvalidArchiveError: If the archive is corrupt or incomplete
        """
        archive = self.catalog.resolve(filename)
        info = await inspect_archive(archive.path)

        if not info["database_size"]:
            raise InvalidArchiveError(
                "Database file not found in backup",
                details={"archive": filename},
            )

        return {**archive.to_dict(), **info, "valid": True}

    async def get_backup_stats(self) -> dict:
        """Archive count, total bytes and oldest/newest timestamps."""
        return self.catalog.get_stats()

    def start_scheduler(self, cron_expression: str | None = None) -> None:
        """Start scheduled backups (defaults to config.schedule_cron)."""
        expression = cron_expression if cron_expression is not None else self.config.schedule_cron
        self.scheduler.start(expression)

    def stop_scheduler(self) -> None:
        self.scheduler.stop()

    async def shutdown(self) -> None:
        """Stop the scheduler and wait for any running snapshot or restore."""
        self.stop_scheduler()
        async with self.lock:
            logger.info("backup_service_shutdown_complete")
