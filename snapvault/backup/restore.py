# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Snapvault Restore Coordinator - Swap live data for an archived snapshot.

The restore is split at a point of no return:

- Before it (resolve, extract, validate, close connection) any failure
  raises and live data is untouched.
- After it (safety copy, database swap, asset swap) failures are logged
  and reported as a PARTIAL RestoreResult naming the stage that failed.
  The pre-restore safety copy is the recovery path.

The coordinator never reopens the database; it flags the handshake and
leaves reopening to the connection owner.
"""

import asyncio
import shutil
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum
from pathlib import Path
from typing import List

import structlog

from snapvault.backup.archive import DATABASE_ENTRY, extract_archive
from snapvault.backup.fileops import (
    copy_file_atomic,
    move_tree,
    remove_file,
    remove_tree,
    replace_file,
)
from snapvault.catalog import ArchiveCatalog, BackupArchive
from snapvault.config import BackupConfig
from snapvault.connection import ConnectionHandshake, DatabaseHandle
from snapvault.exceptions import InvalidArchiveError, RestoreError

logger = structlog.get_logger()

STAGE_DATABASE = "database"


class RestoreStatus(str, Enum):
    """Outcome of a restore that got past the point of no return."""

    SUCCESS = "success"
    PARTIAL = "partial"


@dataclass
class RestoreResult:
    """Result of a restore operation."""

    restore_id: str  # ULID
    archive: str
    status: RestoreStatus
    stage: str | None = None  # "database" or "assets:<name>" when PARTIAL
    restored_assets: List[str] = field(default_factory=list)
    safety_copy_path: str | None = None
    errors: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status is RestoreStatus.SUCCESS


class RestoreCoordinator:
    """Restores the live data directory from a catalog archive."""

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

    async def restore(self, filename: str) -> RestoreResult:
        """
        Restore the database and asset directories from an archive.

        Args:
            filename: Archive filename in the catalog

        Returns:
            RestoreResult with status SUCCESS or PARTIAL

        Raises:
            ArchiveNotFoundError: If the archive is not in the catalog
            InvalidArchiveError: If the archive is corrupt or lacks database.db
            RestoreError: If staging, extraction or closing the connection fails
        """
        from ulid import ULID

        restore_id = str(ULID())

        async with self.lock:
            staging = self._create_staging_dir(filename)
            try:
                return await self._restore_locked(restore_id, filename, staging)
            finally:
                await asyncio.to_thread(shutil.rmtree, staging, True)

    def _create_staging_dir(self, filename: str) -> Path:
        """Staging lives in the data root so renames stay on one filesystem."""
        try:
            self.config.data_dir.mkdir(parents=True, exist_ok=True)
            return Path(tempfile.mkdtemp(prefix=".restore-", dir=self.config.data_dir))
        except OSError as e:
            raise RestoreError(
                f"Failed to create restore staging directory: {e}",
                details={"archive": filename, "data_dir": str(self.config.data_dir)},
            ) from e

    async def _restore_locked(
        self,
        restore_id: str,
        filename: str,
        staging: Path,
    ) -> RestoreResult:
        start_time = datetime.now(UTC)

        logger.info("restore_started", restore_id=restore_id, archive=filename)

        if self.handshake.needs_reopen:
            raise RestoreError(
                "Previous restore has not been acknowledged; reopen the database first",
                details={"archive": filename, "connection_status": self.handshake.status.value},
            )

        try:
            async with asyncio.timeout(self.config.operation_timeout):
                archive = self.catalog.resolve(filename)
                present_assets = await self._extract_and_validate(archive, staging)
        except TimeoutError as e:
            raise RestoreError(
                f"Restore timed out after {self.config.operation_timeout}s",
                details={"archive": filename, "timeout": self.config.operation_timeout},
            ) from e

        await self._release_connection(filename)

        # Point of no return: live files are about to change
        result = RestoreResult(
            restore_id=restore_id,
            archive=archive.filename,
            status=RestoreStatus.SUCCESS,
        )
        result.safety_copy_path = await self._write_safety_copy()

        stage = STAGE_DATABASE
        try:
            await self._replace_database(staging / DATABASE_ENTRY)

            for name in present_assets:
                stage = f"assets:{name}"
                await self._replace_asset_dir(name, staging / name)
                result.restored_assets.append(name)

        except Exception as e:
            result.status = RestoreStatus.PARTIAL
            result.stage = stage
            result.errors.append(f"{stage}: {e}")
            result.duration_seconds = (datetime.now(UTC) - start_time).total_seconds()

            logger.error(
                "restore_partial",
                restore_id=restore_id,
                archive=filename,
                stage=stage,
                error=str(e),
                safety_copy=result.safety_copy_path,
            )
            return result

        self.handshake.request_reopen()
        result.duration_seconds = (datetime.now(UTC) - start_time).total_seconds()

        logger.info(
            "restore_completed",
            restore_id=restore_id,
            archive=filename,
            assets=result.restored_assets,
            duration=result.duration_seconds,
        )
        return result

    async def _extract_and_validate(self, archive: BackupArchive, staging: Path) -> List[str]:
        """
        Extract the archive into staging and check its payload.

        Returns:
            Asset directory names present in the archive, in config order
        """
        names = await extract_archive(archive.path, staging)

        extracted_db = staging / DATABASE_ENTRY
        if not extracted_db.is_file() or extracted_db.stat().st_size == 0:
            raise InvalidArchiveError(
                "Database file not found in backup",
                details={"archive": archive.filename, "entries": len(names)},
            )

        present = [name for name in self.config.asset_dirs if (staging / name).is_dir()]

        logger.debug(
            "archive_extracted",
            archive=archive.filename,
            entries=len(names),
            assets=present,
        )
        return present

    async def _release_connection(self, filename: str) -> None:
        """Ask the owner to close its connection before any live file changes."""
        # Fold the WAL into the main file so the safety copy holds every commit
        if self.handshake.is_open:
            try:
                await self.database.checkpoint()
            except Exception as e:
                logger.warning("pre_restore_checkpoint_failed", error=str(e))

        try:
            await self.database.close()
        except Exception as e:
            raise RestoreError(
                f"Failed to close database connection: {e}",
                details={"archive": filename},
            ) from e

        # Already CLOSED when an earlier partial restore was never reopened
        if self.handshake.is_open:
            self.handshake.mark_closed()

    async def _write_safety_copy(self) -> str | None:
        """
        Best-effort copy of the live database; failure never aborts.

        A failed copy leaves any earlier safety copy in place.
        """
        live = self.config.database_path
        target = self.config.pre_restore_path

        if not live.is_file():
            logger.warning("pre_restore_backup_skipped", reason="no_live_database")
            return None

        try:
            size = await copy_file_atomic(live, target)
        except Exception as e:
            logger.warning("pre_restore_backup_failed", path=str(target), error=str(e))
            return None

        logger.info("pre_restore_backup_created", path=str(target), size=size)
        return str(target)

    async def _replace_database(self, extracted: Path) -> None:
        live = self.config.database_path

        # WAL/SHM files of the old database must not be applied to the new one
        for suffix in ("-wal", "-shm", "-journal"):
            sidecar = live.with_name(live.name + suffix)
            if await remove_file(sidecar):
                logger.debug("database_sidecar_removed", path=str(sidecar))

        await replace_file(extracted, live)
        logger.info("database_file_replaced", path=str(live))

    async def _replace_asset_dir(self, name: str, extracted: Path) -> None:
        live = self.config.asset_path(name)
        await remove_tree(live)
        await move_tree(extracted, live)
        logger.info("asset_dir_replaced", asset=name, path=str(live))
