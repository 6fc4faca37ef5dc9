# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Snapvault Archive Catalog - Listing and lookup of backup archives.

Archives are plain files in the backup directory named
<product>-backup-<YYYY-MM-DD_HHMMSS>[-<n>].tar.gz. Files being written
carry a hidden temporary name and never match the pattern, so listings
only ever see complete archives.
"""

import os
import re
from dataclasses import dataclass
from datetime import datetime, UTC
from pathlib import Path
from typing import List, Tuple

import structlog

from snapvault.config import BackupConfig
from snapvault.errors import explain_invalid_archive_name
from snapvault.exceptions import ArchiveNotFoundError, BackupError, InvalidArchiveError

logger = structlog.get_logger()

TIMESTAMP_FORMAT = "%Y-%m-%d_%H%M%S"
ARCHIVE_SUFFIX = ".tar.gz"


@dataclass
class BackupArchive:
    """One completed snapshot in the backup directory."""

    filename: str
    path: Path
    size: int
    created_time: datetime

    def to_dict(self) -> dict:
        return {
            "filename": self.filename,
            "path": str(self.path),
            "size": self.size,
            "created_time": self.created_time.isoformat(),
        }


def archive_pattern(prefix: str) -> re.Pattern:
    """Regex matching archive filenames for a given prefix."""
    return re.compile(
        rf"^{re.escape(prefix)}(?P<stamp>\d{{4}}-\d{{2}}-\d{{2}}_\d{{6}})"
        rf"(?:-(?P<seq>\d+))?{re.escape(ARCHIVE_SUFFIX)}$"
    )


def format_archive_name(prefix: str, timestamp: datetime, sequence: int = 1) -> str:
    """
    Build an archive filename.

    The first archive of a given second has no sequence suffix; later ones
    within the same second get -2, -3, ...
    """
    stamp = timestamp.strftime(TIMESTAMP_FORMAT)
    if sequence <= 1:
        return f"{prefix}{stamp}{ARCHIVE_SUFFIX}"
    return f"{prefix}{stamp}-{sequence}{ARCHIVE_SUFFIX}"


class ArchiveCatalog:
    """Read-side view of the backup directory."""

    def __init__(self, config: BackupConfig) -> None:
        self.config = config
        self.backup_dir = config.backup_path
        self._pattern = archive_pattern(config.archive_prefix)

    def matches(self, filename: str) -> bool:
        return self._pattern.match(filename) is not None

    def _name_key(self, filename: str) -> Tuple[str, int]:
        """(timestamp, sequence) embedded in a filename, for tie-breaking."""
        match = self._pattern.match(filename)
        if not match:
            return ("", 0)
        return (match.group("stamp"), int(match.group("seq") or 1))

    def _to_archive(self, path: Path, stat: os.stat_result) -> BackupArchive:
        return BackupArchive(
            filename=path.name,
            path=path.absolute(),
            size=stat.st_size,
            created_time=datetime.fromtimestamp(stat.st_mtime, UTC),
        )

    def list_archives(self) -> List[BackupArchive]:
        """
        List archives, newest first.

        Returns:
            Archives sorted by modification time descending, ties broken by
            the timestamp and sequence embedded in the filename

        Raises:
            BackupError: If the backup directory exists but cannot be read
        """
        if not self.backup_dir.exists():
            return []

        try:
            entries = list(os.scandir(self.backup_dir))
        except OSError as e:
            raise BackupError(
                f"Failed to read backup directory: {e}",
                details={"backup_dir": str(self.backup_dir)},
            ) from e

        archives: List[BackupArchive] = []
        for entry in entries:
            if not self.matches(entry.name):
                continue
            try:
                if not entry.is_file(follow_symlinks=False):
                    continue
                stat = entry.stat(follow_symlinks=False)
            except OSError as e:
                logger.warning("archive_stat_failed", filename=entry.name, error=str(e))
                continue
            archives.append(self._to_archive(Path(entry.path), stat))

        archives.sort(
            key=lambda a: (a.created_time, self._name_key(a.filename)),
            reverse=True,
        )

        logger.debug("archives_listed", count=len(archives), backup_dir=str(self.backup_dir))
        return archives

    def resolve(self, filename: str) -> BackupArchive:
        """
        Look up an archive by filename.

        Raises:
            InvalidArchiveError: If the name has directory components
            ArchiveNotFoundError: If no such archive is in the catalog
        """
        if (
            not filename
            or filename in (".", "..")
            or os.path.basename(filename) != filename
            or "\\" in filename
        ):
            raise InvalidArchiveError(
                explain_invalid_archive_name(filename, self.config.archive_prefix),
                details={"filename": filename},
            )

        # Names outside the naming convention are never catalog entries
        if not self.matches(filename):
            raise ArchiveNotFoundError(
                f"Backup file not found: {filename}",
                details={"filename": filename, "backup_dir": str(self.backup_dir)},
            )

        path = self.backup_dir / filename
        try:
            stat = path.stat()
        except FileNotFoundError:
            raise ArchiveNotFoundError(
                f"Backup file not found: {filename}",
                details={"filename": filename, "backup_dir": str(self.backup_dir)},
            )
        except OSError as e:
            raise BackupError(
                f"Failed to stat backup file: {e}",
                details={"filename": filename},
            ) from e

        if not path.is_file():
            raise ArchiveNotFoundError(
                f"Backup file not found: {filename}",
                details={"filename": filename, "backup_dir": str(self.backup_dir)},
            )

        return self._to_archive(path, stat)

    def exists(self, filename: str) -> bool:
        return (self.backup_dir / filename).exists()

    def delete_archive(self, filename: str) -> BackupArchive:
        """
        Delete an archive.

        Returns:
            The archive that was removed
        """
        archive = self.resolve(filename)
        try:
            archive.path.unlink()
        except FileNotFoundError:
            raise ArchiveNotFoundError(
                f"Backup file not found: {filename}",
                details={"filename": filename},
            )
        except OSError as e:
            raise BackupError(
                f"Failed to delete backup: {e}",
                details={"filename": filename},
            ) from e

        logger.info("archive_deleted", filename=filename, size=archive.size)
        return archive

    def get_stats(self) -> dict:
        """
        Get statistics about archive storage.

        Returns:
            Dict with archive count, total bytes and oldest/newest timestamps
        """
        archives = self.list_archives()

        stats = {
            "archive_count": len(archives),
            "total_bytes": sum(a.size for a in archives),
            "oldest_backup": None,
            "newest_backup": None,
            "backup_dir": str(self.backup_dir),
        }

        if archives:
            stats["newest_backup"] = archives[0].created_time.isoformat()
            stats["oldest_backup"] = archives[-1].created_time.isoformat()

        return stats
