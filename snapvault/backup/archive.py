# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Snapvault Archive Format - gzip tar writing, inspection and extraction.

Archive layout:
    database.db            consistent copy of the live database
    images/<relative>      optional asset tree
    pdfs/<relative>        optional asset tree

tarfile work is blocking, so the async wrappers run it in a worker thread.
When the awaiting task is cancelled (for example by a timeout) the worker
is asked to stop between entries and awaited, so no file is written after
the caller regains control.
"""

import asyncio
import gzip
import os
import tarfile
import threading
import zlib
from pathlib import Path, PurePosixPath
from typing import Any, Callable, List, Sequence, Tuple

import structlog

from snapvault.exceptions import InvalidArchiveError, OperationCancelledError, RestoreError

logger = structlog.get_logger()

DATABASE_ENTRY = "database.db"

# Errors raised by tarfile/gzip on corrupt or non-gzip input
_CORRUPT_ARCHIVE_ERRORS = (tarfile.TarError, EOFError, gzip.BadGzipFile, zlib.error)


def _check_cancelled(cancel: threading.Event | None, archive_path: Path) -> None:
    if cancel is not None and cancel.is_set():
        raise OperationCancelledError(
            "Archive operation cancelled",
            details={"archive": str(archive_path)},
        )


def _iter_asset_files(root: Path) -> List[Tuple[Path, str]]:
    """
    Regular files under root with their posix relative paths, in a stable
    order. Symlinks and special files are skipped.
    """
    files: List[Tuple[Path, str]] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for name in sorted(filenames):
            path = Path(dirpath) / name
            if path.is_symlink() or not path.is_file():
                continue
            rel = path.relative_to(root).as_posix()
            files.append((path, rel))
    return files


def write_archive_sync(
    target: Path,
    database_copy: Path,
    asset_dirs: Sequence[Tuple[str, Path]],
    compression_level: int = 6,
    cancel: threading.Event | None = None,
) -> int:
    """
    Write a backup archive.

    Entries are written in fixed order: database.db, then each asset
    directory that exists. Missing asset directories are skipped.

    Args:
        target: Archive file to create
        database_copy: Snapshot of the database to store as database.db
        asset_dirs: (archive name, live directory) pairs
        compression_level: gzip level 1-9
        cancel: Checked between entries; when set the write stops with
            OperationCancelledError and the target is left incomplete

    Returns:
        Number of file entries written
    """
    count = 0
    with tarfile.open(target, "w:gz", compresslevel=compression_level) as tar:
        _check_cancelled(cancel, target)
        tar.add(database_copy, arcname=DATABASE_ENTRY, recursive=False)
        count += 1

        for name, root in asset_dirs:
            if not root.is_dir():
                logger.debug("asset_dir_skipped", asset=name, path=str(root))
                continue

            files = _iter_asset_files(root)
            for path, rel in files:
                _check_cancelled(cancel, target)
                tar.add(path, arcname=f"{name}/{rel}", recursive=False)
            count += len(files)

            logger.debug("asset_dir_archived", asset=name, files=len(files))

    return count


def _normalize_member_name(name: str) -> str:
    while name.startswith("./"):
        name = name[2:]
    return name.rstrip("/")


def _is_safe_member(name: str) -> bool:
    """Reject absolute paths and parent traversal."""
    if not name or name.startswith("/") or "\\" in name:
        return False
    return ".." not in PurePosixPath(name).parts


def inspect_archive_sync(archive_path: Path) -> dict:
    """
    Read an archive's table of contents without extracting.

    Returns:
        Dict with entry names, total file bytes and database.db size

    Raises:
        InvalidArchiveError: If the archive is corrupt or unsafe
    """
    entries: List[str] = []
    total_bytes = 0
    database_size: int | None = None

    try:
        with tarfile.open(archive_path, "r:gz") as tar:
            for member in tar:
                name = _normalize_member_name(member.name)
                if not _is_safe_member(name):
                    raise InvalidArchiveError(
                        f"Unsafe path in archive: {member.name}",
                        details={"archive": str(archive_path)},
                    )
                if not member.isreg():
                    continue
                entries.append(name)
                total_bytes += member.size
                if name == DATABASE_ENTRY:
                    database_size = member.size
    except _CORRUPT_ARCHIVE_ERRORS as e:
        raise InvalidArchiveError(
            f"Corrupt backup archive: {e}",
            details={"archive": str(archive_path)},
        ) from e

    return {
        "entries": entries,
        "file_count": len(entries),
        "total_bytes": total_bytes,
        "database_size": database_size,
    }


def extract_archive_sync(
    archive_path: Path,
    destination: Path,
    cancel: threading.Event | None = None,
) -> List[str]:
    """
    Extract an archive into destination.

    Only regular files and directories are extracted; every member is
    checked for path traversal before anything is written.

    Returns:
        Names of the extracted regular files

    Raises:
        InvalidArchiveError: If the archive is corrupt or unsafe
        RestoreError: If writing the extracted files fails
        OperationCancelledError: If cancel was set before extraction finished
    """
    destination.mkdir(parents=True, exist_ok=True)

    try:
        with tarfile.open(archive_path, "r:gz") as tar:
            members = []
            names: List[str] = []
            for member in tar.getmembers():
                name = _normalize_member_name(member.name)
                if not _is_safe_member(name):
                    raise InvalidArchiveError(
                        f"Unsafe path in archive: {member.name}",
                        details={"archive": str(archive_path)},
                    )
                if member.isreg():
                    names.append(name)
                    members.append(member)
                elif member.isdir():
                    members.append(member)
                else:
                    logger.debug("archive_member_skipped", name=member.name, type=member.type)

            for member in members:
                _check_cancelled(cancel, archive_path)
                tar.extract(member, destination, filter="data")

    except (InvalidArchiveError, OperationCancelledError):
        raise
    except _CORRUPT_ARCHIVE_ERRORS as e:
        raise InvalidArchiveError(
            f"Corrupt backup archive: {e}",
            details={"archive": str(archive_path)},
        ) from e
    except OSError as e:
        raise RestoreError(
            f"Failed to extract backup archive: {e}",
            details={"archive": str(archive_path), "destination": str(destination)},
        ) from e

    return names


async def _run_cancellable(func: Callable[..., Any], *args: Any) -> Any:
    """
    Run a blocking archive function in a worker thread.

    If the awaiting task is cancelled, the worker is told to stop and is
    awaited before the cancellation propagates.
    """
    cancel = threading.Event()
    worker = asyncio.ensure_future(asyncio.to_thread(func, *args, cancel=cancel))

    try:
        return await asyncio.shield(worker)
    except asyncio.CancelledError:
        cancel.set()
        try:
            await worker
        except OperationCancelledError:
            logger.debug("archive_worker_stopped", operation=func.__name__)
        except Exception as e:
            logger.warning(
                "archive_worker_failed_after_cancel",
                operation=func.__name__,
                error=str(e),
            )
        raise


async def write_archive(
    target: Path,
    database_copy: Path,
    asset_dirs: Sequence[Tuple[str, Path]],
    compression_level: int = 6,
) -> int:
    return await _run_cancellable(
        write_archive_sync, target, database_copy, asset_dirs, compression_level
    )


async def inspect_archive(archive_path: Path) -> dict:
    return await asyncio.to_thread(inspect_archive_sync, archive_path)


async def extract_archive(archive_path: Path, destination: Path) -> List[str]:
    return await _run_cancellable(extract_archive_sync, archive_path, destination)
