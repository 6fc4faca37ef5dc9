# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Filesystem helpers shared by snapshot and restore.

File copies stream through aiofiles; whole-tree operations run in a
worker thread.
"""

import asyncio
import errno
import os
import shutil
from pathlib import Path

import aiofiles
import aiofiles.os
import structlog

logger = structlog.get_logger()

COPY_CHUNK_SIZE = 1024 * 1024


async def copy_file(src: Path, dst: Path, fsync: bool = True) -> int:
    """
    Copy src to dst, optionally flushing dst to disk.

    Returns:
        Number of bytes copied
    """
    copied = 0
    async with aiofiles.open(src, "rb") as fin, aiofiles.open(dst, "wb") as fout:
        while True:
            chunk = await fin.read(COPY_CHUNK_SIZE)
            if not chunk:
                break
            await fout.write(chunk)
            copied += len(chunk)
        await fout.flush()
        if fsync:
            await asyncio.to_thread(os.fsync, fout.fileno())
    return copied


async def copy_file_atomic(src: Path, dst: Path) -> int:
    """
    Copy src over dst so that dst is never left half-written.

    The data goes to a hidden sibling file, is flushed to disk and then
    renamed over dst. On failure the sibling is removed and dst keeps its
    previous contents.

    Returns:
        Number of bytes copied
    """
    staging = dst.with_name(f".{dst.name}.incoming")
    try:
        copied = await copy_file(src, staging, fsync=True)
        await aiofiles.os.replace(staging, dst)
    finally:
        await remove_file(staging)
    return copied


async def replace_file(src: Path, dst: Path) -> None:
    """
    Atomically move src over dst.

    Uses rename when both paths share a filesystem; otherwise falls back to
    copy_file_atomic.
    """
    try:
        await aiofiles.os.replace(src, dst)
        return
    except OSError as e:
        if e.errno != errno.EXDEV:
            raise

    logger.debug("replace_cross_device_fallback", src=str(src), dst=str(dst))
    await copy_file_atomic(src, dst)


async def remove_file(path: Path) -> bool:
    """Remove a file if present. Returns True if something was removed."""
    try:
        await aiofiles.os.remove(path)
        return True
    except FileNotFoundError:
        return False


async def remove_tree(path: Path) -> None:
    """Remove a directory tree if present."""
    if path.is_symlink() or path.is_file():
        await aiofiles.os.remove(path)
    elif path.exists():
        await asyncio.to_thread(shutil.rmtree, path)


async def move_tree(src: Path, dst: Path) -> None:
    """Move a directory tree into place (rename, or copy across devices)."""
    await asyncio.to_thread(shutil.move, str(src), str(dst))
