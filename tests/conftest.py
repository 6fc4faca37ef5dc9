# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Test fixtures for snapvault tests.

Provides a seeded data directory, a live SQLite database, configuration
and the backup service.
"""

import hashlib
import os
import tempfile
from pathlib import Path
from typing import Generator

import aiosqlite
import pytest
import pytest_asyncio

# Set test environment variables
os.environ["SNAPVAULT_ADMIN_API_KEY"] = "test-api-key-12345"

AUTH_HEADERS = {"Authorization": "Bearer test-api-key-12345"}

SEED_INVOICES = [
    ("Acme Corp", 12500),
    ("Globex", 990),
    ("Initech", 45000),
]


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def data_dir(temp_dir: Path) -> Path:
    """Data directory with images/ and pdfs/ asset trees."""
    root = temp_dir / "data"
    (root / "images" / "logos").mkdir(parents=True)
    (root / "pdfs").mkdir(parents=True)

    (root / "images" / "header.png").write_bytes(b"\x89PNG header image")
    (root / "images" / "logos" / "acme.png").write_bytes(b"\x89PNG acme logo")
    (root / "pdfs" / "invoice-0001.pdf").write_bytes(b"%PDF-1.7 invoice 1")
    (root / "pdfs" / "invoice-0002.pdf").write_bytes(b"%PDF-1.7 invoice 2")
    return root


@pytest.fixture
def test_config(data_dir: Path):
    """Create a test configuration."""
    from snapvault.builder import create_config

    return create_config(data_dir)


@pytest_asyncio.fixture
async def database(test_config):
    """Open live database with a seeded invoices table."""
    from snapvault.database import SQLiteDatabase

    db = SQLiteDatabase(test_config.database_path)
    await db.open()
    await db.connection.execute(
        "CREATE TABLE invoices (id INTEGER PRIMARY KEY, customer TEXT, amount_cents INTEGER)"
    )
    await db.connection.executemany(
        "INSERT INTO invoices (customer, amount_cents) VALUES (?, ?)",
        SEED_INVOICES,
    )
    await db.connection.commit()

    yield db

    await db.close()


@pytest_asyncio.fixture
async def service(test_config, database):
    """Backup service around the live database."""
    from snapvault.core import BackupService

    svc = BackupService(test_config, database)
    yield svc
    await svc.shutdown()


class RecordingDatabase:
    """DatabaseHandle stand-in that records calls."""

    def __init__(self, fail_checkpoint: bool = False, fail_reopen: bool = False):
        self.calls = []
        self.fail_checkpoint = fail_checkpoint
        self.fail_reopen = fail_reopen

    async def checkpoint(self) -> None:
        self.calls.append("checkpoint")
        if self.fail_checkpoint:
            raise RuntimeError("database is locked")

    async def close(self) -> None:
        self.calls.append("close")

    async def reopen(self) -> None:
        self.calls.append("reopen")
        if self.fail_reopen:
            raise RuntimeError("unable to open database file")


async def count_invoices(db_path: Path) -> int:
    """Row count of the invoices table in a database file."""
    async with aiosqlite.connect(db_path) as conn:
        async with conn.execute("SELECT COUNT(*) FROM invoices") as cursor:
            row = await cursor.fetchone()
    return row[0]


def file_digest(path: Path) -> str:
    return hashlib.sha256(path.read_bytes()).hexdigest()


def tree_snapshot(root: Path) -> dict:
    """Relative path -> content for every regular file under root."""
    return {
        p.relative_to(root).as_posix(): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


def seed_bulk_assets(data_dir: Path, dirs: int = 20, files_per_dir: int = 20, size: int = 64 * 1024) -> None:
    """Fill images/ with enough incompressible data that archiving takes a while."""
    for d in range(dirs):
        folder = data_dir / "images" / f"d{d:02d}"
        folder.mkdir(parents=True, exist_ok=True)
        for f in range(files_per_dir):
            (folder / f"scan-{f:03d}.png").write_bytes(os.urandom(size))
