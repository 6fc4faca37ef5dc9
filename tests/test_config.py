# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Configuration Tests for snapvault.

Covers BackupConfig validation, the functional builder, environment
loading and the connection handshake state machine.
"""

from pathlib import Path

import pytest

from snapvault.builder import (
    backup_on_schedule,
    build_config,
    create_config,
    create_empty_config,
    disable_schedule,
    pipe,
    with_asset_dirs,
    with_compression_level,
    with_data_dir,
    with_database_filename,
    with_product_name,
)
from snapvault.config import BackupConfig
from snapvault.connection import ConnectionHandshake, ConnectionStatus
from snapvault.env import create_config_from_env
from snapvault.exceptions import ConfigurationError, HandshakeError


# ============================================================================
# BackupConfig
# ============================================================================

def test_default_layout(temp_dir: Path):
    config = BackupConfig(data_dir=temp_dir)

    assert config.database_path == temp_dir / "database.db"
    assert config.backup_path == temp_dir / "backups"
    assert config.pre_restore_path == temp_dir / "pre-restore-backup.db"
    assert config.archive_prefix == "simple-invoice-backup-"
    assert config.asset_dirs == ("images", "pdfs")
    assert config.schedule_cron is None


def test_config_is_frozen(temp_dir: Path):
    config = BackupConfig(data_dir=temp_dir)

    with pytest.raises(AttributeError):
        config.product_name = "other"


def test_all_errors_reported_together(temp_dir: Path):
    with pytest.raises(ConfigurationError) as exc_info:
        BackupConfig(
            data_dir=temp_dir,
            product_name="Bad Name!",
            compression_level=12,
            asset_dirs=("images", "../escape"),
            schedule_cron="every day",
        )

    errors = exc_info.value.details["errors"]
    assert len(errors) == 4


def test_with_updates_revalidates(temp_dir: Path):
    config = BackupConfig(data_dir=temp_dir)

    assert config.with_updates(compression_level=9).compression_level == 9
    with pytest.raises(ConfigurationError):
        config.with_updates(operation_timeout=0)


# ============================================================================
# Builder
# ============================================================================

def test_builder_pipeline(temp_dir: Path):
    config = build_config(
        pipe(
            lambda c: with_data_dir(c, temp_dir),
            lambda c: with_product_name(c, "acme-books"),
            lambda c: with_asset_dirs(c, ["receipts"]),
            lambda c: backup_on_schedule(c, "0 2 * * *"),
            lambda c: with_compression_level(c, 9),
        )(create_empty_config())
    )

    assert config.archive_prefix == "acme-books-backup-"
    assert config.asset_dirs == ("receipts",)
    assert config.schedule_cron == "0 2 * * *"
    assert config.compression_level == 9


def test_builder_rejects_bad_values():
    with pytest.raises(ValueError):
        backup_on_schedule(create_empty_config(), "0 2 * *")

    with pytest.raises(ValueError):
        with_compression_level(create_empty_config(), 0)


def test_create_config_treats_empty_schedule_as_disabled(temp_dir: Path):
    config = create_config(temp_dir, schedule_cron="")
    assert config.schedule_cron is None


def test_builder_database_filename(temp_dir: Path):
    config = build_config(
        pipe(
            lambda c: with_data_dir(c, temp_dir),
            lambda c: with_database_filename(c, "invoices.db"),
        )(create_empty_config())
    )

    assert config.database_filename == "invoices.db"
    assert config.database_path == temp_dir.absolute() / "invoices.db"


def test_builder_disable_schedule_clears_earlier_schedule(temp_dir: Path):
    config = build_config(
        pipe(
            lambda c: with_data_dir(c, temp_dir),
            lambda c: backup_on_schedule(c, "0 2 * * *"),
            disable_schedule,
        )(create_empty_config())
    )

    assert config.schedule_cron is None


# ============================================================================
# Environment
# ============================================================================

def test_config_from_env(monkeypatch, temp_dir: Path):
    monkeypatch.setenv("DATA_DIR", str(temp_dir))
    monkeypatch.setenv("BACKUP_CRON", "15 1 * * *")
    monkeypatch.setenv("SNAPVAULT_COMPRESSION_LEVEL", "3")
    monkeypatch.setenv("SNAPVAULT_OPERATION_TIMEOUT", "120")

    config = create_config_from_env()

    assert config.data_dir == temp_dir
    assert config.schedule_cron == "15 1 * * *"
    assert config.compression_level == 3
    assert config.operation_timeout == 120.0


def test_config_from_env_defaults(monkeypatch):
    for name in (
        "DATA_DIR",
        "BACKUP_CRON",
        "SNAPVAULT_BACKUP_DIR",
        "SNAPVAULT_PRODUCT_NAME",
        "SNAPVAULT_COMPRESSION_LEVEL",
        "SNAPVAULT_OPERATION_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)

    config = create_config_from_env()

    assert config.data_dir == Path("./data")
    assert config.schedule_cron is None
    assert config.operation_timeout is None


@pytest.mark.parametrize(
    "name,value",
    [
        ("SNAPVAULT_COMPRESSION_LEVEL", "fast"),
        ("SNAPVAULT_COMPRESSION_LEVEL", "10"),
        ("SNAPVAULT_OPERATION_TIMEOUT", "-1"),
        ("BACKUP_CRON", "every night"),
    ],
)
def test_config_from_env_invalid(monkeypatch, temp_dir: Path, name, value):
    monkeypatch.setenv("DATA_DIR", str(temp_dir))
    monkeypatch.setenv(name, value)

    with pytest.raises(ConfigurationError):
        create_config_from_env()


# ============================================================================
# Connection Handshake
# ============================================================================

def test_handshake_restore_cycle():
    handshake = ConnectionHandshake()

    handshake.mark_closed()
    assert handshake.status is ConnectionStatus.CLOSED

    handshake.request_reopen()
    assert handshake.needs_reopen

    handshake.mark_reopened()
    assert handshake.is_open


def test_handshake_reopen_after_failed_restore():
    handshake = ConnectionHandshake()
    handshake.mark_closed()
    handshake.mark_reopened()
    assert handshake.is_open


@pytest.mark.parametrize(
    "start,action",
    [
        (ConnectionStatus.OPEN, "request_reopen"),
        (ConnectionStatus.OPEN, "mark_reopened"),
        (ConnectionStatus.PENDING_REOPEN, "mark_closed"),
        (ConnectionStatus.CLOSED, "mark_closed"),
    ],
)
def test_handshake_invalid_transitions(start, action):
    handshake = ConnectionHandshake(start)

    with pytest.raises(HandshakeError):
        getattr(handshake, action)()

    assert handshake.status is start
