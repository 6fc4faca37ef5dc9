# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Environment-based configuration helpers.

The invoicing application is configured through environment variables
(DATA_DIR, BACKUP_CRON). This helper reads them, plus a few snapvault
specific knobs, and passes them through to create_config().
"""

from __future__ import annotations

import os
from pathlib import Path

from snapvault.builder import create_config
from snapvault.config import BackupConfig, DEFAULT_COMPRESSION_LEVEL, DEFAULT_PRODUCT_NAME
from snapvault.errors import (
    explain_invalid_compression_level_env,
    explain_invalid_timeout_env,
)
from snapvault.exceptions import ConfigurationError


def _parse_compression_level(value: str | None) -> int:
    if not value:
        return DEFAULT_COMPRESSION_LEVEL
    try:
        level = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(explain_invalid_compression_level_env(value)) from exc
    if not 1 <= level <= 9:
        raise ConfigurationError(explain_invalid_compression_level_env(value))
    return level


def _parse_timeout(value: str | None) -> float | None:
    if not value:
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(explain_invalid_timeout_env(value)) from exc
    if seconds <= 0:
        raise ConfigurationError(explain_invalid_timeout_env(value))
    return seconds


def create_config_from_env() -> BackupConfig:
    """
    Create a BackupConfig from environment variables.

    Optional environment variables:
        - DATA_DIR: Application data directory (default: ./data)
        - BACKUP_CRON: Five-field cron expression; empty disables scheduling
        - SNAPVAULT_BACKUP_DIR: Archive directory (default: $DATA_DIR/backups)
        - SNAPVAULT_PRODUCT_NAME: Archive filename prefix (default: simple-invoice)
        - SNAPVAULT_COMPRESSION_LEVEL: gzip level 1-9 (default: 6)
        - SNAPVAULT_OPERATION_TIMEOUT: Seconds (default: no timeout)
    """

    data_dir = Path(os.getenv("DATA_DIR") or "./data")
    backup_dir_env = os.getenv("SNAPVAULT_BACKUP_DIR")
    schedule_cron = (os.getenv("BACKUP_CRON") or "").strip() or None

    return create_config(
        data_dir,
        backup_dir=Path(backup_dir_env) if backup_dir_env else None,
        product_name=os.getenv("SNAPVAULT_PRODUCT_NAME") or DEFAULT_PRODUCT_NAME,
        schedule_cron=schedule_cron,
        compression_level=_parse_compression_level(
            os.getenv("SNAPVAULT_COMPRESSION_LEVEL")
        ),
        operation_timeout=_parse_timeout(os.getenv("SNAPVAULT_OPERATION_TIMEOUT")),
    )
