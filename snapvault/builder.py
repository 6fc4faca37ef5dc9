# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Snapvault Builder - Functional builder pattern for configuration.

This module provides pure functions for building BackupConfig objects.
Each function takes a config dict and returns a new dict with the
modification applied (immutable updates).
"""

from pathlib import Path
from typing import Any, Callable, Dict, Sequence

from snapvault.config import (
    BackupConfig,
    DEFAULT_ASSET_DIRS,
    DEFAULT_COMPRESSION_LEVEL,
    DEFAULT_DATABASE_FILENAME,
    DEFAULT_PRODUCT_NAME,
)


# Type alias for builder functions
ConfigDict = Dict[str, Any]
BuilderFunc = Callable[[ConfigDict], ConfigDict]


def create_empty_config() -> ConfigDict:
    """
    Create an initial configuration dictionary.

    Returns:
        Dict with default values for all configuration fields
    """
    return {
        "data_dir": Path("./data"),
        "backup_dir": None,
        "product_name": DEFAULT_PRODUCT_NAME,
        "database_filename": DEFAULT_DATABASE_FILENAME,
        "legacy_database_filenames": ("simple-invoice.db",),
        "asset_dirs": DEFAULT_ASSET_DIRS,
        "pre_restore_filename": "pre-restore-backup.db",
        "schedule_cron": None,
        "compression_level": DEFAULT_COMPRESSION_LEVEL,
        "operation_timeout": None,
    }


def with_data_dir(config: ConfigDict, data_dir: Path | str) -> ConfigDict:
    """
    Set the application data directory.

    Args:
        config: Current configuration dictionary
        data_dir: Directory containing the database file and asset folders

    Returns:
        New configuration dictionary with data_dir set
    """
    return {**config, "data_dir": Path(data_dir)}


def with_backup_dir(config: ConfigDict, backup_dir: Path | str) -> ConfigDict:
    """
    Store archives somewhere other than <data_dir>/backups.

    Args:
        config: Current configuration dictionary
        backup_dir: Directory for backup archives

    Returns:
        New configuration dictionary with backup_dir set
    """
    return {**config, "backup_dir": Path(backup_dir)}


def with_product_name(config: ConfigDict, product_name: str) -> ConfigDict:
    """
    Set the product name used as the archive filename prefix.

    Args:
        config: Current configuration dictionary
        product_name: e.g. 'simple-invoice' -> simple-invoice-backup-*.tar.gz

    Returns:
        New configuration dictionary with product_name set
    """
    return {**config, "product_name": product_name}


def with_database_filename(config: ConfigDict, filename: str) -> ConfigDict:
    """Set the live database filename (relative to data_dir)."""
    return {**config, "database_filename": filename}


def with_asset_dirs(config: ConfigDict, asset_dirs: Sequence[str]) -> ConfigDict:
    """
    Replace the list of optional asset directories to archive.

    Args:
        config: Current configuration dictionary
        asset_dirs: Directory names under data_dir, archived in this order

    Returns:
        New configuration dictionary with asset_dirs set
    """
    return {**config, "asset_dirs": tuple(asset_dirs)}


def backup_on_schedule(config: ConfigDict, cron_expression: str) -> ConfigDict:
    """
    Set the recurring backup schedule.

    Args:
        config: Current configuration dictionary
        cron_expression: Five-field cron expression, e.g. '0 2 * * *'

    Returns:
        New configuration dictionary with schedule set
    """
    if len(cron_expression.split()) != 5:
        raise ValueError(
            f"Invalid cron expression: {cron_expression!r}, expected five fields"
        )
    return {**config, "schedule_cron": cron_expression}


def disable_schedule(config: ConfigDict) -> ConfigDict:
    """Disable scheduled backups."""
    return {**config, "schedule_cron": None}


def with_compression_level(config: ConfigDict, level: int) -> ConfigDict:
    """
    Set the gzip compression level.

    Args:
        config: Current configuration dictionary
        level: 1 (fastest) to 9 (smallest)

    Returns:
        New configuration dictionary with compression level set
    """
    if level < 1 or level > 9:
        raise ValueError(f"compression_level must be 1-9, got {level}")
    return {**config, "compression_level": level}


def with_operation_timeout(config: ConfigDict, seconds: float | None) -> ConfigDict:
    """
    Bound snapshot duration and the read-only phase of a restore.

    Args:
        config: Current configuration dictionary
        seconds: Timeout in seconds, or None to disable

    Returns:
        New configuration dictionary with operation_timeout set
    """
    if seconds is not None and seconds <= 0:
        raise ValueError(f"operation_timeout must be > 0, got {seconds}")
    return {**config, "operation_timeout": seconds}


def build_config(config_dict: ConfigDict) -> BackupConfig:
    """
    Validate and build an immutable BackupConfig from a configuration dictionary.

    Args:
        config_dict: Configuration dictionary built using builder functions

    Returns:
        Validated, immutable BackupConfig instance

    Raises:
        ConfigurationError: If validation fails
    """
    if not config_dict.get("data_dir"):
        from snapvault.exceptions import ConfigurationError

        raise ConfigurationError("data_dir is required")

    return BackupConfig(**config_dict)


def pipe(*funcs: BuilderFunc) -> BuilderFunc:
    """
    Compose multiple builder functions into a single function.

    This allows a more readable pipeline style:

        config = pipe(
            lambda c: with_data_dir(c, "/var/lib/simple-invoice"),
            lambda c: backup_on_schedule(c, "0 2 * * *"),
        )(create_empty_config())

    Args:
        *funcs: Builder functions to compose

    Returns:
        A single function that applies all functions in sequence
    """

    def composed(config: ConfigDict) -> ConfigDict:
        result = config
        for func in funcs:
            result = func(result)
        return result

    return composed


def create_config(
    data_dir: str | Path,
    *,
    backup_dir: str | Path | None = None,
    product_name: str = DEFAULT_PRODUCT_NAME,
    schedule_cron: str | None = None,
    asset_dirs: Sequence[str] | None = None,
    compression_level: int = DEFAULT_COMPRESSION_LEVEL,
    operation_timeout: float | None = None,
    **kwargs: Any,
) -> BackupConfig:
    """
    Create backup configuration from simple parameters.

    This is the recommended user-facing API for creating configurations.

    Args:
        data_dir: Directory holding database.db, images/ and pdfs/
        backup_dir: Archive directory (default: <data_dir>/backups)
        product_name: Archive filename prefix (default: "simple-invoice")
        schedule_cron: Five-field cron expression, or None to disable
        asset_dirs: Asset directory names (default: ("images", "pdfs"))
        compression_level: gzip level 1-9 (default: 6)
        operation_timeout: Seconds, or None for no timeout
        **kwargs: Any other BackupConfig field

    Returns:
        Validated BackupConfig

    Raises:
        ConfigurationError: If validation fails
    """
    config = create_empty_config()
    config = with_data_dir(config, data_dir)
    if backup_dir is not None:
        config = with_backup_dir(config, backup_dir)
    config = with_product_name(config, product_name)
    if asset_dirs is not None:
        config = with_asset_dirs(config, asset_dirs)
    config = {
        **config,
        "schedule_cron": schedule_cron or None,
        "compression_level": compression_level,
        "operation_timeout": operation_timeout,
        **kwargs,
    }
    return build_config(config)
