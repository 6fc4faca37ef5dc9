# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Snapvault - Backup and restore for a single-node SQLite application.

Takes consistent snapshots of a live SQLite database plus its asset
directories into timestamped gzip tar archives, lists and deletes them,
restores from them with a pre-restore safety copy, and runs snapshots on a
cron schedule. Package name: snapvault.
"""

__version__ = "0.1.0"

# Configuration creation (user-facing API)
from snapvault.builder import create_config
from snapvault.config import BackupConfig

# Environment-based configuration
from snapvault.env import create_config_from_env

# Core service
from snapvault.core import BackupService
from snapvault.catalog import BackupArchive
from snapvault.backup.restore import RestoreResult, RestoreStatus

# Connection ownership
from snapvault.connection import ConnectionHandshake, ConnectionStatus, DatabaseHandle
from snapvault.database import SQLiteDatabase

__all__ = [
    # Version
    "__version__",
    # Configuration
    "create_config",
    "create_config_from_env",
    "BackupConfig",
    # Service and results
    "BackupService",
    "BackupArchive",
    "RestoreResult",
    "RestoreStatus",
    # Connection ownership
    "ConnectionHandshake",
    "ConnectionStatus",
    "DatabaseHandle",
    "SQLiteDatabase",
]
