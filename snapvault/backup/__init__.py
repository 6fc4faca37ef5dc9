# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""Snapvault Backup Module - Snapshot creation, archive format and restore."""

from snapvault.backup.restore import RestoreCoordinator, RestoreResult, RestoreStatus
from snapvault.backup.snapshot import SnapshotBuilder

__all__ = [
    "SnapshotBuilder",
    "RestoreCoordinator",
    "RestoreResult",
    "RestoreStatus",
]
