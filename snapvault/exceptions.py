# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Snapvault Exceptions - Custom exceptions for the snapvault package.

The hierarchy mirrors the failure taxonomy of the backup subsystem:
NotFound, Invalid and IOFailure. Partial restores are not exceptions;
they are reported through RestoreResult.
"""


class SnapVaultError(Exception):
    """Base exception for all snapvault errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class NotFoundError(SnapVaultError):
    """Raised when an archive or live file does not exist."""

    pass


class ArchiveNotFoundError(NotFoundError):
    """Raised when a backup archive is not in the catalog."""

    pass


class DatabaseNotFoundError(NotFoundError):
    """Raised when the live database file is missing."""

    pass


class InvalidError(SnapVaultError):
    """Raised when input is structurally invalid."""

    pass


class InvalidArchiveError(InvalidError):
    """Raised when an archive is malformed or lacks database.db."""

    pass


class InvalidScheduleError(InvalidError):
    """Raised when a cron expression cannot be parsed."""

    pass


class ConfigurationError(InvalidError):
    """Raised when configuration is invalid."""

    pass


class IOFailureError(SnapVaultError):
    """Raised when filesystem or database I/O fails."""

    pass


class BackupError(IOFailureError):
    """Raised when snapshot creation fails."""

    pass


class RestoreError(IOFailureError):
    """Raised when a restore fails before touching live data."""

    pass


class HandshakeError(SnapVaultError):
    """Raised on an invalid connection status transition."""

    pass


class OperationCancelledError(SnapVaultError):
    """Raised inside an archive worker thread told to stop early."""

    pass
