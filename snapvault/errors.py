# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Human-friendly error message helpers for snapvault.

These helpers centralize wording for common configuration errors so that
all modules present consistent, actionable messages.
"""


def explain_invalid_cron_expression(value: str | None) -> str:
    """
    Explain that a backup cron expression is invalid.
    """

    return (
        f"Invalid backup schedule: {value!r}. "
        "Expected a standard five-field cron expression such as '0 2 * * *' "
        "(minute hour day-of-month month day-of-week). "
        "Leave BACKUP_CRON empty to disable scheduled backups."
    )


def explain_invalid_compression_level_env(value: str | None) -> str:
    """
    Explain that SNAPVAULT_COMPRESSION_LEVEL is invalid.
    """

    return (
        f"Invalid SNAPVAULT_COMPRESSION_LEVEL value: {value!r}. "
        "It must be an integer gzip level between 1 and 9."
    )


def explain_invalid_timeout_env(value: str | None) -> str:
    """
    Explain that SNAPVAULT_OPERATION_TIMEOUT is invalid.
    """

    return (
        f"Invalid SNAPVAULT_OPERATION_TIMEOUT value: {value!r}. "
        "It must be a positive number of seconds, or left unset for no timeout."
    )


def explain_invalid_product_name(value: str | None) -> str:
    """
    Explain that the product name cannot be used in archive filenames.
    """

    return (
        f"Invalid product name: {value!r}. "
        "It is used as the archive filename prefix and may only contain "
        "lowercase letters, digits, '.', '_' and '-'."
    )


def explain_invalid_archive_name(value: str, prefix: str) -> str:
    """
    Explain that a requested archive name is not a catalog filename.
    """

    return (
        f"Invalid backup filename: {value!r}. "
        f"Expected a plain filename like '{prefix}YYYY-MM-DD_HHMMSS.tar.gz' "
        "without directory components."
    )
