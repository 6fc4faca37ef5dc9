# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Snapvault Connection Handshake - Contract with the database owner.

A restore swaps the database file underneath the application's live
connection. The restore coordinator never owns that connection; it asks
the owner to close it, swaps the files, then flags the connection as
pending a reopen. The owner reopens and acknowledges.

Status transitions:
    OPEN -> CLOSED            restore released the connection
    CLOSED -> PENDING_REOPEN  restore completed successfully
    PENDING_REOPEN -> OPEN    owner reopened after a successful restore
    CLOSED -> OPEN            owner reopened after a failed/partial restore
"""

from enum import Enum
from typing import Protocol, runtime_checkable

import structlog

from snapvault.exceptions import HandshakeError

logger = structlog.get_logger()


class ConnectionStatus(str, Enum):
    """Lifecycle of the live database connection."""

    OPEN = "open"
    CLOSED = "closed"
    PENDING_REOPEN = "pending_reopen"


_TRANSITIONS = {
    ConnectionStatus.OPEN: {ConnectionStatus.CLOSED},
    ConnectionStatus.CLOSED: {ConnectionStatus.PENDING_REOPEN, ConnectionStatus.OPEN},
    ConnectionStatus.PENDING_REOPEN: {ConnectionStatus.OPEN},
}


@runtime_checkable
class DatabaseHandle(Protocol):
    """What the backup subsystem needs from the database owner."""

    async def checkpoint(self) -> None:
        """Flush the write-ahead log into the main database file."""
        ...

    async def close(self) -> None:
        """Release the live connection."""
        ...

    async def reopen(self) -> None:
        """Recreate the connection against the (possibly replaced) file."""
        ...


class ConnectionHandshake:
    """
    Explicit three-state connection status shared by the restore
    coordinator and the database owner.
    """

    def __init__(self, status: ConnectionStatus = ConnectionStatus.OPEN) -> None:
        self._status = status

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def is_open(self) -> bool:
        return self._status is ConnectionStatus.OPEN

    @property
    def needs_reopen(self) -> bool:
        """True only after a successful restore, until the owner reopens."""
        return self._status is ConnectionStatus.PENDING_REOPEN

    def mark_closed(self) -> None:
        """Restore side: the owner has released its connection."""
        self._transition(ConnectionStatus.CLOSED)

    def request_reopen(self) -> None:
        """Restore side: live files were replaced, the owner must reopen."""
        self._transition(ConnectionStatus.PENDING_REOPEN)

    def mark_reopened(self) -> None:
        """Owner side: the connection was recreated."""
        self._transition(ConnectionStatus.OPEN)

    def _transition(self, target: ConnectionStatus) -> None:
        current = self._status
        if target not in _TRANSITIONS[current]:
            raise HandshakeError(
                f"Invalid connection status transition: {current.value} -> {target.value}",
                details={"from": current.value, "to": target.value},
            )
        self._status = target
        logger.debug(
            "connection_status_changed",
            previous=current.value,
            status=target.value,
        )
