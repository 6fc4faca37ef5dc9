# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Snapvault FastAPI Integration - Backup endpoints for FastAPI applications.

This module provides:
- Protected admin endpoints for create/list/delete/restore
- Lifespan management (scheduler start, connection shutdown)
"""

import os
from contextlib import asynccontextmanager
from dataclasses import asdict

import structlog
from fastapi import Depends, FastAPI, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from snapvault.core import BackupService
from snapvault.exceptions import (
    InvalidError,
    IOFailureError,
    NotFoundError,
    SnapVaultError,
)

logger = structlog.get_logger()

# Security
security = HTTPBearer(auto_error=False)


async def verify_api_key(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> bool:
    """
    Verify API key from Authorization header.

    The API key is read from the SNAPVAULT_ADMIN_API_KEY environment variable.
    Requests must include: Authorization: Bearer <api_key>

    Raises:
        HTTPException: If API key is missing or invalid
    """
    api_key = os.getenv("SNAPVAULT_ADMIN_API_KEY")

    if not api_key:
        raise HTTPException(
            status_code=500,
            detail="SNAPVAULT_ADMIN_API_KEY environment variable not set",
        )

    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Authorization header required",
        )

    if credentials.credentials != api_key:
        raise HTTPException(
            status_code=403,
            detail="Invalid API key",
        )

    return True


def _to_http_error(e: SnapVaultError) -> HTTPException:
    """Map the error taxonomy onto HTTP status codes."""
    if isinstance(e, NotFoundError):
        status_code = 404
    elif isinstance(e, InvalidError):
        status_code = 400
    elif isinstance(e, IOFailureError):
        status_code = 500
    else:
        status_code = 409
    return HTTPException(status_code=status_code, detail=e.message)


def register_backup_routes(
    app: FastAPI,
    service: BackupService,
    prefix: str = "/api/backups",
) -> None:
    """
    Register backup endpoints on a FastAPI app.

    All endpoints require Bearer token authentication.

    Args:
        app: FastAPI application
        service: Backup service
        prefix: URL prefix for endpoints (default: /api/backups)
    """

    @app.get(prefix, dependencies=[Depends(verify_api_key)])
    async def list_backups() -> list:
        """List available backups, newest first."""
        try:
            archives = await service.list_backups()
        except SnapVaultError as e:
            logger.error("list_backups_failed", error=str(e))
            raise _to_http_error(e)
        return [a.to_dict() for a in archives]

    @app.post(prefix, dependencies=[Depends(verify_api_key)])
    async def create_backup() -> dict:
        """Create a backup now."""
        try:
            archive = await service.create_backup()
        except SnapVaultError as e:
            logger.error("create_backup_failed", error=str(e))
            raise _to_http_error(e)
        return {"message": "Backup created successfully", "backup": archive.to_dict()}

    @app.delete(prefix, dependencies=[Depends(verify_api_key)])
    async def delete_backup(filename: str) -> dict:
        """Delete a backup by filename."""
        try:
            await service.delete_backup(filename)
        except SnapVaultError as e:
            logger.warning("delete_backup_failed", filename=filename, error=str(e))
            raise _to_http_error(e)
        return {"message": "Backup deleted successfully", "filename": filename}

    @app.post(f"{prefix}/restore", dependencies=[Depends(verify_api_key)])
    async def restore_backup(filename: str) -> dict:
        """
        Restore data from a backup.

        A partial restore answers 500 with the stage that failed; the
        pre-restore safety copy is named in the response.
        """
        try:
            result = await service.restore_backup(filename)
        except SnapVaultError as e:
            logger.error("restore_backup_failed", filename=filename, error=str(e))
            raise _to_http_error(e)

        body = {**asdict(result), "status": result.status.value}
        if not result.ok:
            raise HTTPException(
                status_code=500,
                detail={"message": "Backup partially restored", **body},
            )
        return {"message": "Backup restored successfully", **body}

    @app.get(f"{prefix}/verify", dependencies=[Depends(verify_api_key)])
    async def verify_backup(filename: str) -> dict:
        """Check an archive holds a readable, non-empty database."""
        try:
            return await service.verify_backup(filename)
        except SnapVaultError as e:
            raise _to_http_error(e)

    @app.get(f"{prefix}/stats", dependencies=[Depends(verify_api_key)])
    async def backup_stats() -> dict:
        """Archive count and storage usage."""
        try:
            return await service.get_backup_stats()
        except SnapVaultError as e:
            raise _to_http_error(e)

    @app.get(f"{prefix}/schedule", dependencies=[Depends(verify_api_key)])
    async def backup_schedule() -> dict:
        """Scheduler status and next run time."""
        return {
            **service.scheduler.status(),
            "connection_status": service.handshake.status.value,
        }


@asynccontextmanager
async def backup_lifespan(app: FastAPI, service: BackupService, prefix: str = "/api/backups"):
    """
    Lifespan context manager for FastAPI.

        app = FastAPI(lifespan=lambda app: backup_lifespan(app, service))

    Registers the routes, starts the configured schedule, and on shutdown
    stops the schedule and closes the database connection.

    Args:
        app: FastAPI application
        service: Backup service
        prefix: URL prefix for endpoints
    """
    logger.info("snapvault_lifespan_starting")

    app.state.backup_service = service
    register_backup_routes(app, service, prefix)

    # A bad schedule must not keep the application from serving requests
    try:
        service.start_scheduler()
    except SnapVaultError as e:
        logger.warning("backup_scheduler_start_failed", error=str(e))

    logger.info("snapvault_lifespan_started")

    try:
        yield
    finally:
        logger.info("snapvault_lifespan_stopping")
        await service.shutdown()
        try:
            await service.database.close()
        except Exception as e:
            logger.warning("database_close_failed", error=str(e))
        logger.info("snapvault_lifespan_stopped")


def get_backup_service(app: FastAPI) -> BackupService:
    """
    Get the backup service from a FastAPI app.

    Raises:
        RuntimeError: If the lifespan has not run
    """
    service = getattr(app.state, "backup_service", None)
    if not service:
        raise RuntimeError("snapvault not initialized. Use backup_lifespan first.")
    return service
