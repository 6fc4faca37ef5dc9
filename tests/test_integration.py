# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Integration Tests for snapvault.

These tests verify the FastAPI endpoints end to end:
- Authentication
- Create, list and delete
- Restore, including partial restores
- Error mapping to HTTP status codes
- Lifespan management
"""

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from conftest import AUTH_HEADERS, SEED_INVOICES
from snapvault.connection import ConnectionStatus
from snapvault.integrations.fastapi import (
    backup_lifespan,
    get_backup_service,
    register_backup_routes,
)


@pytest_asyncio.fixture
async def client(service):
    """HTTP client for an app with backup routes registered."""
    app = FastAPI()
    register_backup_routes(app, service)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


# ============================================================================
# Authentication
# ============================================================================

@pytest.mark.asyncio
async def test_missing_api_key_is_rejected(client):
    response = await client.get("/api/backups")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_wrong_api_key_is_rejected(client):
    response = await client.get(
        "/api/backups",
        headers={"Authorization": "Bearer wrong-key"},
    )
    assert response.status_code == 403


# ============================================================================
# Create / List / Delete
# ============================================================================

@pytest.mark.asyncio
async def test_create_list_delete(client):
    response = await client.post("/api/backups", headers=AUTH_HEADERS)
    assert response.status_code == 200
    created = response.json()["backup"]
    assert created["filename"].startswith("simple-invoice-backup-")
    assert created["size"] > 0

    response = await client.get("/api/backups", headers=AUTH_HEADERS)
    assert response.status_code == 200
    assert [b["filename"] for b in response.json()] == [created["filename"]]

    response = await client.delete(
        "/api/backups",
        params={"filename": created["filename"]},
        headers=AUTH_HEADERS,
    )
    assert response.status_code == 200

    response = await client.get("/api/backups", headers=AUTH_HEADERS)
    assert response.json() == []


@pytest.mark.asyncio
async def test_delete_missing_backup_is_404(client):
    response = await client.delete(
        "/api/backups",
        params={"filename": "simple-invoice-backup-2024-01-01_000000.tar.gz"},
        headers=AUTH_HEADERS,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_path_in_filename_is_400(client):
    response = await client.delete(
        "/api/backups",
        params={"filename": "../database.db"},
        headers=AUTH_HEADERS,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_stats_and_verify(client):
    created = (await client.post("/api/backups", headers=AUTH_HEADERS)).json()["backup"]

    response = await client.get("/api/backups/stats", headers=AUTH_HEADERS)
    assert response.status_code == 200
    assert response.json()["archive_count"] == 1

    response = await client.get(
        "/api/backups/verify",
        params={"filename": created["filename"]},
        headers=AUTH_HEADERS,
    )
    assert response.status_code == 200
    assert response.json()["valid"] is True


# ============================================================================
# Restore
# ============================================================================

@pytest.mark.asyncio
async def test_restore_endpoint(client, service):
    created = (await client.post("/api/backups", headers=AUTH_HEADERS)).json()["backup"]

    await service.database.connection.execute("DELETE FROM invoices")
    await service.database.connection.commit()

    response = await client.post(
        "/api/backups/restore",
        params={"filename": created["filename"]},
        headers=AUTH_HEADERS,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert body["restored_assets"] == ["images", "pdfs"]

    async with service.database.connection.execute("SELECT COUNT(*) FROM invoices") as cursor:
        row = await cursor.fetchone()
    assert row[0] == len(SEED_INVOICES)


@pytest.mark.asyncio
async def test_restore_missing_backup_is_404(client, service):
    response = await client.post(
        "/api/backups/restore",
        params={"filename": "missing.tar.gz"},
        headers=AUTH_HEADERS,
    )

    assert response.status_code == 404
    assert service.handshake.status is ConnectionStatus.OPEN


@pytest.mark.asyncio
async def test_partial_restore_is_500_with_stage(client, monkeypatch):
    created = (await client.post("/api/backups", headers=AUTH_HEADERS)).json()["backup"]

    async def failing_move(src, dst):
        raise OSError("Permission denied")

    monkeypatch.setattr("snapvault.backup.restore.move_tree", failing_move)

    response = await client.post(
        "/api/backups/restore",
        params={"filename": created["filename"]},
        headers=AUTH_HEADERS,
    )

    assert response.status_code == 500
    detail = response.json()["detail"]
    assert detail["status"] == "partial"
    assert detail["stage"] == "assets:images"
    assert detail["safety_copy_path"].endswith("pre-restore-backup.db")


# ============================================================================
# Lifespan
# ============================================================================

@pytest.mark.asyncio
async def test_lifespan_starts_schedule_and_closes_database(test_config, database):
    from snapvault.core import BackupService

    config = test_config.with_updates(schedule_cron="0 2 * * *")
    svc = BackupService(config, database)
    app = FastAPI()

    async with backup_lifespan(app, svc):
        assert get_backup_service(app) is svc
        assert svc.scheduler.running

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as c:
            response = await c.get("/api/backups/schedule", headers=AUTH_HEADERS)

        assert response.status_code == 200
        assert response.json()["schedule"] == "0 2 * * *"
        assert response.json()["connection_status"] == "open"

    assert not svc.scheduler.running
    assert not database.is_open


def test_get_backup_service_requires_lifespan():
    with pytest.raises(RuntimeError):
        get_backup_service(FastAPI())
