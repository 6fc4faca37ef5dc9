# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Example FastAPI Application with Snapvault Integration.

A tiny invoicing app that keeps its data in $DATA_DIR/database.db and
exposes backup/restore endpoints under /api/backups.

Run with:
    uvicorn examples.basic_app:app --reload

Environment variables:
    DATA_DIR: Application data directory (default: ./data)
    BACKUP_CRON: Cron schedule for automatic backups, e.g. "0 2 * * *"
    SNAPVAULT_ADMIN_API_KEY: API key for backup endpoints
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from snapvault import BackupService, SQLiteDatabase, create_config_from_env
from snapvault.integrations.fastapi import backup_lifespan

config = create_config_from_env()
database = SQLiteDatabase(config.database_path)


async def _create_schema() -> None:
    await database.connection.execute(
        """
        CREATE TABLE IF NOT EXISTS invoices (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            customer TEXT NOT NULL,
            amount_cents INTEGER NOT NULL
        )
        """
    )
    await database.connection.commit()


@asynccontextmanager
async def lifespan(app: FastAPI):
    await database.open()
    await _create_schema()

    service = BackupService(config, database)
    async with backup_lifespan(app, service):
        yield


app = FastAPI(
    title="Invoices with Snapvault",
    description="Example application demonstrating backup and restore",
    version="1.0.0",
    lifespan=lifespan,
)


# ============================================================================
# Application Routes
# ============================================================================


class Invoice(BaseModel):
    """Example invoice model."""

    id: int | None = None
    customer: str
    amount_cents: int


@app.get("/")
async def root():
    return {
        "message": "Welcome to Invoices with Snapvault",
        "docs": "/docs",
        "backups": "/api/backups",
    }


@app.get("/invoices/{invoice_id}")
async def get_invoice(invoice_id: int) -> Invoice:
    async with database.connection.execute(
        "SELECT id, customer, amount_cents FROM invoices WHERE id = ?",
        (invoice_id,),
    ) as cursor:
        row = await cursor.fetchone()

    if row is None:
        raise HTTPException(status_code=404, detail="Invoice not found")
    return Invoice(id=row[0], customer=row[1], amount_cents=row[2])


@app.post("/invoices")
async def create_invoice(invoice: Invoice) -> Invoice:
    cursor = await database.connection.execute(
        "INSERT INTO invoices (customer, amount_cents) VALUES (?, ?)",
        (invoice.customer, invoice.amount_cents),
    )
    await database.connection.commit()
    return Invoice(id=cursor.lastrowid, customer=invoice.customer, amount_cents=invoice.amount_cents)


# ============================================================================
# Backup Endpoints (registered by backup_lifespan)
# ============================================================================
#
# GET    /api/backups                     - List backups, newest first
# POST   /api/backups                     - Create a backup now
# DELETE /api/backups?filename=...        - Delete a backup
# POST   /api/backups/restore?filename=... - Restore from a backup
# GET    /api/backups/verify?filename=... - Check an archive
# GET    /api/backups/stats               - Storage statistics
# GET    /api/backups/schedule            - Scheduler status
#
# All endpoints require: Authorization: Bearer <SNAPVAULT_ADMIN_API_KEY>


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
