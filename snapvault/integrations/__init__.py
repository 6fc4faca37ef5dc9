# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Framework Integrations - FastAPI backup endpoints and lifespan.
"""

from snapvault.integrations.fastapi import (
    backup_lifespan,
    get_backup_service,
    register_backup_routes,
    verify_api_key,
)

__all__ = [
    "backup_lifespan",
    "get_backup_service",
    "register_backup_routes",
    "verify_api_key",
]
