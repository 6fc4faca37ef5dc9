# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Snapvault Configuration - Immutable configuration data structures.

All configuration is frozen (immutable) after creation so the snapshot
builder, restore coordinator and scheduler always agree on the layout of
the data directory.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple
import re

from snapvault.errors import explain_invalid_cron_expression, explain_invalid_product_name


DEFAULT_PRODUCT_NAME = "simple-invoice"
DEFAULT_DATABASE_FILENAME = "database.db"
DEFAULT_ASSET_DIRS = ("images", "pdfs")
DEFAULT_COMPRESSION_LEVEL = 6

_PRODUCT_NAME_RE = re.compile(r"^[a-z0-9][a-z0-9._-]*$")


def _validate_product_name(name: str) -> bool:
    """Product names become filename prefixes, keep them filesystem-safe."""
    return bool(name) and bool(_PRODUCT_NAME_RE.match(name))


def _validate_relative_name(name: str) -> bool:
    """A single path component, no separators or parent references."""
    if not name or name in (".", ".."):
        return False
    return "/" not in name and "\\" not in name


def _validate_cron_expression(expression: str) -> bool:
    """Validate a five-field cron expression."""
    from snapvault.scheduler import parse_cron_expression
    from snapvault.exceptions import InvalidScheduleError

    try:
        parse_cron_expression(expression)
    except InvalidScheduleError:
        return False
    return True


@dataclass(frozen=True)
class BackupConfig:
    """
    Immutable configuration for the backup subsystem.

    The data directory holds the live database file and the optional asset
    directories. Archives live in backup_dir, which defaults to
    <data_dir>/backups.
    """

    # Root of the application's data
    data_dir: Path = field(default_factory=lambda: Path("./data"))

    # Where archives are written (default: <data_dir>/backups)
    backup_dir: Path | None = None

    # Used as the archive filename prefix: <product>-backup-...
    product_name: str = DEFAULT_PRODUCT_NAME

    # Live database file, relative to data_dir
    database_filename: str = DEFAULT_DATABASE_FILENAME

    # Older database names checked when the primary file is missing
    legacy_database_filenames: Tuple[str, ...] = ("simple-invoice.db",)

    # Optional asset directories archived after the database
    asset_dirs: Tuple[str, ...] = DEFAULT_ASSET_DIRS

    # Safety copy of the live database taken before a restore
    pre_restore_filename: str = "pre-restore-backup.db"

    # Five-field cron expression; None or "" disables scheduled backups
    schedule_cron: str | None = None

    # gzip compression level for archives (1-9)
    compression_level: int = DEFAULT_COMPRESSION_LEVEL

    # Upper bound in seconds for a snapshot and for the read-only restore phase
    operation_timeout: float | None = None

    def __post_init__(self) -> None:
        """Validate configuration after creation."""
        errors: List[str] = []

        # Normalize path-like inputs; frozen, so go through object.__setattr__
        if not isinstance(self.data_dir, Path):
            object.__setattr__(self, "data_dir", Path(self.data_dir))
        if self.backup_dir is not None and not isinstance(self.backup_dir, Path):
            object.__setattr__(self, "backup_dir", Path(self.backup_dir))
        object.__setattr__(self, "asset_dirs", tuple(self.asset_dirs))
        object.__setattr__(
            self, "legacy_database_filenames", tuple(self.legacy_database_filenames)
        )

        if not _validate_product_name(self.product_name):
            errors.append(explain_invalid_product_name(self.product_name))

        if not _validate_relative_name(self.database_filename):
            errors.append(f"Invalid database_filename: {self.database_filename!r}")

        if not _validate_relative_name(self.pre_restore_filename):
            errors.append(f"Invalid pre_restore_filename: {self.pre_restore_filename!r}")

        if self.pre_restore_filename == self.database_filename:
            errors.append("pre_restore_filename must differ from database_filename")

        for name in self.asset_dirs:
            if not _validate_relative_name(name):
                errors.append(f"Invalid asset directory name: {name!r}")
            elif name == self.database_filename:
                errors.append(f"Asset directory {name!r} clashes with database_filename")

        if len(set(self.asset_dirs)) != len(self.asset_dirs):
            errors.append(f"Duplicate asset directories: {list(self.asset_dirs)}")

        if not 1 <= self.compression_level <= 9:
            errors.append(
                f"compression_level must be between 1 and 9, got {self.compression_level}"
            )

        if self.operation_timeout is not None and self.operation_timeout <= 0:
            errors.append(
                f"operation_timeout must be > 0 seconds, got {self.operation_timeout}"
            )

        if self.schedule_cron and not _validate_cron_expression(self.schedule_cron):
            errors.append(explain_invalid_cron_expression(self.schedule_cron))

        # Raise all errors at once
        if errors:
            from snapvault.exceptions import ConfigurationError

            raise ConfigurationError(
                "Configuration validation failed",
                details={"errors": errors},
            )

    @property
    def database_path(self) -> Path:
        """Absolute path of the live database file."""
        return (self.data_dir / self.database_filename).absolute()

    @property
    def backup_path(self) -> Path:
        """Absolute path of the archive directory."""
        base = self.backup_dir if self.backup_dir is not None else self.data_dir / "backups"
        return base.absolute()

    @property
    def pre_restore_path(self) -> Path:
        return (self.data_dir / self.pre_restore_filename).absolute()

    @property
    def archive_prefix(self) -> str:
        return f"{self.product_name}-backup-"

    def asset_path(self, name: str) -> Path:
        return (self.data_dir / name).absolute()

    def with_updates(self, **kwargs) -> "BackupConfig":
        """
        Create a new config with updated values.

        Since the config is frozen, this creates a new instance.
        """
        from dataclasses import asdict

        current = asdict(self)
        current.update(kwargs)
        return BackupConfig(**current)
