"""Error types raised by the timetracker migration."""
from __future__ import annotations

__all__ = [
    "MigrationError",
    "StoreAccessError",
    "SchemaMismatchError",
    "InvalidDateError",
    "UniqueConstraintError",
    "DestinationIOError",
    "ConfigurationError",
]


class MigrationError(RuntimeError):
    """Base class for every failure that aborts a migration run."""


class StoreAccessError(MigrationError):
    """Raised when a database file cannot be opened, read or written."""


class SchemaMismatchError(MigrationError):
    """Raised when the legacy database does not have the expected shape."""


class InvalidDateError(MigrationError, ValueError):
    """Raised when a history row does not describe a real calendar date."""


class UniqueConstraintError(MigrationError):
    """Raised when an insert collides with an existing primary key."""


class DestinationIOError(MigrationError):
    """Raised when the destination directory cannot be created."""


class ConfigurationError(MigrationError):
    """Raised for invalid migration settings such as an unknown time zone."""
