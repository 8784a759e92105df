"""Database infrastructure - SQLite for wardriving samples."""

from .errors import SampleStoreError, SchemaTooNewError, StorageIOError
from .migrations import MIGRATIONS, MigrationStep, migrate
from .sample_store import AsyncSampleStore, default_data_dir
from .schema import DATABASE_FILE_NAME, SCHEMA_VERSION

__all__ = [
    "DATABASE_FILE_NAME",
    "MIGRATIONS",
    "SCHEMA_VERSION",
    "AsyncSampleStore",
    "MigrationStep",
    "SampleStoreError",
    "SchemaTooNewError",
    "StorageIOError",
    "default_data_dir",
    "migrate",
]
