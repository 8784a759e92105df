"""Sample store exceptions."""

from __future__ import annotations


class SampleStoreError(Exception):
    """Base class for every error raised by the sample store."""


class StorageIOError(SampleStoreError):
    """The database file is unreachable, locked, full or corrupt.

    The underlying ``sqlite3`` error is chained as ``__cause__``.
    """


class SchemaTooNewError(SampleStoreError):
    """On-disk schema version is newer than this release understands."""

    def __init__(self, found: int, supported: int) -> None:
        self.found = found
        self.supported = supported
        super().__init__(
            f"database schema version {found} is newer than supported version {supported}"
        )
