"""Domain models for wardriving samples."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class InsertResult(str, Enum):
    """Outcome of a single-row insert."""

    INSERTED = "inserted"
    IGNORED_DUPLICATE = "ignored_duplicate"


@dataclass(frozen=True)
class BatchInsertResult:
    inserted: int = 0
    ignored: int = 0

    @property
    def total(self) -> int:
        return self.inserted + self.ignored


def to_epoch_ms(value: int | datetime) -> int:
    """Normalize a timestamp argument to milliseconds since the Unix epoch.

    Naive datetimes are taken as UTC.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return int(value.timestamp() * 1000)
    return int(value)


class Sample(BaseModel):
    """One geotagged measurement.

    Field names are pythonic; the camelCase storage/export names are accepted
    as aliases so rows and export payloads validate directly.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1)
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)
    timestamp: int  # epoch milliseconds
    geohash: str = Field(..., min_length=1)
    path: str | None = None

    # Ping metadata, absent when no radio reading accompanied the sample
    rssi: int | None = None
    snr: int | None = None
    ping_success: bool | None = Field(default=None, alias="pingSuccess")
    observer_names: str | None = Field(default=None, alias="observerNames")

    @property
    def captured_at(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp / 1000, tz=UTC)

    @property
    def has_ping(self) -> bool:
        return self.ping_success is not None

    def to_row(self) -> dict[str, Any]:
        """Column mapping for the samples table."""
        return {
            "id": self.id,
            "lat": self.lat,
            "lon": self.lon,
            "timestamp": self.timestamp,
            "path": self.path,
            "geohash": self.geohash,
            "rssi": self.rssi,
            "snr": self.snr,
            "pingSuccess": None if self.ping_success is None else int(self.ping_success),
            "observerNames": self.observer_names,
        }

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Sample:
        """Build a sample from a database row.

        Columns missing from ``row`` (older schema) come back as None.
        """
        keys = set(row.keys())

        def _get(column: str) -> Any:
            return row[column] if column in keys else None

        ping = _get("pingSuccess")
        return cls(
            id=row["id"],
            lat=row["lat"],
            lon=row["lon"],
            timestamp=row["timestamp"],
            geohash=row["geohash"],
            path=_get("path"),
            rssi=_get("rssi"),
            snr=_get("snr"),
            ping_success=None if ping is None else bool(ping),
            observer_names=_get("observerNames"),
        )

    def to_export(self) -> dict[str, Any]:
        """JSON-ready representation for the export/UI layer."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_export(cls, data: Mapping[str, Any]) -> Sample:
        return cls.model_validate(dict(data))
