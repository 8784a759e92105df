from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from ..domain.models import to_epoch_ms
from ..infrastructure.database.sample_store import AsyncSampleStore

logger = logging.getLogger(__name__)


@dataclass
class RetentionStats:
    cutoff_ms: int
    deleted: int = 0
    remaining: int = 0
    duration_seconds: float = 0.0


def retention_cutoff(max_age_days: int, now: datetime | None = None) -> int:
    if max_age_days < 1:
        raise ValueError("max_age_days must be >= 1")
    now = now or datetime.now(UTC)
    return to_epoch_ms(now - timedelta(days=max_age_days))


async def enforce_retention(
    store: AsyncSampleStore,
    max_age_days: int,
    *,
    enabled: bool = True,
    now: datetime | None = None,
) -> RetentionStats:
    """Delete samples older than ``max_age_days`` relative to ``now``."""
    start = time.time()
    cutoff = retention_cutoff(max_age_days, now)

    deleted = 0
    if enabled:
        deleted = await store.delete_older_than(cutoff)
    remaining = await store.count()

    stats = RetentionStats(
        cutoff_ms=cutoff,
        deleted=deleted,
        remaining=remaining,
        duration_seconds=time.time() - start,
    )
    if enabled:
        logger.info("Retention pruned %d samples (%d remaining)", deleted, remaining)
    return stats
