from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio

from meshwardrive.domain.models import Sample, to_epoch_ms
from meshwardrive.infrastructure.database import AsyncSampleStore
from meshwardrive.tools.retention import enforce_retention, retention_cutoff

pytestmark = pytest.mark.asyncio

NOW = datetime(2025, 3, 1, tzinfo=UTC)


def _aged(sample_id: str, days: float) -> Sample:
    ts = to_epoch_ms(NOW - timedelta(days=days))
    return Sample(id=sample_id, lat=0.0, lon=0.0, timestamp=ts, geohash="s0000")


@pytest_asyncio.fixture
async def store(tmp_path):
    s = AsyncSampleStore(tmp_path)
    await s.insert_many([_aged("fresh", 1), _aged("week", 7), _aged("month", 31), _aged("year", 365)])
    yield s
    await s.close()


async def test_prunes_older_than_window(store):
    stats = await enforce_retention(store, max_age_days=30, now=NOW)

    assert stats.deleted == 2
    assert stats.remaining == 2
    assert stats.cutoff_ms == to_epoch_ms(NOW - timedelta(days=30))
    assert {s.id for s in await store.get_all()} == {"fresh", "week"}


async def test_disabled_mode_no_delete(store):
    stats = await enforce_retention(store, max_age_days=1, enabled=False, now=NOW)

    assert stats.deleted == 0
    assert stats.remaining == 4


async def test_sample_at_cutoff_is_kept(store):
    await store.insert_one(_aged("boundary", 30))

    await enforce_retention(store, max_age_days=30, now=NOW)

    assert "boundary" in {s.id for s in await store.get_all()}


async def test_invalid_window_raises():
    with pytest.raises(ValueError):
        retention_cutoff(0, NOW)
