"""Domain layer - sample value objects and insert outcomes."""

from .models import BatchInsertResult, InsertResult, Sample, to_epoch_ms

__all__ = [
    "BatchInsertResult",
    "InsertResult",
    "Sample",
    "to_epoch_ms",
]
