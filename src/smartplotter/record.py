"""Record data class for SmartPlotter."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Record:
    """One logged sample with both pressure channels.

    The id is the record's position in the original series, so it can be
    used directly to slice that series when zooming.
    """

    id: int
    timestamp: datetime
    channel_a: float
    channel_b: float

    @property
    def timestamp_iso(self) -> str:
        """Timestamp as an ISO-8601 string."""
        return self.timestamp.isoformat()

    @property
    def epoch_ms(self) -> float:
        """Timestamp as milliseconds since the Unix epoch."""
        return round(self.timestamp.timestamp() * 1000, 3)


# Ordered, immutable sequence of records in ingestion (chronological) order
Series = tuple[Record, ...]
