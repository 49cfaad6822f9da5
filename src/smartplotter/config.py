"""Viewer configuration for SmartPlotter."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from smartplotter.downsample import VISIBLE_POINT_CAP
from smartplotter.scales import DEFAULT_TICK_COUNT

# Log-to-SQLite converter shipped alongside the application
DEFAULT_CONVERTER = Path("resources") / "uSQLiteFinalize.exe"
# The logger samples every 1 ms; keeping 1 row in 10 gives 10 ms resolution
DEFAULT_DECIMATION_RATIO = 10
# Give up on the converter after this many seconds
DEFAULT_CONVERSION_TIMEOUT = 300.0


@dataclass(frozen=True)
class ViewerConfig:
    """Settings shared by ingestion and the chart."""

    converter: Path = DEFAULT_CONVERTER
    decimation_ratio: int = DEFAULT_DECIMATION_RATIO
    conversion_timeout_s: float = DEFAULT_CONVERSION_TIMEOUT
    visible_points: int = VISIBLE_POINT_CAP
    tick_count: int = DEFAULT_TICK_COUNT

    @classmethod
    def from_env(cls) -> ViewerConfig:
        """Build a configuration, letting environment variables override defaults.

        Reads SMARTPLOTTER_CONVERTER and SMARTPLOTTER_DECIMATION.

        Raises:
            ValueError: If SMARTPLOTTER_DECIMATION is not a positive integer
        """
        converter = Path(os.environ.get("SMARTPLOTTER_CONVERTER", str(DEFAULT_CONVERTER)))
        ratio = int(os.environ.get("SMARTPLOTTER_DECIMATION", DEFAULT_DECIMATION_RATIO))
        if ratio < 1:
            raise ValueError(f"SMARTPLOTTER_DECIMATION must be at least 1, got {ratio}")
        return cls(converter=converter, decimation_ratio=ratio)
