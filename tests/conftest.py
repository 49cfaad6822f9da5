"""Shared test fixtures for SmartPlotter tests."""

import stat
import sys
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path

import matplotlib
import pytest

from smartplotter.record import Record, Series

matplotlib.use("Agg")

# 2024-01-01 is a Monday
START = datetime(2024, 1, 1, 10, 0, tzinfo=UTC)

# Stands in for the real converter: reads JSON rows from the "log" file and
# writes them to <stem>.sqlite beside it.
FAKE_CONVERTER = """#!{python}
import json
import sys
from pathlib import Path

from sqlalchemy import create_engine, text

log_path = Path(sys.argv[1])
rows = json.loads(log_path.read_text())
engine = create_engine(f"sqlite:///{{log_path.with_suffix('.sqlite')}}")
with engine.begin() as connection:
    connection.execute(
        text("CREATE TABLE logdata (DateTimeEpochMS INTEGER, AI1Eng REAL, AI2Eng REAL)")
    )
    for row in rows:
        connection.execute(
            text("INSERT INTO logdata VALUES (:t, :a, :b)"),
            {{"t": row[0], "a": row[1], "b": row[2]}},
        )
engine.dispose()
"""

FAILING_CONVERTER = """#!{python}
import sys

sys.exit(1)
"""

SILENT_CONVERTER = """#!{python}
"""


def build_series(
    count: int,
    start: datetime = START,
    interval_ms: int = 600,
    channel_a: Callable[[int], float] | None = None,
    channel_b: Callable[[int], float] | None = None,
) -> Series:
    """Build a series of evenly spaced records."""
    if channel_a is None:
        channel_a = lambda i: float(i % 7)  # noqa: E731
    if channel_b is None:
        channel_b = lambda i: float(i % 5)  # noqa: E731
    return tuple(
        Record(
            id=i,
            timestamp=start + timedelta(milliseconds=i * interval_ms),
            channel_a=channel_a(i),
            channel_b=channel_b(i),
        )
        for i in range(count)
    )


def _write_script(path: Path, source: str) -> Path:
    path.write_text(source.format(python=sys.executable))
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def make_series() -> Callable[..., Series]:
    """Provide the series builder."""
    return build_series


@pytest.fixture
def pressure_log() -> Series:
    """5000 records over 50 minutes; channel A spans -2..10, channel B 0..8."""
    return build_series(
        5000,
        channel_a=lambda i: -2.0 + 12.0 * i / 4999,
        channel_b=lambda i: 8.0 * i / 4999,
    )


@pytest.fixture
def fake_converter(tmp_path: Path) -> Path:
    """Converter that turns a JSON list of rows into an SQLite logdata table."""
    return _write_script(tmp_path / "fake_converter", FAKE_CONVERTER)


@pytest.fixture
def failing_converter(tmp_path: Path) -> Path:
    """Converter that always exits with status 1."""
    return _write_script(tmp_path / "failing_converter", FAILING_CONVERTER)


@pytest.fixture
def silent_converter(tmp_path: Path) -> Path:
    """Converter that succeeds without writing anything."""
    return _write_script(tmp_path / "silent_converter", SILENT_CONVERTER)
