"""Tests for log ingestion."""

import json
import tempfile
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime, timedelta, timezone
from pathlib import Path

import pytest
from sqlalchemy import create_engine, text

from smartplotter.config import ViewerConfig
from smartplotter.ingest import (
    IngestionFailed,
    convert_log,
    ingest_log,
    read_series,
    rows_to_series,
    submit_ingestion,
)

# 2024-01-01T10:00:00Z
EPOCH_MS = 1704103200000


def _rows(count: int) -> list[tuple[int, float, float]]:
    return [(EPOCH_MS + i, float(i), float(-i)) for i in range(count)]


def _log_bytes(count: int) -> bytes:
    return json.dumps(_rows(count)).encode()


def _write_sqlite(path: Path, rows: list[tuple[int, float, float]]) -> Path:
    engine = create_engine(f"sqlite:///{path}")
    with engine.begin() as connection:
        connection.execute(
            text("CREATE TABLE logdata (DateTimeEpochMS INTEGER, AI1Eng REAL, AI2Eng REAL)")
        )
        for row in rows:
            connection.execute(
                text("INSERT INTO logdata VALUES (:t, :a, :b)"),
                {"t": row[0], "a": row[1], "b": row[2]},
            )
    engine.dispose()
    return path


@pytest.fixture
def private_tempdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point tempfile at an empty directory so leftovers can be checked."""
    directory = tmp_path / "tmp"
    directory.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(directory))
    return directory


# rows_to_series


def test_rows_to_series_keeps_one_row_in_ten() -> None:
    series = rows_to_series(_rows(25), decimation_ratio=10, tz=UTC)

    assert [r.id for r in series] == [0, 1, 2]
    assert [r.channel_a for r in series] == [0.0, 10.0, 20.0]
    assert [r.channel_b for r in series] == [0.0, -10.0, -20.0]


def test_rows_to_series_converts_to_requested_zone() -> None:
    zone = timezone(timedelta(hours=-8))

    series = rows_to_series([(EPOCH_MS, 1.0, 2.0)], decimation_ratio=1, tz=zone)

    record = series[0]
    assert record.timestamp == datetime(2024, 1, 1, 10, tzinfo=UTC)
    assert record.timestamp_iso == "2024-01-01T02:00:00-08:00"
    assert record.epoch_ms == EPOCH_MS


def test_rows_to_series_defaults_to_local_zone() -> None:
    series = rows_to_series([(EPOCH_MS, 1.0, 2.0)], decimation_ratio=1)

    assert series[0].timestamp.utcoffset() is not None
    assert series[0].epoch_ms == EPOCH_MS


def test_rows_to_series_drops_incomplete_rows_and_keeps_ids_dense() -> None:
    rows = [
        (EPOCH_MS, 1.0, 1.0),
        (EPOCH_MS + 10, None, 1.0),
        (EPOCH_MS + 20, 3.0, 3.0),
    ]

    series = rows_to_series(rows, decimation_ratio=1, tz=UTC)

    assert [r.id for r in series] == [0, 1]
    assert series[1].channel_a == 3.0


# read_series


def test_read_series_reads_logdata_table(tmp_path: Path) -> None:
    sqlite_path = _write_sqlite(tmp_path / "log.sqlite", _rows(30))

    series = read_series(sqlite_path, decimation_ratio=10, tz=UTC)

    assert len(series) == 3
    assert series[2].epoch_ms == EPOCH_MS + 20


def test_read_series_missing_table_fails(tmp_path: Path) -> None:
    sqlite_path = tmp_path / "empty.sqlite"
    create_engine(f"sqlite:///{sqlite_path}").dispose()

    with pytest.raises(IngestionFailed, match="Could not read"):
        read_series(sqlite_path, decimation_ratio=10)


# convert_log


def test_convert_log_returns_sqlite_beside_log(
    tmp_path: Path, fake_converter: Path
) -> None:
    log_path = tmp_path / "run.fb"
    log_path.write_bytes(_log_bytes(5))

    sqlite_path = convert_log(log_path, fake_converter)

    assert sqlite_path == tmp_path / "run.sqlite"
    assert sqlite_path.exists()


def test_convert_log_nonzero_exit_fails(
    tmp_path: Path, failing_converter: Path
) -> None:
    log_path = tmp_path / "run.fb"
    log_path.write_bytes(b"")

    with pytest.raises(IngestionFailed, match="exit code 1"):
        convert_log(log_path, failing_converter)


def test_convert_log_missing_converter_fails(tmp_path: Path) -> None:
    log_path = tmp_path / "run.fb"
    log_path.write_bytes(b"")

    with pytest.raises(IngestionFailed, match="Could not run converter"):
        convert_log(log_path, tmp_path / "no_such_converter")


def test_convert_log_without_output_fails(
    tmp_path: Path, silent_converter: Path
) -> None:
    log_path = tmp_path / "run.fb"
    log_path.write_bytes(b"")

    with pytest.raises(IngestionFailed, match="did not produce"):
        convert_log(log_path, silent_converter)


# ingest_log


def test_ingest_log_end_to_end(fake_converter: Path, private_tempdir: Path) -> None:
    config = ViewerConfig(converter=fake_converter)

    series = ingest_log(_log_bytes(95), "field_run.fb", config)

    assert [r.id for r in series] == list(range(10))
    assert series[9].channel_a == 90.0
    assert series[9].epoch_ms == EPOCH_MS + 90
    assert list(private_tempdir.iterdir()) == []


def test_ingest_log_honours_decimation_ratio(
    fake_converter: Path, private_tempdir: Path
) -> None:
    config = ViewerConfig(converter=fake_converter, decimation_ratio=1)

    series = ingest_log(_log_bytes(12), "field_run.fb", config)

    assert len(series) == 12


def test_ingest_log_without_rows_fails(
    fake_converter: Path, private_tempdir: Path
) -> None:
    config = ViewerConfig(converter=fake_converter)

    with pytest.raises(IngestionFailed, match="No readable rows"):
        ingest_log(_log_bytes(0), "empty.fb", config)
    assert list(private_tempdir.iterdir()) == []


def test_ingest_log_conversion_failure_cleans_up(
    failing_converter: Path, private_tempdir: Path
) -> None:
    config = ViewerConfig(converter=failing_converter)

    with pytest.raises(IngestionFailed):
        ingest_log(b"\x00\x01", "broken.fb", config)
    assert list(private_tempdir.iterdir()) == []


def test_ingest_log_staging_failure_is_ingestion_failure(
    fake_converter: Path, private_tempdir: Path
) -> None:
    config = ViewerConfig(converter=fake_converter)

    # An empty name points the log file at the temporary directory itself
    with pytest.raises(IngestionFailed, match="Could not stage"):
        ingest_log(_log_bytes(5), "", config)
    assert list(private_tempdir.iterdir()) == []


def test_submit_ingestion_resolves_to_series(fake_converter: Path) -> None:
    config = ViewerConfig(converter=fake_converter)

    with ThreadPoolExecutor(max_workers=1) as executor:
        future = submit_ingestion(executor, _log_bytes(40), "run.fb", config)
        series = future.result(timeout=60)

    assert len(series) == 4


def test_submit_ingestion_surfaces_failure(failing_converter: Path) -> None:
    config = ViewerConfig(converter=failing_converter)

    with ThreadPoolExecutor(max_workers=1) as executor:
        future = submit_ingestion(executor, b"", "run.fb", config)
        with pytest.raises(IngestionFailed):
            future.result(timeout=60)
