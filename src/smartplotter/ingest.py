"""Log file ingestion for SmartPlotter.

A binary log is turned into rows by an external converter that writes an
SQLite snapshot next to its input. The two pressure channels and the
timestamp are read back, thinned to one row in ten and converted to the
viewer's local time zone.
"""

from __future__ import annotations

import logging
import subprocess
import tempfile
from collections.abc import Iterable
from concurrent.futures import Executor, Future
from datetime import UTC, datetime, tzinfo
from pathlib import Path

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError

from smartplotter.config import ViewerConfig
from smartplotter.record import Record, Series

logger = logging.getLogger(__name__)

# Timestamp (UTC epoch ms), deadman pressure, feedback pressure
LOG_QUERY = "SELECT DateTimeEpochMS, AI1Eng, AI2Eng FROM logdata"

Row = tuple[float | None, float | None, float | None]


class IngestionFailed(Exception):
    """Raised when a log file cannot be turned into a series."""


def convert_log(log_path: Path, converter: Path, timeout: float | None = None) -> Path:
    """Run the external converter on a log file.

    Args:
        log_path: Binary log file to convert
        converter: Converter executable
        timeout: Seconds to wait before giving up (None waits forever)

    Returns:
        Path of the SQLite file written beside the log

    Raises:
        IngestionFailed: If the converter cannot be run, fails or times out
    """
    logger.info("Converting %s with %s", log_path.name, converter)
    try:
        subprocess.run(
            [str(converter), str(log_path)],
            check=True,
            capture_output=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        raise IngestionFailed("File conversion timed out") from exc
    except subprocess.CalledProcessError as exc:
        raise IngestionFailed(
            f"File conversion failed (exit code {exc.returncode})"
        ) from exc
    except OSError as exc:
        raise IngestionFailed(f"Could not run converter {converter}: {exc}") from exc

    sqlite_path = log_path.with_suffix(".sqlite")
    if not sqlite_path.exists():
        raise IngestionFailed("Converter did not produce an SQLite file")
    return sqlite_path


def rows_to_series(
    rows: Iterable[Row], decimation_ratio: int, tz: tzinfo | None = None
) -> Series:
    """Build a series from (epoch ms, channel A, channel B) rows.

    Keeps every decimation_ratio-th row counting from the first. Kept rows
    with missing values are dropped. Ids are assigned in order from 0, so a
    record's id is its position in the series.

    Args:
        rows: Rows in chronological order
        decimation_ratio: Keep one row out of this many
        tz: Zone for the timestamps (None means the local zone)

    Returns:
        Series of records
    """
    records: list[Record] = []
    dropped = 0
    for index, (epoch_ms, channel_a, channel_b) in enumerate(rows):
        if index % decimation_ratio:
            continue
        if epoch_ms is None or channel_a is None or channel_b is None:
            dropped += 1
            continue
        timestamp = datetime.fromtimestamp(epoch_ms / 1000, UTC).astimezone(tz)
        records.append(
            Record(
                id=len(records),
                timestamp=timestamp,
                channel_a=float(channel_a),
                channel_b=float(channel_b),
            )
        )

    if dropped:
        logger.warning("Dropped %d rows with missing values", dropped)
    return tuple(records)


def read_series(
    sqlite_path: Path, decimation_ratio: int, tz: tzinfo | None = None
) -> Series:
    """Read the log table of a converted SQLite file into a series.

    Raises:
        IngestionFailed: If the database or table cannot be read
    """
    engine = create_engine(f"sqlite:///{sqlite_path}")
    try:
        with engine.connect() as connection:
            result = connection.execute(text(LOG_QUERY))
            return rows_to_series(result, decimation_ratio, tz)
    except SQLAlchemyError as exc:
        raise IngestionFailed(f"Could not read {sqlite_path.name}: {exc}") from exc
    finally:
        engine.dispose()


def ingest_log(data: bytes, name: str, config: ViewerConfig | None = None) -> Series:
    """Convert raw log bytes into a series.

    The log and the SQLite file are written to a private temporary directory
    that is removed whatever the outcome.

    Args:
        data: Contents of the log file
        name: Original file name (its stem names the SQLite file)
        config: Viewer configuration (defaults if omitted)

    Returns:
        Non-empty series in chronological order

    Raises:
        IngestionFailed: If the log cannot be staged, conversion fails or no
            rows could be read
    """
    if config is None:
        config = ViewerConfig()

    try:
        with tempfile.TemporaryDirectory(prefix="smartplotter-") as temp_dir:
            log_path = Path(temp_dir) / Path(name).name
            log_path.write_bytes(data)
            sqlite_path = convert_log(
                log_path, config.converter, config.conversion_timeout_s
            )
            log_path.unlink()
            series = read_series(sqlite_path, config.decimation_ratio)
    except OSError as exc:
        raise IngestionFailed(f"Could not stage {name!r}: {exc}") from exc

    if not series:
        raise IngestionFailed(f"No readable rows in {name}")
    logger.info("Read %d records from %s", len(series), name)
    return series


def submit_ingestion(
    executor: Executor, data: bytes, name: str, config: ViewerConfig | None = None
) -> Future[Series]:
    """Start ingesting a log in the background.

    The returned future resolves to the series or raises IngestionFailed.
    """
    return executor.submit(ingest_log, data, name, config)
