"""Stride downsampling of a series to a visible-point cap."""

from __future__ import annotations

import logging

from smartplotter.record import Series

logger = logging.getLogger(__name__)

# Maximum number of points handed to the chart
VISIBLE_POINT_CAP = 1000


def downsample(series: Series, cap: int = VISIBLE_POINT_CAP) -> Series:
    """Reduce a series to at most cap records by fixed-stride selection.

    Keeps records at positions 0, step, 2*step, ... where
    step = len(series) // cap, and repeats on the result while it is still
    above cap. Once the step drops to 1 the series is returned as is, so a
    series between cap and 2*cap records is never shrunk.

    The first record is always kept. The last record is only kept when
    (len(series) - 1) is a multiple of the step.

    Args:
        series: Records in chronological order
        cap: Maximum number of records wanted

    Returns:
        The input itself when it already fits, otherwise a new series

    Raises:
        ValueError: If cap is less than 1
    """
    if cap < 1:
        raise ValueError(f"Visible point cap must be at least 1, got {cap}")

    if len(series) <= cap:
        return series

    points = series
    while len(points) > cap:
        step = len(points) // cap
        if step <= 1:
            break
        points = points[::step]

    logger.debug("Downsampled %d records to %d (cap %d)", len(series), len(points), cap)
    return points
