"""Drag-to-zoom selection state for the pressure chart.

Every transition takes a ChartView and returns a new one; nothing is edited
in place. PlotSession holds the views for one loaded log file together with
the untouched original series and the initial view used by "Reset Zoom".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from smartplotter.downsample import VISIBLE_POINT_CAP, downsample
from smartplotter.record import Record, Series
from smartplotter.scales import (
    TimeScale,
    ValueScale,
    build_time_scale,
    build_value_scale,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PointerHit:
    """The chart point under the pointer: its record id and epoch-ms time."""

    record_id: int
    time: float

    @classmethod
    def from_record(cls, record: Record) -> PointerHit:
        return cls(record_id=record.id, time=record.epoch_ms)


@dataclass(frozen=True)
class Idle:
    """No selection in progress."""

    left_index: None = None
    right_index: None = None
    left_time: None = None
    right_time: None = None


@dataclass(frozen=True)
class Selecting:
    """The pointer went down on a point and a range is being dragged out."""

    left_index: int
    left_time: float
    right_index: int | None = None
    right_time: float | None = None


Selection = Idle | Selecting

IDLE = Idle()


@dataclass(frozen=True)
class ChartView:
    """Everything the chart needs to draw one frame."""

    points: Series
    time_scale: TimeScale
    value_scale: ValueScale
    selection: Selection = IDLE

    @property
    def selection_overlay(self) -> tuple[float, float] | None:
        """Time span to shade while dragging, once both ends are known."""
        selection = self.selection
        if isinstance(selection, Selecting) and selection.right_time is not None:
            return selection.left_time, selection.right_time
        return None


def build_view(series: Series, cap: int = VISIBLE_POINT_CAP) -> ChartView:
    """Downsample a series and build both scales from the result."""
    points = downsample(series, cap)
    return ChartView(
        points=points,
        time_scale=build_time_scale(points),
        value_scale=build_value_scale(points),
    )


def pointer_down(view: ChartView, hit: PointerHit | None) -> ChartView:
    """Start a selection at the point under the pointer."""
    if hit is None:
        return replace(view, selection=IDLE)
    return replace(
        view, selection=Selecting(left_index=hit.record_id, left_time=hit.time)
    )


def pointer_move(view: ChartView, hit: PointerHit | None) -> ChartView:
    """Extend the selection to the point under the pointer.

    Does nothing unless a selection is in progress. Moving off the data
    clears the right end of the selection.
    """
    selection = view.selection
    if not isinstance(selection, Selecting):
        return view
    if hit is None:
        return replace(
            view, selection=replace(selection, right_index=None, right_time=None)
        )
    return replace(
        view,
        selection=replace(selection, right_index=hit.record_id, right_time=hit.time),
    )


def pointer_up(
    view: ChartView, original: Series, cap: int = VISIBLE_POINT_CAP
) -> ChartView:
    """Finish a selection, zooming into it when it covers more than one point.

    The zoomed view is cut from the original series, not the displayed one,
    so detail that was dropped by downsampling reappears.
    """
    selection = view.selection
    if (
        not isinstance(selection, Selecting)
        or selection.right_index is None
        or selection.left_index == selection.right_index
    ):
        return replace(view, selection=IDLE)

    low = min(selection.left_index, selection.right_index)
    high = max(selection.left_index, selection.right_index)
    logger.debug("Zooming to records [%d, %d)", low, high)
    return build_view(original[low:high], cap)


class PlotSession:
    """View state for one loaded log file."""

    def __init__(self, cap: int = VISIBLE_POINT_CAP) -> None:
        """Initialize an empty session awaiting a file.

        Args:
            cap: Maximum number of points shown at once
        """
        self._cap = cap
        self._original: Series | None = None
        self._initial_view: ChartView | None = None
        self._view: ChartView | None = None

    @property
    def is_loaded(self) -> bool:
        """True once a series has been loaded and not discarded."""
        return self._original is not None

    @property
    def original(self) -> Series:
        """The full series of the loaded file."""
        if self._original is None:
            raise RuntimeError("No log file loaded")
        return self._original

    @property
    def initial_view(self) -> ChartView:
        """The view computed when the file was loaded."""
        if self._initial_view is None:
            raise RuntimeError("No log file loaded")
        return self._initial_view

    @property
    def view(self) -> ChartView:
        """The view currently on screen."""
        if self._view is None:
            raise RuntimeError("No log file loaded")
        return self._view

    def load(self, series: Series) -> ChartView:
        """Take ownership of a newly ingested series and build the first view."""
        self._original = series
        self._initial_view = build_view(series, self._cap)
        self._view = self._initial_view
        logger.info(
            "Loaded %d records, showing %d",
            len(series),
            len(self._initial_view.points),
        )
        return self._view

    def press(self, hit: PointerHit | None) -> ChartView:
        self._view = pointer_down(self.view, hit)
        return self._view

    def drag(self, hit: PointerHit | None) -> ChartView:
        self._view = pointer_move(self.view, hit)
        return self._view

    def release(self) -> ChartView:
        self._view = pointer_up(self.view, self.original, self._cap)
        return self._view

    def reset_zoom(self) -> ChartView:
        """Go back to the view computed at load time."""
        self._view = self.initial_view
        return self._view

    def reset_upload(self) -> None:
        """Forget the loaded file and wait for a new one."""
        self._original = None
        self._initial_view = None
        self._view = None
