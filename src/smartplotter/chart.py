"""Pressure chart rendering for SmartPlotter."""

from __future__ import annotations

import bisect
from typing import TYPE_CHECKING

import matplotlib.pyplot as plt
from matplotlib.widgets import Button

from smartplotter.record import Record, Series
from smartplotter.scales import DEFAULT_TICK_COUNT
from smartplotter.zoom import ChartView, PlotSession, PointerHit

if TYPE_CHECKING:
    from matplotlib.axes import Axes
    from matplotlib.backend_bases import MouseEvent

DEADMAN_COLOR = "#3182bd"
FEEDBACK_COLOR = "#db654d"


def find_nearest_record(points: Series, x: float | None) -> Record | None:
    """Find the displayed record closest in time to an x position.

    Args:
        points: Displayed records in chronological order
        x: Cursor position in epoch milliseconds (None when off the axes)

    Returns:
        The nearest record, or None if there is nothing under the cursor
    """
    if x is None or not points:
        return None

    times = [p.epoch_ms for p in points]
    i = bisect.bisect_left(times, x)
    if i == len(times):
        i -= 1
    elif i > 0 and x - times[i - 1] <= times[i] - x:
        i -= 1
    return points[i]


def draw_view(ax: Axes, view: ChartView, tick_count: int = DEFAULT_TICK_COUNT) -> None:
    """Draw both channels of a view onto an axes using its scales."""
    times = [p.epoch_ms for p in view.points]
    ax.plot(
        times,
        [p.channel_a for p in view.points],
        linewidth=0.8,
        color=DEADMAN_COLOR,
        label="Deadman",
    )
    ax.plot(
        times,
        [p.channel_b for p in view.points],
        linewidth=0.8,
        color=FEEDBACK_COLOR,
        label="Feedback",
    )

    time_scale = view.time_scale
    if not time_scale.is_degenerate:
        ax.set_xlim(*time_scale.domain)
        ticks = time_scale.ticks(tick_count)
        ax.set_xticks(ticks, [time_scale.format_tick(t) for t in ticks])

    low, high = view.value_scale.domain
    if low != high:
        ax.set_ylim(low, high)
        ax.set_yticks(view.value_scale.ticks(tick_count))

    overlay = view.selection_overlay
    if overlay is not None:
        ax.axvspan(min(overlay), max(overlay), alpha=0.2, color="gray")

    ax.set_xlabel("Time")
    ax.set_ylabel("Pressure (PSIG)")
    ax.grid(True, linestyle="--", alpha=0.3)
    ax.axhline(y=0, color="k", linewidth=0.5)
    ax.legend(loc="upper right")


def format_readout(record: Record) -> str:
    """Hover text for a record."""
    return (
        f"{record.timestamp_iso}\n"
        f"Deadman: {record.channel_a:.2f} psig\n"
        f"Feedback: {record.channel_b:.2f} psig"
    )


def save_plot(
    view: ChartView,
    filename: str,
    title: str | None = None,
    tick_count: int = DEFAULT_TICK_COUNT,
) -> None:
    """Save a view of the pressure chart to an image file.

    Args:
        view: View to draw
        filename: Path to the output image file (e.g., .png)
        title: Optional chart title
        tick_count: Number of ticks the axes aim for
    """
    fig, ax = plt.subplots(figsize=(12, 6))
    draw_view(ax, view, tick_count)
    if title:
        ax.set_title(title)

    fig.tight_layout()
    fig.savefig(filename, dpi=150)
    plt.close(fig)


class LogPlot:
    """Interactive chart window with drag-to-zoom.

    Dragging across the chart zooms into the selected records; "Reset Zoom"
    returns to the view shown when the file was loaded and "Upload New Log"
    discards the file and closes the window.
    """

    def __init__(
        self,
        session: PlotSession,
        title: str | None = None,
        tick_count: int = DEFAULT_TICK_COUNT,
    ) -> None:
        """Create the chart window for a session with a loaded file.

        Args:
            session: Session holding the loaded series and current view
            title: Optional chart title (usually the log file name)
            tick_count: Number of ticks the axes aim for
        """
        self._session = session
        self._title = title
        self._tick_count = tick_count

        self.figure = plt.figure(figsize=(12, 8))
        self.ax = self.figure.add_axes((0.08, 0.18, 0.88, 0.74))
        upload_ax = self.figure.add_axes((0.30, 0.03, 0.18, 0.06))
        reset_ax = self.figure.add_axes((0.52, 0.03, 0.18, 0.06))
        self.upload_button = Button(upload_ax, "Upload New Log")
        self.reset_button = Button(reset_ax, "Reset Zoom")
        self.upload_button.on_clicked(lambda _event: self.upload_new())
        self.reset_button.on_clicked(lambda _event: self.reset_zoom())

        canvas = self.figure.canvas
        canvas.mpl_connect("button_press_event", self._on_press)
        canvas.mpl_connect("motion_notify_event", self._on_motion)
        canvas.mpl_connect("button_release_event", self._on_release)

        self.draw()

    def draw(self) -> None:
        """Redraw the chart from the session's current view."""
        self.ax.clear()
        draw_view(self.ax, self._session.view, self._tick_count)
        if self._title:
            self.ax.set_title(self._title)
        self._readout = self.ax.text(
            0.01, 0.98, "", transform=self.ax.transAxes, va="top", fontsize=9
        )
        self.figure.canvas.draw_idle()

    def reset_zoom(self) -> None:
        self._session.reset_zoom()
        self.draw()

    def upload_new(self) -> None:
        self._session.reset_upload()
        plt.close(self.figure)

    def show(self) -> None:
        """Show the window and block until it is closed."""
        plt.show()

    def _record_under(self, event: MouseEvent) -> Record | None:
        if event.inaxes is not self.ax:
            return None
        return find_nearest_record(self._session.view.points, event.xdata)

    def _on_press(self, event: MouseEvent) -> None:
        if event.button != 1 or event.inaxes is not self.ax:
            return
        record = self._record_under(event)
        hit = PointerHit.from_record(record) if record is not None else None
        self._session.press(hit)
        self.draw()

    def _on_motion(self, event: MouseEvent) -> None:
        if not self._session.is_loaded:
            return
        record = self._record_under(event)
        self._readout.set_text(format_readout(record) if record is not None else "")

        before = self._session.view.selection
        hit = PointerHit.from_record(record) if record is not None else None
        after = self._session.drag(hit).selection
        if after != before:
            self.draw()
        else:
            self.figure.canvas.draw_idle()

    def _on_release(self, event: MouseEvent) -> None:
        if event.button != 1 or not self._session.is_loaded:
            return
        self._session.release()
        self.draw()
