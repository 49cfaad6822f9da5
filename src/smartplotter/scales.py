"""Time and value scales for the pressure chart.

Both scales extend their domain to round boundaries ("nice" domains) so that
axis ticks land on human-readable values. Tick positions come from
matplotlib's locators: MaxNLocator steps values by 1, 2 or 5 times a power
of ten, and AutoDateLocator steps times by calendar intervals chosen so that
roughly the requested number of ticks fits the domain.

Time values are carried as epoch milliseconds. Calendar boundaries are
computed in the time zone of the records the scale was built from. The
renderer maps both domains onto the axes by setting them as axis limits.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, tzinfo

import matplotlib.dates as mdates
from matplotlib.ticker import MaxNLocator

from smartplotter.record import Series

# Number of ticks the scales aim for when nicing and labelling
DEFAULT_TICK_COUNT = 10

# Multiples of a power of ten that value ticks may step by
VALUE_TICK_STEPS = [1, 2, 5, 10]


def to_epoch_ms(value: datetime) -> float:
    """Convert a datetime to epoch milliseconds, rounded to the microsecond."""
    return round(value.timestamp() * 1000, 3)


def _from_epoch_ms(ms: float, tz: tzinfo | None) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz)


# Value ticks


def value_ticks(
    low: float, high: float, count: int = DEFAULT_TICK_COUNT
) -> list[float]:
    """Round values spaced for about count ticks.

    The first value is at or below low and the last at or above high.
    """
    locator = MaxNLocator(nbins=count, steps=VALUE_TICK_STEPS)
    return [float(t) for t in locator.tick_values(low, high)]


def nice_max(low: float, high: float, count: int = DEFAULT_TICK_COUNT) -> float:
    """Round high up to the tick boundary at or above it."""
    if low == high:
        return high
    return value_ticks(low, high, count)[-1]


# Time ticks


def date_locator(
    tz: tzinfo | None, count: int = DEFAULT_TICK_COUNT
) -> mdates.AutoDateLocator:
    """Calendar-aware locator aiming for about count ticks in tz."""
    return mdates.AutoDateLocator(
        tz=tz, minticks=max(1, count // 2), maxticks=count + 1
    )


def _locator_ticks(
    locator: mdates.DateLocator, start: datetime, stop: datetime, tz: tzinfo
) -> list[float]:
    return [
        to_epoch_ms(mdates.num2date(t, tz)) for t in locator.tick_values(start, stop)
    ]


def nice_time_domain(
    start: float, stop: float, tz: tzinfo | None = None, count: int = DEFAULT_TICK_COUNT
) -> tuple[float, float]:
    """Extend a time domain outward to the calendar ticks around it.

    The tick interval is the one AutoDateLocator picks for [start, stop].
    """
    if start == stop:
        return start, stop
    tz = tz or UTC
    first = _from_epoch_ms(start, tz)
    last = _from_epoch_ms(stop, tz)

    # Look one span beyond each end so the enclosing ticks are generated too
    locator = date_locator(tz, count).get_locator(first, last)
    span = last - first
    ticks = _locator_ticks(locator, first - span, last + span, tz)

    low = max((t for t in ticks if t <= start), default=start)
    high = min((t for t in ticks if t >= stop), default=stop)
    return low, high


def format_time_tick(ms: float, tz: tzinfo | None = None) -> str:
    """Format a tick at the finest unit it does not share with a coarser boundary.

    A tick on the hour reads "10 AM", a tick inside the hour reads "10:05",
    midnight on January 1st reads "2024", and so on.
    """
    value = _from_epoch_ms(ms, tz)
    if value.microsecond:
        return f".{value.microsecond // 1000:03d}"
    if value.second:
        return value.strftime(":%S")
    if value.minute:
        return value.strftime("%I:%M")
    if value.hour:
        return value.strftime("%I %p")
    if value.day != 1:
        # Weeks start on Sunday
        if value.weekday() != 6:
            return value.strftime("%a %d")
        return value.strftime("%b %d")
    if value.month != 1:
        return value.strftime("%B")
    return value.strftime("%Y")


# Scales


@dataclass(frozen=True)
class TimeScale:
    """Niced time domain in epoch milliseconds with calendar ticks."""

    domain: tuple[float, float]
    tz: tzinfo | None = None

    @property
    def is_degenerate(self) -> bool:
        """True when the domain has zero width."""
        return self.domain[0] == self.domain[1]

    def ticks(self, count: int = DEFAULT_TICK_COUNT) -> list[float]:
        """Epoch-millisecond tick positions inside the domain."""
        start, stop = self.domain
        if start == stop:
            return [start]
        tz = self.tz or UTC
        ticks = _locator_ticks(
            date_locator(tz, count),
            _from_epoch_ms(start, tz),
            _from_epoch_ms(stop, tz),
            tz,
        )
        return [t for t in ticks if start <= t <= stop]

    def format_tick(self, ms: float) -> str:
        """Label for a tick produced by ticks()."""
        return format_time_tick(ms, self.tz)


@dataclass(frozen=True)
class ValueScale:
    """Pressure domain whose upper bound sits on a tick boundary."""

    domain: tuple[float, float]

    def ticks(self, count: int = DEFAULT_TICK_COUNT) -> list[float]:
        """Round values inside the domain."""
        low, high = self.domain
        if low == high:
            return [low]
        return [t for t in value_ticks(low, high, count) if low <= t <= high]


def build_time_scale(series: Series) -> TimeScale:
    """Build a niced time scale spanning the first and last record.

    An empty series, or one whose first and last timestamps are equal, gives
    a degenerate scale with domain (0, 0).
    """
    if not series:
        return TimeScale(domain=(0.0, 0.0))

    left = series[0].epoch_ms
    right = series[-1].epoch_ms
    if left == right:
        return TimeScale(domain=(0.0, 0.0))
    if left > right:
        left, right = right, left

    tz = series[0].timestamp.tzinfo
    return TimeScale(domain=nice_time_domain(left, right, tz), tz=tz)


def build_value_scale(series: Series) -> ValueScale:
    """Build a value scale covering both channels of every record.

    The lower bound is the smaller of zero and the observed minimum so the
    zero line is shown for non-negative data. The upper bound is the observed
    maximum rounded up to a tick boundary.
    """
    if not series:
        return ValueScale(domain=(0.0, 0.0))

    low = min(min(r.channel_a, r.channel_b) for r in series)
    high = max(max(r.channel_a, r.channel_b) for r in series)
    low = min(0.0, low)

    return ValueScale(domain=(float(low), nice_max(low, high)))
