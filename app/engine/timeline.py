"""
Timeline iteration: one (x, timestamp) slot per expected candle in a viewport.

Slot boundaries are multiples of the interval (optionally shifted to local wall
clock time), never offsets from the viewport start, so panning does not make
candles jitter. x is computed with transform.time_to_x, the same mapping the
layers use to place candles, volume bars and price-line endpoints.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import math
from typing import Callable, Iterator, NamedTuple, Optional

from .price_history import Granularity, granularity_to_ms
from .transform import time_to_x
from .viewport import TimeRange

MINUTE_MS = 60_000
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS


class TimelineSlot(NamedTuple):
    x: float
    timestamp: int


def _local_offset_ms(timestamp_ms: float) -> int:
    try:
        local = datetime.fromtimestamp(timestamp_ms / 1000.0, tz=timezone.utc).astimezone()
    except (OverflowError, OSError, ValueError):
        return 0
    offset = local.utcoffset()
    return int(offset.total_seconds() * 1000) if offset is not None else 0


@dataclass(frozen=True)
class Timeline:
    granularity: Granularity
    viewport_start: float
    viewport_end: float
    canvas_width_px: float
    interval_ms: Optional[int] = None
    align_to_local_time: bool = False

    @property
    def step_ms(self) -> int:
        step = self.interval_ms if self.interval_ms is not None else granularity_to_ms(self.granularity)
        if step <= 0:
            raise ValueError(f"Timeline interval must be positive, got {step}")
        return int(step)

    def first_slot(self) -> int:
        step = self.step_ms
        offset = _local_offset_ms(self.viewport_start) if self.align_to_local_time else 0
        return int(math.floor((self.viewport_start + offset) / step) * step - offset)

    def __iter__(self) -> Iterator[TimelineSlot]:
        step = self.step_ms
        if self.viewport_end <= self.viewport_start:
            return
        time_range = TimeRange(self.viewport_start, self.viewport_end)
        timestamp = self.first_slot()
        while timestamp <= self.viewport_end:
            yield TimelineSlot(time_to_x(timestamp, time_range, self.canvas_width_px), timestamp)
            timestamp += step


def iterate_timeline(callback: Callable[[float, int], None], **kwargs) -> None:
    for x, timestamp in Timeline(**kwargs):
        callback(x, timestamp)


def label_interval_ms(granularity: Granularity) -> int:
    if granularity == Granularity.ONE_MINUTE:
        return 10 * MINUTE_MS
    if granularity == Granularity.ONE_HOUR:
        return 6 * HOUR_MS
    if granularity_to_ms(granularity) >= DAY_MS:
        return DAY_MS
    return 12 * HOUR_MS


def format_label(timestamp_ms: float, granularity: Granularity) -> str:
    moment = datetime.fromtimestamp(timestamp_ms / 1000.0)
    if granularity_to_ms(granularity) >= DAY_MS:
        return f"{moment.strftime('%b')} {moment.day}"
    return moment.strftime('%H:%M')
