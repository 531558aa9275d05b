from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

from .config import LayoutOptions
from .viewport import TimeRange


@dataclass(frozen=True)
class BarLayout:
    width: float
    gap: float


def compute_item_width(
    available_width_px: float,
    item_count: int,
    gap_width_px: float,
    min_item_width_px: float,
    max_item_width_px: float,
) -> float:
    if item_count <= 0:
        return min_item_width_px
    space_for_items = available_width_px - (item_count - 1) * gap_width_px
    width = space_for_items / item_count
    return max(min_item_width_px, min(max_item_width_px, width))


def candle_count(time_range: TimeRange, interval_ms: float) -> int:
    if interval_ms <= 0 or time_range.duration <= 0:
        return 0
    return int(math.ceil(time_range.duration / interval_ms))


def bar_layout(available_width_px: float, time_range: TimeRange, interval_ms: float, options: LayoutOptions) -> BarLayout:
    # Logical pixels only. The surface applies the device pixel ratio.
    count = candle_count(time_range, interval_ms)
    width = compute_item_width(
        available_width_px,
        count,
        options.gap_width_px,
        options.min_bar_width_px,
        options.max_bar_width_px,
    )
    return BarLayout(width=width, gap=options.gap_width_px)


# Zooming in stops once this many candles fill the width.
MIN_VISIBLE_CANDLES = 10


def zoom_span_limits(available_width_px: float, interval_ms: float, options: LayoutOptions) -> Tuple[float, float]:
    """
    (min, max) visible time span for wheel zoom.

    The maximum keeps every candle at least min_bar_width_px wide plus its gap, so
    zooming out never overlaps candles and bounds the slots walked per draw.
    """
    min_span = MIN_VISIBLE_CANDLES * interval_ms
    per_candle = max(1.0, options.min_bar_width_px + options.gap_width_px)
    max_candles = int(math.floor(max(0.0, available_width_px) / per_candle))
    max_span = max(min_span, max_candles * interval_ms)
    return min_span, max_span
