from __future__ import annotations

from typing import Union

from .viewport import TimeRange

# Seconds-based timestamps stay below this value until 2033-05-18.
SECONDS_BOUNDARY = 2_000_000_000

Number = Union[int, float]


def to_millis(timestamp: Number) -> int:
    """
    Normalize a feed timestamp to milliseconds.

    Feeds hand us either epoch seconds or epoch milliseconds. Anything below
    SECONDS_BOUNDARY is read as seconds. This is a calendar heuristic, not unit
    detection: a seconds value at or past the boundary is taken as milliseconds.
    """
    if timestamp < SECONDS_BOUNDARY:
        return int(round(timestamp * 1000))
    return int(timestamp)


def is_in_viewport(timestamp: Number, time_range: TimeRange, buffer_ms: Number = 0) -> bool:
    ts_ms = to_millis(timestamp)
    return (time_range.start - buffer_ms) <= ts_ms <= (time_range.end + buffer_ms)
