from __future__ import annotations

from bisect import bisect_left, bisect_right
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .errors import UnknownGranularityError
from .timestamps import to_millis
from .viewport import PriceRange, TimeRange


class Granularity(str, Enum):
    ONE_MINUTE = 'ONE_MINUTE'
    FIVE_MINUTE = 'FIVE_MINUTE'
    FIFTEEN_MINUTE = 'FIFTEEN_MINUTE'
    THIRTY_MINUTE = 'THIRTY_MINUTE'
    ONE_HOUR = 'ONE_HOUR'
    TWO_HOUR = 'TWO_HOUR'
    SIX_HOUR = 'SIX_HOUR'
    ONE_DAY = 'ONE_DAY'


_GRANULARITY_MS: Dict[Granularity, int] = {
    Granularity.ONE_MINUTE: 60_000,
    Granularity.FIVE_MINUTE: 5 * 60_000,
    Granularity.FIFTEEN_MINUTE: 15 * 60_000,
    Granularity.THIRTY_MINUTE: 30 * 60_000,
    Granularity.ONE_HOUR: 3_600_000,
    Granularity.TWO_HOUR: 2 * 3_600_000,
    Granularity.SIX_HOUR: 6 * 3_600_000,
    Granularity.ONE_DAY: 86_400_000,
}

_GRANULARITY_LABELS: Dict[Granularity, str] = {
    Granularity.ONE_MINUTE: '1m',
    Granularity.FIVE_MINUTE: '5m',
    Granularity.FIFTEEN_MINUTE: '15m',
    Granularity.THIRTY_MINUTE: '30m',
    Granularity.ONE_HOUR: '1h',
    Granularity.TWO_HOUR: '2h',
    Granularity.SIX_HOUR: '6h',
    Granularity.ONE_DAY: '1d',
}


def as_granularity(value: object) -> Granularity:
    if isinstance(value, Granularity):
        return value
    try:
        return Granularity(str(value))
    except ValueError:
        raise UnknownGranularityError(value) from None


def granularity_to_ms(granularity: object) -> int:
    return _GRANULARITY_MS[as_granularity(granularity)]


def granularity_label(granularity: object) -> str:
    try:
        return _GRANULARITY_LABELS[as_granularity(granularity)]
    except UnknownGranularityError:
        return str(granularity)


@dataclass(frozen=True)
class Candle:
    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0
    live: bool = False

    @property
    def is_up(self) -> bool:
        return self.close >= self.open

    @classmethod
    def from_row(cls, row: Sequence[float], live: bool = False) -> "Candle":
        # ts, open, high, low, close, volume
        volume = float(row[5]) if len(row) > 5 and row[5] is not None else 0.0
        return cls(
            timestamp=to_millis(row[0]),
            open=float(row[1]),
            high=float(row[2]),
            low=float(row[3]),
            close=float(row[4]),
            volume=max(0.0, volume),
            live=live,
        )


class PriceHistory:
    """
    In-memory, ordered candle series at one fixed granularity.

    Lookups are binary searches over a sorted timestamp list; the series may have
    gaps. Candles are immutable; a live update replaces the stored candle.
    """

    def __init__(self, granularity: object, candles: Iterable[Candle] = ()) -> None:
        self._granularity = as_granularity(granularity)
        self._by_ts: Dict[int, Candle] = {}
        for candle in candles:
            timestamp = to_millis(candle.timestamp)
            if timestamp != candle.timestamp:
                candle = replace(candle, timestamp=timestamp)
            self._by_ts[timestamp] = candle
        self._ts: List[int] = sorted(self._by_ts)

    @classmethod
    def from_rows(cls, granularity: object, rows: Iterable[Sequence[float]]) -> "PriceHistory":
        candles = []
        for row in rows:
            if len(row) < 5:
                continue
            try:
                candles.append(Candle.from_row(row))
            except (ValueError, TypeError):
                continue
        return cls(granularity, candles)

    def get_granularity(self) -> Granularity:
        return self._granularity

    @property
    def granularity_ms(self) -> int:
        return _GRANULARITY_MS[self._granularity]

    def __len__(self) -> int:
        return len(self._ts)

    @property
    def start_timestamp(self) -> Optional[int]:
        return self._ts[0] if self._ts else None

    @property
    def end_timestamp(self) -> Optional[int]:
        return self._ts[-1] if self._ts else None

    def timestamps(self) -> List[int]:
        return list(self._ts)

    def find_nearest_index(self, timestamp: float) -> int:
        if not self._ts:
            return -1
        idx = bisect_left(self._ts, timestamp)
        if idx >= len(self._ts):
            return len(self._ts) - 1
        if idx == 0 or self._ts[idx] == timestamp:
            return idx
        before = self._ts[idx - 1]
        after = self._ts[idx]
        return idx if abs(after - timestamp) < abs(timestamp - before) else idx - 1

    def get_candle(self, timestamp: float) -> Optional[Candle]:
        """Nearest candle strictly closer than one interval, or None for a gap."""
        idx = self.find_nearest_index(timestamp)
        if idx < 0:
            return None
        ts = self._ts[idx]
        if abs(ts - timestamp) < self.granularity_ms:
            return self._by_ts[ts]
        return None

    def is_candle_available(self, timestamp: float) -> bool:
        return self.get_candle(timestamp) is not None

    def get_candles_in_range(self, start: float, end: float) -> List[Tuple[int, Candle]]:
        i0 = bisect_left(self._ts, start)
        i1 = bisect_right(self._ts, end)
        return [(ts, self._by_ts[ts]) for ts in self._ts[i0:i1]]

    def volumes_in_range(self, start: float, end: float) -> np.ndarray:
        candles = self.get_candles_in_range(start, end)
        return np.fromiter((c.volume for _, c in candles), dtype=np.float64, count=len(candles))

    def get_price_range(self, start: float, end: float) -> Optional[PriceRange]:
        candles = self.get_candles_in_range(start, end)
        if not candles:
            return None
        low = min(c.low for _, c in candles)
        high = max(c.high for _, c in candles)
        return PriceRange(low, high)

    def set_live_candle(self, candle: Candle, granularity: object = None) -> bool:
        """
        Merge a live update into the series.

        Rejected (False) when the history is empty, the update was built for another
        granularity, or it is older than the last stored candle. An update for an
        existing slot keeps the stored open, widens high/low (including the new
        close) and takes the new close and volume.
        """
        if not self._ts:
            return False
        if granularity is not None and as_granularity(granularity) != self._granularity:
            return False
        timestamp = to_millis(candle.timestamp)
        if timestamp < self._ts[-1]:
            return False
        existing = self.get_candle(timestamp)
        if existing is not None:
            merged = Candle(
                timestamp=existing.timestamp,
                open=existing.open,
                high=max(existing.high, candle.high, candle.close),
                low=min(existing.low, candle.low, candle.close),
                close=candle.close,
                volume=candle.volume,
                live=True,
            )
            self._by_ts[existing.timestamp] = merged
            return True
        self._by_ts[timestamp] = replace(candle, timestamp=timestamp, live=True)
        self._ts.append(timestamp)
        return True

    def get_gaps(self, start: float, end: float) -> List[TimeRange]:
        step = self.granularity_ms
        gaps: List[TimeRange] = []
        if end <= start:
            return gaps
        steps = int(np.ceil((end - start) / step))
        for i in range(steps):
            current = start + i * step
            if not self.is_candle_available(current):
                gaps.append(TimeRange(current, current + step))
        return gaps
