from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

MIN_PRICE_SPAN = 0.0001


@dataclass(frozen=True)
class TimeRange:
    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start

    def contains(self, timestamp: float) -> bool:
        return self.start <= timestamp <= self.end

    def shift(self, delta_ms: float) -> "TimeRange":
        return TimeRange(self.start + delta_ms, self.end + delta_ms)

    def zoom(
        self,
        factor: float,
        anchor_ratio: float = 0.5,
        min_span: float = 1.0,
        max_span: Optional[float] = None,
    ) -> "TimeRange":
        # factor > 1 zooms out, < 1 zooms in; the anchor keeps its position on screen.
        if factor <= 0:
            return self
        anchor_ratio = min(1.0, max(0.0, anchor_ratio))
        span = self.duration * factor
        if max_span is not None:
            span = min(span, max_span)
        span = max(1.0, min_span, span)
        anchor = self.start + self.duration * anchor_ratio
        start = anchor - span * anchor_ratio
        return TimeRange(start, start + span)


@dataclass(frozen=True)
class PriceRange:
    min: float
    max: float

    @property
    def span(self) -> float:
        return self.max - self.min

    def contains(self, price: float) -> bool:
        return self.min <= price <= self.max

    def shift(self, amount: float) -> "PriceRange":
        return PriceRange(self.min + amount, self.max + amount)

    def adjust(self, delta_y: float, zoom_center: float = 0.5) -> "PriceRange":
        """
        Zoom the price axis around a pointer.

        zoom_center is the pointer's vertical position as a 0..1 ratio; positive
        delta_y narrows the range.
        """
        span = self.span
        new_span = max(span - span * 0.005 * delta_y, MIN_PRICE_SPAN)
        difference = span - new_span
        return PriceRange(
            self.min + difference * zoom_center,
            self.max - difference * (1.0 - zoom_center),
        )

    def padded(self, ratio: float) -> "PriceRange":
        pad = self.span * ratio
        if pad <= 0:
            pad = max(abs(self.max) * ratio, MIN_PRICE_SPAN)
        return PriceRange(self.min - pad, self.max + pad)


@dataclass(frozen=True)
class Viewport:
    time_range: TimeRange
    price_range: PriceRange
