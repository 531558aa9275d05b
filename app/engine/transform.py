"""
Coordinate mapping shared by every drawing layer and the price-line overlay.

The price axis is inverted relative to pixels: price_range.max sits at y=0 and
price_range.min at y=height. All functions work in logical pixels; device pixel
ratio scaling happens on the drawing surface only.
"""
from __future__ import annotations

from dataclasses import dataclass

from .viewport import PriceRange, TimeRange


def price_to_y(price: float, price_range: PriceRange, height_px: float) -> float:
    span = price_range.max - price_range.min
    if height_px == 0 or span == 0:
        return 0.0
    return ((price_range.max - price) / span) * height_px


def y_to_price(y: float, price_range: PriceRange, height_px: float) -> float:
    if height_px == 0:
        return 0.0
    span = price_range.max - price_range.min
    if span == 0:
        return price_range.max
    return price_range.max - (y / height_px) * span


def time_to_x(timestamp: float, time_range: TimeRange, width_px: float) -> float:
    duration = time_range.end - time_range.start
    if width_px == 0 or duration == 0:
        return 0.0
    return ((timestamp - time_range.start) / duration) * width_px


def x_to_time(x: float, time_range: TimeRange, width_px: float) -> float:
    if width_px == 0:
        return time_range.start
    return time_range.start + (x / width_px) * (time_range.end - time_range.start)


@dataclass(frozen=True)
class AxisMapping:
    time_range: TimeRange
    price_range: PriceRange
    width: float
    height: float

    def price_to_y(self, price: float) -> float:
        return price_to_y(price, self.price_range, self.height)

    def y_to_price(self, y: float) -> float:
        return y_to_price(y, self.price_range, self.height)

    def time_to_x(self, timestamp: float) -> float:
        return time_to_x(timestamp, self.time_range, self.width)

    def x_to_time(self, x: float) -> float:
        return x_to_time(x, self.time_range, self.width)
