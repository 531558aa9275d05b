from __future__ import annotations

from typing import Callable, Optional

import numpy as np
from PyQt6.QtCore import QRectF
from PyQt6.QtGui import QImage, QPainter

from engine.config import ChartOptions
from engine.layout import bar_layout
from engine.state import ChartState, Subscription
from engine.timeline import Timeline

from .styles import PaintCache, with_alpha
from .surface import BitmapSurface, SurfaceState


def max_volume(volumes: np.ndarray) -> float:
    """Largest visible volume, never below 1 so all-zero ranges do not divide by zero."""
    if volumes is None or volumes.size == 0:
        return 1.0
    vmax = float(np.max(np.nan_to_num(volumes, nan=0.0, posinf=0.0, neginf=0.0)))
    return max(1.0, vmax)


def volume_bar_height(volume: float, volume_max: float, height: float) -> float:
    if height <= 0 or not np.isfinite(volume) or volume <= 0:
        return 0.0
    return min(height, (volume / max(1.0, volume_max)) * height)


class VolumeLayer:
    def __init__(self, state: ChartState, options: Optional[ChartOptions] = None) -> None:
        self.chart_state = state
        self.options = options or ChartOptions()
        self.surface = BitmapSurface('volume-chart', self.options.colors.background)
        self._paint = PaintCache()
        self._subscription: Optional[Subscription] = None
        self._on_drawn: Optional[Callable[[], None]] = None
        self.volume_max = 1.0
        colors = self.options.colors
        self._up_color = with_alpha(colors.up, colors.volume_alpha)
        self._down_color = with_alpha(colors.down, colors.volume_alpha)

    @property
    def state(self) -> SurfaceState:
        return self.surface.state

    @property
    def image(self) -> Optional[QImage]:
        return self.surface.image

    def set_update_callback(self, callback: Optional[Callable[[], None]]) -> None:
        self._on_drawn = callback

    def attach(self, width: float, height: float, dpr: float = 1.0) -> None:
        self.surface.attach(width, height, dpr)
        if self.surface.state in (SurfaceState.FAILED, SurfaceState.TORN_DOWN):
            return
        if self._subscription is None:
            self._subscription = self.chart_state.subscribe(
                lambda _field: self.draw(),
                fields=('price_history', 'time_range', 'live_candle'),
            )
        self.draw()

    def resize(self, width: float, height: float) -> bool:
        if not self.surface.resize(width, height):
            return False
        self.draw()
        return True

    def detach(self) -> None:
        if self._subscription is not None:
            self._subscription.dispose()
            self._subscription = None
        self.surface.detach()

    def draw(self) -> None:
        with self.surface.paint() as painter:
            if painter is None:
                return
            try:
                self._draw(painter)
            except RuntimeError:
                pass
        if self._on_drawn is not None:
            self._on_drawn()

    def _draw(self, painter: QPainter) -> None:
        history = self.chart_state.price_history
        time_range = self.chart_state.time_range
        width = self.surface.width
        height = self.surface.height
        volumes = history.volumes_in_range(time_range.start, time_range.end)
        if volumes.size == 0:
            return
        # Recomputed every pass; the visible range changes with pan/zoom.
        self.volume_max = max_volume(volumes)
        layout = bar_layout(width, time_range, history.granularity_ms, self.options.layout)
        timeline = Timeline(
            granularity=history.get_granularity(),
            viewport_start=time_range.start,
            viewport_end=time_range.end,
            canvas_width_px=width,
            interval_ms=history.granularity_ms,
        )
        for x, timestamp in timeline:
            candle = history.get_candle(timestamp)
            if candle is None:
                continue
            bar_height = volume_bar_height(candle.volume, self.volume_max, height)
            if bar_height <= 0:
                continue
            color = self._up_color if candle.is_up else self._down_color
            painter.fillRect(
                QRectF(x - layout.width / 2.0, height - bar_height, layout.width, bar_height),
                self._paint.brush(color),
            )
