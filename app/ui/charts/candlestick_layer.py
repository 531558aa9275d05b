from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from PyQt6.QtCore import QPointF, QRectF
from PyQt6.QtGui import QImage, QPainter

from engine.config import ChartOptions
from engine.layout import bar_layout
from engine.price_history import Candle
from engine.state import ChartState, Subscription
from engine.throttle import LiveCandleWatch, ThrottledChangeLogger
from engine.timeline import Timeline
from engine.timestamps import is_in_viewport, to_millis
from engine.transform import AxisMapping

from .styles import PaintCache
from .surface import BitmapSurface, SurfaceState

logger = logging.getLogger(__name__)


def _now_ms() -> float:
    return time.time() * 1000.0


class CandlestickLayer:
    def __init__(
        self,
        state: ChartState,
        options: Optional[ChartOptions] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.chart_state = state
        self.options = options or ChartOptions()
        self.surface = BitmapSurface('candlestick-chart', self.options.colors.background)
        self.live_watch = LiveCandleWatch(ThrottledChangeLogger(self.options.log_throttle_ms))
        self._clock = clock or _now_ms
        self._paint = PaintCache()
        self._subscription: Optional[Subscription] = None
        self._on_drawn: Optional[Callable[[], None]] = None
        self.drawn_candles = 0

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
            self._subscription = self.chart_state.subscribe(lambda _field: self.draw())
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
        state = self.chart_state
        history = state.price_history
        time_range = state.time_range
        width = self.surface.width
        self.drawn_candles = 0
        self._check_live_candle()
        if not history.get_candles_in_range(time_range.start, time_range.end):
            logger.debug("No visible candles to draw in %s..%s", time_range.start, time_range.end)
            return
        mapping = AxisMapping(time_range, state.price_range, width, self.surface.height)
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
            self._draw_candle(painter, candle, x, layout.width, mapping)
            self.drawn_candles += 1

    def _draw_candle(self, painter: QPainter, candle: Candle, x: float, width: float, mapping: AxisMapping) -> None:
        color = self.options.colors.up if candle.is_up else self.options.colors.down
        high_y = mapping.price_to_y(candle.high)
        low_y = mapping.price_to_y(candle.low)
        painter.setPen(self._paint.pen(color))
        painter.drawLine(QPointF(x, high_y), QPointF(x, low_y))
        open_y = mapping.price_to_y(candle.open)
        close_y = mapping.price_to_y(candle.close)
        body_top = min(open_y, close_y)
        body_height = max(1.0, abs(close_y - open_y))
        painter.fillRect(QRectF(x - width / 2.0, body_top, width, body_height), self._paint.brush(color))

    def _check_live_candle(self) -> None:
        live = self.chart_state.live_candle
        if live is None:
            return
        interval = self.chart_state.price_history.granularity_ms
        ts_ms = to_millis(live.timestamp)
        in_viewport = is_in_viewport(live.timestamp, self.chart_state.time_range, buffer_ms=interval)
        is_recent = (self._clock() - ts_ms) <= interval * self.options.live_recent_intervals
        self.live_watch.check(in_viewport, is_recent, ts_ms)
