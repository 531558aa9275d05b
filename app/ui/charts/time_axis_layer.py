from __future__ import annotations

from typing import Callable, List, Optional, Tuple

from PyQt6.QtCore import QPointF, QRectF, Qt
from PyQt6.QtGui import QFont, QImage, QPainter, QTextOption

from engine.config import ChartOptions
from engine.state import ChartState, Subscription
from engine.timeline import Timeline, format_label, label_interval_ms

from .styles import PaintCache
from .surface import BitmapSurface, SurfaceState

TICK_TOP = 2.0
TICK_BOTTOM = 7.0
LABEL_TOP = 9.0
LABEL_WIDTH = 80.0


class TimeAxisLayer:
    def __init__(self, state: ChartState, options: Optional[ChartOptions] = None) -> None:
        self.chart_state = state
        self.options = options or ChartOptions()
        self.surface = BitmapSurface('chart-timeline', self.options.colors.background)
        self._paint = PaintCache()
        self._font = QFont()
        self._font.setPixelSize(max(1, int(round(self.options.colors.label_font_px))))
        self._text_option = QTextOption(Qt.AlignmentFlag.AlignHCenter | Qt.AlignmentFlag.AlignTop)
        self._subscription: Optional[Subscription] = None
        self._on_drawn: Optional[Callable[[], None]] = None
        self.labels: List[Tuple[float, str]] = []

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
                fields=('price_history', 'time_range'),
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
        granularity = self.chart_state.price_history.get_granularity()
        time_range = self.chart_state.time_range
        width = self.surface.width
        colors = self.options.colors
        self.labels = []
        painter.setFont(self._font)
        tick_pen = self._paint.pen(colors.axis_tick)
        text_pen = self._paint.pen(colors.axis_text)
        timeline = Timeline(
            granularity=granularity,
            viewport_start=time_range.start,
            viewport_end=time_range.end,
            canvas_width_px=width,
            interval_ms=label_interval_ms(granularity),
            align_to_local_time=True,
        )
        for x, timestamp in timeline:
            if x < 0 or x > width:
                continue
            label = format_label(timestamp, granularity)
            painter.setPen(tick_pen)
            painter.drawLine(QPointF(x, TICK_TOP), QPointF(x, TICK_BOTTOM))
            painter.setPen(text_pen)
            painter.drawText(
                QRectF(x - LABEL_WIDTH / 2.0, LABEL_TOP, LABEL_WIDTH, max(0.0, self.surface.height - LABEL_TOP)),
                label,
                self._text_option,
            )
            self.labels.append((x, label))
