from __future__ import annotations

from dataclasses import replace
from typing import Iterable, List, Optional

from PyQt6.QtCore import Qt
from PyQt6.QtWidgets import QStackedLayout, QVBoxLayout, QWidget

from engine.config import ChartOptions
from engine.layout import zoom_span_limits
from engine.price_lines import PriceLine
from engine.state import ChartState

from .charts.candlestick_layer import CandlestickLayer
from .charts.canvas_widget import ChartCanvasWidget
from .charts.price_lines_overlay import PriceLinesOverlay
from .charts.time_axis_layer import TimeAxisLayer
from .charts.volume_layer import VolumeLayer

TIME_AXIS_HEIGHT = 24
ZOOM_STEP = 1.06


class ChartView(QWidget):
    """Candles with price-line overlay, volume pane and time axis over one ChartState."""

    def __init__(self, state: ChartState, options: Optional[ChartOptions] = None, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.chart_state = state
        self.options = options or ChartOptions()
        self._price_lines: List[PriceLine] = []
        self._drag_x: Optional[float] = None

        self.candle_layer = CandlestickLayer(state, self.options)
        self.volume_layer = VolumeLayer(state, self.options)
        self.axis_layer = TimeAxisLayer(state, self.options)

        self.candle_canvas = ChartCanvasWidget(self.candle_layer)
        self.volume_canvas = ChartCanvasWidget(self.volume_layer)
        self.axis_canvas = ChartCanvasWidget(self.axis_layer)
        self.axis_canvas.setFixedHeight(TIME_AXIS_HEIGHT)
        self.overlay = PriceLinesOverlay(state, self.price_lines, self.options)

        price_pane = QWidget()
        stack = QStackedLayout(price_pane)
        stack.setStackingMode(QStackedLayout.StackingMode.StackAll)
        stack.addWidget(self.candle_canvas)
        stack.addWidget(self.overlay)
        stack.setCurrentWidget(self.overlay)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)
        layout.addWidget(price_pane, 4)
        layout.addWidget(self.volume_canvas, 1)
        layout.addWidget(self.axis_canvas)

    def price_lines(self) -> List[PriceLine]:
        return list(self._price_lines)

    def set_price_lines(self, lines: Iterable[PriceLine]) -> None:
        self._price_lines = list(lines)
        self.overlay.update()

    def commit_price_line(self, line_id: str, price: float) -> bool:
        for idx, line in enumerate(self._price_lines):
            if line.id == line_id:
                self._price_lines[idx] = replace(line, price=float(price))
                self.overlay.update()
                return True
        return False

    def _refit(self) -> None:
        self.chart_state.fit_price_range(self.options.price_padding)

    def wheelEvent(self, ev) -> None:
        delta = ev.angleDelta().y()
        if delta == 0 or self.width() <= 0:
            ev.ignore()
            return
        scale = ZOOM_STEP ** (delta / 120.0)
        self.zoom(1.0 / scale, ev.position().x() / float(self.width()))
        ev.accept()

    def zoom(self, factor: float, anchor_ratio: float = 0.5) -> None:
        """Scale the visible span by factor around anchor_ratio, within the candle-width limits."""
        state = self.chart_state
        min_span, max_span = zoom_span_limits(
            float(self.candle_canvas.width() or self.width()),
            state.price_history.granularity_ms,
            self.options.layout,
        )
        state.set_time_range(state.time_range.zoom(factor, anchor_ratio, min_span, max_span))
        self._refit()

    def mousePressEvent(self, event) -> None:
        if event.button() == Qt.MouseButton.LeftButton:
            self._drag_x = event.position().x()
            event.accept()
            return
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event) -> None:
        if self._drag_x is None or self.width() <= 0:
            super().mouseMoveEvent(event)
            return
        x = event.position().x()
        time_range = self.chart_state.time_range
        shift_ms = -(x - self._drag_x) / float(self.width()) * time_range.duration
        self._drag_x = x
        self.chart_state.set_time_range(time_range.shift(shift_ms))
        self._refit()
        event.accept()

    def mouseReleaseEvent(self, event) -> None:
        self._drag_x = None
        super().mouseReleaseEvent(event)

    def shutdown(self) -> None:
        self.overlay.teardown()
        for canvas in (self.candle_canvas, self.volume_canvas, self.axis_canvas):
            canvas.teardown()

    def export_chart_png(self, path: str) -> bool:
        return self.grab().save(path, 'PNG')
