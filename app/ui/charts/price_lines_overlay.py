from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from PyQt6.QtCore import QCoreApplication, QEvent, QObject, QPointF, QRectF, Qt, pyqtSignal
from PyQt6.QtGui import QColor, QFont, QPainter, QTextOption, QWindow
from PyQt6.QtWidgets import QWidget

from engine.config import ChartOptions
from engine.drag import DragState, PriceLineDragController
from engine.price_lines import (
    DASH_PATTERNS,
    PriceLine,
    PriceLineClickedEvent,
    PriceLineHoveredEvent,
    hit_test,
    visible_lines,
)
from engine.state import ChartState, Subscription
from engine.transform import AxisMapping

from .styles import PaintCache

logger = logging.getLogger(__name__)

# Pointer travel (px) between press and release still treated as a click.
CLICK_SLOP_PX = 3.0
PRICE_LABEL_WIDTH = 56.0
LABEL_HEIGHT = 18.0


class GlobalPointerGrab(QObject):
    """
    Application-wide pointer listener held for the length of one drag session.

    Installs an event filter on the application and forwards window-level mouse
    move/release events to the drag controller. release() removes the filter and
    is safe to call any number of times.
    """

    def __init__(self, widget: QWidget, controller: PriceLineDragController) -> None:
        super().__init__(widget)
        self._widget = widget
        self._controller = controller
        self._app = QCoreApplication.instance()
        self._released = False
        if self._app is not None:
            self._app.installEventFilter(self)

    @property
    def released(self) -> bool:
        return self._released

    def eventFilter(self, obj, event) -> bool:
        # Widgets see the same pointer event as their window; only handle it once.
        if self._released or not isinstance(obj, QWindow):
            return False
        etype = event.type()
        if etype == QEvent.Type.MouseMove:
            pos = self._widget.mapFromGlobal(event.globalPosition())
            self._controller.pointer_move(pos.y())
        elif etype == QEvent.Type.MouseButtonRelease:
            self._controller.pointer_up()
        return False

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        if self._app is not None:
            self._app.removeEventFilter(self)
        self.deleteLater()


class PriceLinesOverlay(QWidget):
    """
    Transparent overlay drawing horizontal price lines above the candle canvas.

    Lines belong to the application (lines_getter). The overlay emits click, hover
    and drag intents; it never changes a line's price itself.
    """

    price_line_clicked = pyqtSignal(object)
    price_line_hovered = pyqtSignal(object)
    price_line_dragged = pyqtSignal(object)

    def __init__(
        self,
        state: ChartState,
        lines_getter: Callable[[], Sequence[PriceLine]],
        options: Optional[ChartOptions] = None,
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self.chart_state = state
        self.options = options or ChartOptions()
        self._lines_getter = lines_getter
        self._paint = PaintCache()
        self._font = QFont()
        self._font.setPixelSize(max(1, int(round(self.options.colors.label_font_px))))
        self._hover_id: Optional[str] = None
        self._press_line_id: Optional[str] = None
        self._press_y = 0.0
        self.controller = PriceLineDragController(
            mapping=self.mapping,
            emit=self.price_line_dragged.emit,
            acquire_listeners=self._acquire_listeners,
            find_line=self.find_line,
        )
        self._subscription: Optional[Subscription] = state.subscribe(
            lambda _field: self.update(),
            fields=('price_range', 'time_range'),
        )
        self.setMouseTracking(True)
        self.setAttribute(Qt.WidgetAttribute.WA_NoSystemBackground, True)

    def _acquire_listeners(self, controller: PriceLineDragController) -> GlobalPointerGrab:
        return GlobalPointerGrab(self, controller)

    def mapping(self) -> AxisMapping:
        state = self.chart_state
        return AxisMapping(state.time_range, state.price_range, float(self.width()), float(self.height()))

    def lines(self) -> Sequence[PriceLine]:
        return list(self._lines_getter() or [])

    def visible_lines(self):
        return visible_lines(self.lines(), self.chart_state.price_range)

    def find_line(self, line_id: str) -> Optional[PriceLine]:
        for line in self.lines():
            if line.id == line_id:
                return line
        return None

    def line_at(self, y: float, predicate: Optional[Callable[[PriceLine], bool]] = None) -> Optional[PriceLine]:
        return hit_test(self.lines(), y, self.mapping(), self.options.hit_threshold_px, predicate)

    def press(self, y: float) -> bool:
        line = self.line_at(y, lambda l: l.draggable or l.interactive)
        self._press_line_id = line.id if line is not None else None
        self._press_y = float(y)
        if line is None:
            return False
        if line.draggable:
            self.controller.pointer_down(line, y)
        return True

    def release(self, y: float) -> bool:
        line_id = self._press_line_id
        self._press_line_id = None
        # A drag normally ends through the global grab; this covers a grab that never saw the release.
        self.controller.pointer_up()
        if line_id is None or abs(float(y) - self._press_y) > CLICK_SLOP_PX:
            return False
        line = self.find_line(line_id)
        if line is None or not line.interactive:
            return False
        self.price_line_clicked.emit(PriceLineClickedEvent(line.id, line))
        logger.debug("Price line clicked: %s", line.id)
        return True

    def hover(self, y: float) -> Optional[PriceLine]:
        if self.controller.state == DragState.DRAGGING:
            return None
        line = self.line_at(y, lambda l: l.interactive)
        line_id = line.id if line is not None else None
        if line_id != self._hover_id:
            self._hover_id = line_id
            if line is not None:
                self.price_line_hovered.emit(PriceLineHoveredEvent(line.id, line))
        if line is not None and line.draggable:
            self.setCursor(Qt.CursorShape.SizeVerCursor)
        else:
            self.unsetCursor()
        return line

    def mousePressEvent(self, event) -> None:
        if event.button() == Qt.MouseButton.LeftButton and self.press(event.position().y()):
            event.accept()
            return
        event.ignore()

    def mouseReleaseEvent(self, event) -> None:
        if event.button() == Qt.MouseButton.LeftButton and self._press_line_id is not None:
            self.release(event.position().y())
            event.accept()
            return
        event.ignore()

    def mouseMoveEvent(self, event) -> None:
        self.hover(event.position().y())
        event.ignore()

    def leaveEvent(self, event) -> None:
        self._hover_id = None
        super().leaveEvent(event)

    def hideEvent(self, event) -> None:
        self.controller.teardown()
        super().hideEvent(event)

    def teardown(self) -> None:
        self.controller.teardown()
        if self._subscription is not None:
            self._subscription.dispose()
            self._subscription = None

    def paintEvent(self, event) -> None:
        lines = self.visible_lines()
        if not lines:
            return
        mapping = self.mapping()
        width = float(self.width())
        painter = QPainter(self)
        try:
            painter.setFont(self._font)
            for line in lines:
                y = mapping.price_to_y(line.price)
                x0, x1 = line.span(width)
                painter.setPen(self._paint.pen(line.color, line.line_width, DASH_PATTERNS[line.line_style]))
                painter.drawLine(QPointF(x0, y), QPointF(x1, y))
                if line.label is not None:
                    self._draw_label(painter, line, y, width)
                if line.show_price_label:
                    self._draw_price_label(painter, line, y, width)
        finally:
            painter.end()

    def _draw_label(self, painter: QPainter, line: PriceLine, y: float, width: float) -> None:
        label = line.label
        if label.font_size:
            font = QFont(self._font)
            font.setPixelSize(max(1, int(round(label.font_size))))
            painter.setFont(font)
        text_width = painter.fontMetrics().horizontalAdvance(label.text) + 12.0
        if label.position == 'left':
            x = 4.0
        else:
            x = width - PRICE_LABEL_WIDTH - text_width - 8.0
        rect = QRectF(x, y - LABEL_HEIGHT - 2.0, text_width, LABEL_HEIGHT)
        painter.fillRect(rect, self._paint.brush(label.background_color or line.color))
        painter.setPen(self._paint.pen(label.text_color or '#FFFFFF'))
        painter.drawText(rect, label.text, QTextOption(Qt.AlignmentFlag.AlignCenter))
        painter.setFont(self._font)

    def _draw_price_label(self, painter: QPainter, line: PriceLine, y: float, width: float) -> None:
        rect = QRectF(width - PRICE_LABEL_WIDTH, y - LABEL_HEIGHT / 2.0, PRICE_LABEL_WIDTH, LABEL_HEIGHT)
        painter.fillRect(rect, self._paint.brush(line.color))
        painter.setPen(self._paint.pen(QColor('#FFFFFF')))
        painter.drawText(rect, f"{line.price:.2f}", QTextOption(Qt.AlignmentFlag.AlignCenter))
