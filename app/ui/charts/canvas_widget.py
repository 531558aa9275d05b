from __future__ import annotations

from typing import Optional

from PyQt6.QtCore import QRectF, QTimer
from PyQt6.QtGui import QPainter
from PyQt6.QtWidgets import QSizePolicy, QWidget

from .surface import DrawingSurface


class ChartCanvasWidget(QWidget):
    """
    Hosts one DrawingSurface layer inside the widget tree.

    Attach is deferred to the next event-loop tick after the first show so the
    layout has settled before the surface measures itself. Resizes are forwarded
    in logical pixels; paintEvent only blits the layer's finished bitmap.
    """

    def __init__(self, layer: DrawingSurface, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.layer = layer
        self._attach_pending = False
        self._attached = False
        self._torn_down = False
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
        layer.set_update_callback(self.update)

    @property
    def attached(self) -> bool:
        return self._attached

    def showEvent(self, event) -> None:
        super().showEvent(event)
        if self._attached or self._attach_pending or self._torn_down:
            return
        self._attach_pending = True
        QTimer.singleShot(0, self.attach_now)

    def attach_now(self) -> None:
        self._attach_pending = False
        if self._attached or self._torn_down:
            return
        self._attached = True
        self.layer.attach(float(self.width()), float(self.height()), self.devicePixelRatioF())

    def resizeEvent(self, event) -> None:
        super().resizeEvent(event)
        if not self._attached or self._torn_down:
            return
        size = event.size()
        self.layer.resize(float(size.width()), float(size.height()))

    def paintEvent(self, event) -> None:
        image = self.layer.image
        if image is None or image.isNull():
            return
        dpr = self.devicePixelRatioF() or 1.0
        painter = QPainter(self)
        try:
            painter.drawImage(QRectF(0, 0, image.width() / dpr, image.height() / dpr), image)
        finally:
            painter.end()

    def teardown(self) -> None:
        if self._torn_down:
            return
        self._torn_down = True
        self.layer.set_update_callback(None)
        self.layer.detach()
