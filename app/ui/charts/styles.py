from __future__ import annotations

from typing import Dict, Sequence, Tuple

import pyqtgraph as pg
from PyQt6.QtCore import Qt
from PyQt6.QtGui import QBrush, QColor, QPen


def with_alpha(color: str | QColor, alpha: int) -> QColor:
    out = pg.mkColor(color)
    out.setAlpha(max(0, min(255, int(alpha))))
    return out


class PaintCache:
    """Pens and brushes keyed by colour/width/dash so a draw pass allocates nothing new."""

    def __init__(self) -> None:
        self._pens: Dict[Tuple[Tuple[int, int, int, int], float, Tuple[float, ...]], QPen] = {}
        self._brushes: Dict[Tuple[int, int, int, int], QBrush] = {}

    def pen(self, color: str | QColor, width: float = 1.0, dash: Sequence[float] = ()) -> QPen:
        qcolor = pg.mkColor(color)
        key = (qcolor.getRgb(), float(width), tuple(dash))
        pen = self._pens.get(key)
        if pen is None:
            pen = pg.mkPen(qcolor, width=width)
            pen.setCosmetic(True)
            if dash:
                # Qt dash patterns are in units of the pen width.
                unit = max(float(width), 1.0)
                pen.setStyle(Qt.PenStyle.CustomDashLine)
                pen.setDashPattern([d / unit for d in dash])
            self._pens[key] = pen
        return pen

    def brush(self, color: str | QColor) -> QBrush:
        qcolor = pg.mkColor(color)
        key = qcolor.getRgb()
        brush = self._brushes.get(key)
        if brush is None:
            brush = pg.mkBrush(qcolor)
            self._brushes[key] = brush
        return brush
