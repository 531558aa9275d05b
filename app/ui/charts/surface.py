"""
Drawing surface capability shared by the chart layers.

Layers do not inherit a canvas base class. Each one owns a BitmapSurface and
exposes the DrawingSurface protocol itself, so the hosting widget only depends on
attach/resize/draw/detach.

Important constraints:
- The backing QImage is logical size x device pixel ratio, and the DPR lives only
  in the surface transform. Layers draw in logical pixels.
- The transform is reset before it is rescaled on every resize; scaling an
  existing transform would compound the ratio.
- Every paint pass clears the whole backing store first, so repeated draws with
  the same inputs produce identical images.
"""
from __future__ import annotations

from contextlib import contextmanager
from enum import Enum
import logging
import math
from typing import Callable, Iterator, Optional, Protocol

from PyQt6.QtGui import QColor, QImage, QPainter, QTransform

from engine.errors import SurfaceUnavailableError

logger = logging.getLogger(__name__)


class SurfaceState(Enum):
    UNINITIALIZED = 'uninitialized'
    READY = 'ready'
    RESIZING = 'resizing'
    TORN_DOWN = 'torn-down'
    FAILED = 'failed'


class DrawingSurface(Protocol):
    @property
    def state(self) -> SurfaceState:
        ...

    @property
    def image(self) -> Optional[QImage]:
        ...

    def set_update_callback(self, callback: Optional[Callable[[], None]]) -> None:
        ...

    def attach(self, width: float, height: float, dpr: float = 1.0) -> None:
        ...

    def resize(self, width: float, height: float) -> bool:
        ...

    def draw(self) -> None:
        ...

    def detach(self) -> None:
        ...


def _create_image(width_px: int, height_px: int) -> QImage:
    return QImage(width_px, height_px, QImage.Format.Format_ARGB32_Premultiplied)


class BitmapSurface:
    def __init__(
        self,
        name: str,
        background: Optional[str] = None,
        image_factory: Callable[[int, int], QImage] = _create_image,
    ) -> None:
        self.name = name
        self._background = QColor(background) if background else QColor(0, 0, 0, 0)
        self._image_factory = image_factory
        self._image: Optional[QImage] = None
        self._transform = QTransform()
        self._state = SurfaceState.UNINITIALIZED
        self.width = 0.0
        self.height = 0.0
        self.dpr = 1.0

    @property
    def state(self) -> SurfaceState:
        return self._state

    @property
    def image(self) -> Optional[QImage]:
        return self._image

    @property
    def transform(self) -> QTransform:
        return QTransform(self._transform)

    @property
    def is_drawable(self) -> bool:
        return self._state == SurfaceState.READY and self._image is not None

    def attach(self, width: float, height: float, dpr: float = 1.0) -> bool:
        if self._state in (SurfaceState.TORN_DOWN, SurfaceState.FAILED):
            return False
        self.dpr = float(dpr) if dpr and dpr > 0 else 1.0
        if width <= 0 or height <= 0:
            # Layout has not settled yet; the first valid resize allocates.
            self.width = 0.0
            self.height = 0.0
            return False
        return self._allocate(width, height)

    def resize(self, width: float, height: float) -> bool:
        if self._state in (SurfaceState.TORN_DOWN, SurfaceState.FAILED):
            return False
        if width <= 0 or height <= 0:
            logger.debug("%s: ignoring resize to %sx%s", self.name, width, height)
            return False
        self._state = SurfaceState.RESIZING
        return self._allocate(width, height)

    def set_device_pixel_ratio(self, dpr: float) -> bool:
        if dpr <= 0 or dpr == self.dpr:
            return False
        self.dpr = float(dpr)
        if self.width > 0 and self.height > 0:
            return self.resize(self.width, self.height)
        return False

    def _allocate(self, width: float, height: float) -> bool:
        width_px = max(1, int(math.ceil(width * self.dpr)))
        height_px = max(1, int(math.ceil(height * self.dpr)))
        try:
            image = self._image_factory(width_px, height_px)
            if image is None or image.isNull():
                raise SurfaceUnavailableError(f"{self.name}: cannot allocate {width_px}x{height_px} backing store")
        except SurfaceUnavailableError as exc:
            self._fail(str(exc))
            return False
        self._image = image
        self.width = float(width)
        self.height = float(height)
        self._transform.reset()
        self._transform.scale(self.dpr, self.dpr)
        self._state = SurfaceState.READY
        return True

    def _fail(self, message: str) -> None:
        self._state = SurfaceState.FAILED
        self._image = None
        logger.error(message)

    def clear(self) -> None:
        if self._image is not None:
            self._image.fill(self._background)

    @contextmanager
    def paint(self) -> Iterator[Optional[QPainter]]:
        """
        Yield a painter in logical pixel units, or None when nothing may be drawn.

        A painter that fails to start marks the surface FAILED for good; callers
        never retry.
        """
        if not self.is_drawable:
            yield None
            return
        self.clear()
        painter = QPainter()
        try:
            if not painter.begin(self._image):
                raise SurfaceUnavailableError(f"{self.name}: painter could not start on backing store")
        except SurfaceUnavailableError as exc:
            self._fail(str(exc))
            yield None
            return
        try:
            painter.setTransform(self._transform)
            painter.setRenderHint(QPainter.RenderHint.Antialiasing, False)
            yield painter
        finally:
            painter.end()

    def detach(self) -> None:
        self._state = SurfaceState.TORN_DOWN
        self._image = None
