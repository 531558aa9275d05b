"""
Drag-to-reprice state machine for price lines.

IDLE --pointer_down(draggable line)--> DRAGGING --pointer_up / teardown--> IDLE

While dragging, pointer listeners outside the overlay are held through a
ListenerHandle acquired once per session and released exactly once on every
exit path. The controller never changes a line's price; it emits the intent and
the owner commits it.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Callable, Optional, Protocol

from .price_lines import PriceLine, PriceLineDraggedEvent
from .transform import AxisMapping

logger = logging.getLogger(__name__)


class DragState(Enum):
    IDLE = 'idle'
    DRAGGING = 'dragging'


class ListenerHandle(Protocol):
    def release(self) -> None:
        ...


@dataclass(frozen=True)
class DragSession:
    line_id: str
    start_pointer_y: float
    start_price: float
    line: PriceLine


class PriceLineDragController:
    def __init__(
        self,
        mapping: Callable[[], Optional[AxisMapping]],
        emit: Callable[[PriceLineDraggedEvent], None],
        acquire_listeners: Callable[["PriceLineDragController"], ListenerHandle],
        find_line: Optional[Callable[[str], Optional[PriceLine]]] = None,
    ) -> None:
        self._mapping = mapping
        self._emit = emit
        self._acquire_listeners = acquire_listeners
        self._find_line = find_line
        self._session: Optional[DragSession] = None
        self._handle: Optional[ListenerHandle] = None

    @property
    def state(self) -> DragState:
        return DragState.DRAGGING if self._session is not None else DragState.IDLE

    @property
    def session(self) -> Optional[DragSession]:
        return self._session

    def pointer_down(self, line: PriceLine, pointer_y: float) -> bool:
        if not line.draggable or self._session is not None:
            return False
        self._handle = self._acquire_listeners(self)
        self._session = DragSession(line.id, float(pointer_y), float(line.price), line)
        logger.debug("Started dragging price line: %s", line.id)
        return True

    def pointer_move(self, pointer_y: float) -> Optional[PriceLineDraggedEvent]:
        session = self._session
        if session is None:
            return None
        mapping = self._mapping()
        if mapping is None:
            return None
        # Round-trip through pixels so the line follows its rendered position exactly.
        start_y = mapping.price_to_y(session.start_price)
        new_price = mapping.y_to_price(start_y + (float(pointer_y) - session.start_pointer_y))
        line = session.line
        if self._find_line is not None:
            line = self._find_line(session.line_id) or line
        event = PriceLineDraggedEvent(session.line_id, line.price, new_price, line)
        try:
            self._emit(event)
        except Exception:
            self._end_session()
            raise
        return event

    def pointer_up(self) -> bool:
        if self._session is None:
            return False
        logger.debug("Drag end on price line: %s", self._session.line_id)
        self._end_session()
        return True

    def teardown(self) -> None:
        if self._session is not None:
            logger.debug("Drag torn down on price line: %s", self._session.line_id)
        self._end_session()

    def _end_session(self) -> None:
        handle = self._handle
        self._handle = None
        self._session = None
        if handle is not None:
            handle.release()
