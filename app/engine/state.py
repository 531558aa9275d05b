from __future__ import annotations

from dataclasses import replace
from typing import Callable, Iterable, Optional

from PyQt6.QtCore import QObject, pyqtSignal

from .price_history import Candle, PriceHistory
from .timestamps import to_millis
from .viewport import PriceRange, TimeRange, Viewport

FIELDS = ('price_history', 'time_range', 'price_range', 'live_candle')


class Subscription:
    """Disconnects its callback from ChartState.changed once, on dispose()."""

    def __init__(self, state: "ChartState", slot: Callable[[str], None]) -> None:
        self._state: Optional[ChartState] = state
        self._slot = slot

    @property
    def active(self) -> bool:
        return self._state is not None

    def dispose(self) -> None:
        state = self._state
        if state is None:
            return
        self._state = None
        try:
            state.changed.disconnect(self._slot)
        except (TypeError, RuntimeError):
            pass


class ChartState(QObject):
    """
    Shared chart state: price history, visible time/price window and live candle.

    Passed explicitly to every layer. Layers read it during a draw pass and
    subscribe for change notifications; only the owner calls the setters.
    """

    changed = pyqtSignal(str)

    def __init__(
        self,
        price_history: PriceHistory,
        time_range: TimeRange,
        price_range: Optional[PriceRange] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._price_history = price_history
        self._time_range = time_range
        self._price_range = price_range or PriceRange(0.0, 1.0)
        self._live_candle: Optional[Candle] = None
        if price_range is None:
            self.fit_price_range(notify=False)

    @property
    def price_history(self) -> PriceHistory:
        return self._price_history

    @property
    def time_range(self) -> TimeRange:
        return self._time_range

    @property
    def price_range(self) -> PriceRange:
        return self._price_range

    @property
    def live_candle(self) -> Optional[Candle]:
        return self._live_candle

    @property
    def viewport(self) -> Viewport:
        return Viewport(self._time_range, self._price_range)

    def set_price_history(self, history: PriceHistory) -> None:
        self._price_history = history
        self.changed.emit('price_history')

    def set_time_range(self, time_range: TimeRange) -> None:
        if time_range == self._time_range:
            return
        self._time_range = time_range
        self.changed.emit('time_range')

    def set_price_range(self, price_range: PriceRange) -> None:
        if price_range == self._price_range:
            return
        self._price_range = price_range
        self.changed.emit('price_range')

    def set_live_candle(self, candle: Candle, granularity: object = None) -> bool:
        accepted = self._price_history.set_live_candle(candle, granularity)
        if accepted:
            timestamp = to_millis(candle.timestamp)
            self._live_candle = self._price_history.get_candle(timestamp) or replace(candle, timestamp=timestamp, live=True)
            self.changed.emit('live_candle')
        return accepted

    def fit_price_range(self, padding: float = 0.05, notify: bool = True) -> bool:
        fitted = self._price_history.get_price_range(self._time_range.start, self._time_range.end)
        if fitted is None:
            return False
        fitted = fitted.padded(padding)
        if notify:
            self.set_price_range(fitted)
        else:
            self._price_range = fitted
        return True

    def subscribe(self, callback: Callable[[str], None], fields: Optional[Iterable[str]] = None) -> Subscription:
        wanted = frozenset(fields) if fields is not None else None

        def _slot(field: str) -> None:
            if wanted is None or field in wanted:
                callback(field)

        self.changed.connect(_slot)
        return Subscription(self, _slot)
