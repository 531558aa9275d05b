from __future__ import annotations

from dataclasses import dataclass
import logging
import time
from typing import Callable, Hashable, Optional

logger = logging.getLogger(__name__)


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class ThrottledChangeLogger:
    """
    Emit a diagnostic while a condition holds, without spamming.

    A record is emitted when the condition holds and either the snapshot differs
    from the last emitted one (or nothing was emitted yet) or more than
    throttle_ms has passed since the last emission. An unchanged condition
    therefore logs at most once per window; a change always logs immediately.
    """

    def __init__(
        self,
        throttle_ms: float = 5000.0,
        emit: Optional[Callable[[str], None]] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.throttle_ms = float(throttle_ms)
        self._emit = emit if emit is not None else logger.debug
        self._clock = clock if clock is not None else _monotonic_ms
        self.last_snapshot: Optional[Hashable] = None
        self.last_emit_ms: float = 0.0

    def observe(self, snapshot: Hashable, condition: bool, message: Optional[str] = None) -> bool:
        if not condition:
            return False
        now = self._clock()
        changed = self.last_snapshot is None or snapshot != self.last_snapshot
        if not changed and (now - self.last_emit_ms) <= self.throttle_ms:
            return False
        self._emit(message if message is not None else repr(snapshot))
        self.last_snapshot = snapshot
        self.last_emit_ms = now
        return True


@dataclass(frozen=True)
class LiveCandleSnapshot:
    in_viewport: bool
    is_recent: bool
    timestamp: int


class LiveCandleWatch:
    """Reports a live candle that is off screen or stale."""

    def __init__(self, throttled: ThrottledChangeLogger) -> None:
        self.throttled = throttled

    def check(self, in_viewport: bool, is_recent: bool, timestamp: int) -> bool:
        snapshot = LiveCandleSnapshot(bool(in_viewport), bool(is_recent), int(timestamp))
        message = f"Live candle not drawable - inViewport: {in_viewport}, isRecent: {is_recent}, timestamp: {timestamp}"
        return self.throttled.observe(snapshot, not in_viewport or not is_recent, message)
