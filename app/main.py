import os
import faulthandler
import logging
import sys
import time
import traceback

import numpy as np
from PyQt6.QtCore import QTimer
from PyQt6.QtWidgets import QApplication

from engine.config import ChartOptions
from engine.price_history import Candle, Granularity, PriceHistory, granularity_to_ms
from engine.price_lines import LineStyle, PriceLine, PriceLineLabel
from engine.state import ChartState
from engine.viewport import TimeRange
from ui.main_window import MainWindow

logger = logging.getLogger(__name__)

_FAULT_LOG_HANDLE = None
DEMO_CANDLES = 300
VISIBLE_CANDLES = 120
LIVE_TICK_MS = 1000


def _install_exception_logging() -> None:
    log_path = os.path.join(os.path.dirname(__file__), "exception.log")
    def _hook(exc_type, exc_value, exc_tb):
        logger.critical("Unhandled exception", exc_info=(exc_type, exc_value, exc_tb))
        try:
            with open(log_path, "a", encoding="utf-8") as handle:
                handle.write("\n=== Unhandled Exception ===\n")
                traceback.print_exception(exc_type, exc_value, exc_tb, file=handle)
        except OSError:
            pass
    sys.excepthook = _hook
    import threading
    def _thread_hook(args):
        _hook(args.exc_type, args.exc_value, args.exc_traceback)
    threading.excepthook = _thread_hook


def build_demo_history(granularity: Granularity, count: int = DEMO_CANDLES, seed: int = 7) -> PriceHistory:
    """Random-walk OHLCV series ending at the current interval, with a few missing candles."""
    step = granularity_to_ms(granularity)
    rng = np.random.default_rng(seed)
    end = int(time.time() * 1000) // step * step
    closes = 100.0 + np.cumsum(rng.normal(0.0, 0.6, count))
    opens = np.concatenate(([closes[0]], closes[:-1]))
    spread = np.abs(rng.normal(0.0, 0.4, count))
    highs = np.maximum(opens, closes) + spread
    lows = np.minimum(opens, closes) - spread
    volumes = rng.gamma(2.0, 50.0, count)
    missing = set(rng.choice(count - 1, size=max(1, count // 50), replace=False).tolist())
    candles = []
    for i in range(count):
        if i in missing:
            continue
        ts = end - (count - 1 - i) * step
        candles.append(Candle(ts, float(opens[i]), float(highs[i]), float(lows[i]), float(closes[i]), float(volumes[i])))
    return PriceHistory(granularity, candles)


class LiveFeed:
    """Nudges the last candle on a timer so the live-candle path is exercised."""

    def __init__(self, state: ChartState, seed: int = 11) -> None:
        self.state = state
        self._rng = np.random.default_rng(seed)
        self.timer = QTimer()
        self.timer.setInterval(LIVE_TICK_MS)
        self.timer.timeout.connect(self.tick)

    def tick(self) -> None:
        history = self.state.price_history
        end = history.end_timestamp
        if end is None:
            return
        last = history.get_candle(end)
        step = history.granularity_ms
        now = int(time.time() * 1000) // step * step
        close = last.close + float(self._rng.normal(0.0, 0.2))
        if now > end:
            candle = Candle(now, last.close, max(last.close, close), min(last.close, close), close, 0.0)
        else:
            candle = Candle(end, last.open, last.high, last.low, close, last.volume + float(self._rng.gamma(1.0, 5.0)))
        self.state.set_live_candle(candle)


def main():
    logging.basicConfig(
        level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )
    try:
        log_path = os.path.join(os.path.dirname(__file__), "faulthandler.log")
        # Keep the handle alive for the process lifetime; faulthandler may write later.
        global _FAULT_LOG_HANDLE
        _FAULT_LOG_HANDLE = open(log_path, "w", encoding="utf-8")
        _FAULT_LOG_HANDLE.write(f"pid={os.getpid()}\n")
        _FAULT_LOG_HANDLE.flush()
        faulthandler.enable(_FAULT_LOG_HANDLE, all_threads=True)
    except OSError:
        faulthandler.enable(all_threads=True)
    _install_exception_logging()
    app = QApplication([])

    options = ChartOptions()
    history = build_demo_history(Granularity.ONE_MINUTE)
    step = history.granularity_ms
    end = history.end_timestamp + step
    state = ChartState(history, TimeRange(end - VISIBLE_CANDLES * step, end))
    last = history.get_candle(history.end_timestamp)
    lines = [
        PriceLine.create(last.close, color='#3B82F6', draggable=True,
                         label=PriceLineLabel('Alert', position='left')),
        PriceLine.create(state.price_range.min + state.price_range.span * 0.2, color='#F59E0B',
                         line_style=LineStyle.DASHED, draggable=True),
        PriceLine.create(state.price_range.max - state.price_range.span * 0.1,
                         line_style=LineStyle.DOTTED, interactive=False),
    ]
    window = MainWindow(state, options, lines)
    window.show()
    feed = LiveFeed(state)
    feed.timer.start()
    logger.info("Loaded %d demo candles (%s)", len(history), history.get_granularity().value)
    app.exec()
    feed.timer.stop()


if __name__ == '__main__':
    main()
