import logging
import os
import sys
import unittest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

REPO_ROOT = os.path.dirname(os.path.dirname(__file__))
APP_DIR = os.path.join(REPO_ROOT, "app")
if APP_DIR not in sys.path:
    sys.path.insert(0, APP_DIR)

from PyQt6.QtWidgets import QApplication

from engine.price_history import Candle, Granularity, PriceHistory
from engine.price_lines import PriceLine, PriceLineDraggedEvent
from engine.state import ChartState
from engine.viewport import TimeRange
from ui.chart_view import ChartView
from ui.log_dock import LogDock
from ui.main_window import MainWindow

T0 = 1749664800000
MIN = 60_000


def _app():
    return QApplication.instance() or QApplication([])


def _state():
    candles = [Candle(T0 + i * MIN, 100.0 + i, 103.0 + i, 98.0 + i, 101.0 + i, 4.0) for i in range(30)]
    return ChartState(PriceHistory(Granularity.ONE_MINUTE, candles), TimeRange(T0, T0 + 20 * MIN))


class ChartViewTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = _app()

    def test_commit_price_line_replaces_owned_line(self):
        view = ChartView(_state())
        view.set_price_lines([PriceLine.create(100.0, id='a', draggable=True)])
        self.assertTrue(view.commit_price_line('a', 104.5))
        self.assertFalse(view.commit_price_line('missing', 1.0))
        self.assertEqual(view.price_lines()[0].price, 104.5)
        self.assertEqual(view.overlay.lines()[0].price, 104.5)
        view.shutdown()
        view.shutdown()

    def test_wheel_zoom_out_is_bounded_by_canvas_width(self):
        state = _state()
        view = ChartView(state)
        view.candle_canvas.resize(600, 300)
        for _ in range(300):
            view.zoom(1.06)
        # 600px / (1px bar + 2px gap) = 200 one-minute candles
        self.assertAlmostEqual(state.time_range.duration, 200 * MIN, delta=1.0)
        start = state.time_range.start
        for _ in range(300):
            view.zoom(1 / 1.06, 0.0)
        self.assertAlmostEqual(state.time_range.duration, 10 * MIN, delta=1.0)
        self.assertAlmostEqual(state.time_range.start, start, delta=1.0)
        view.shutdown()

    def test_attach_draws_every_pane(self):
        view = ChartView(_state())
        for canvas in (view.candle_canvas, view.volume_canvas, view.axis_canvas):
            canvas.resize(600, 120)
            canvas.attach_now()
            self.assertTrue(canvas.attached)
            self.assertIsNotNone(canvas.layer.image)
        self.assertGreater(view.candle_layer.drawn_candles, 0)
        view.shutdown()
        self.assertIsNone(view.candle_layer.image)

    def test_main_window_commits_dragged_price(self):
        window = MainWindow(_state(), price_lines=[PriceLine.create(100.0, id='a', draggable=True)])
        line = window.chart_view.price_lines()[0]
        window.chart_view.overlay.price_line_dragged.emit(PriceLineDraggedEvent('a', 100.0, 110.0, line))
        self.assertEqual(window.chart_view.price_lines()[0].price, 110.0)
        window.chart_view.shutdown()
        window.log_dock.detach_handler()


class LogDockTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = _app()

    def test_repeated_message_is_suppressed(self):
        dock = LogDock()
        dock.append_message('surface failed')
        dock.append_message('surface failed')
        dock.append_message('other')
        self.assertEqual(dock.text.toPlainText().splitlines(), ['surface failed', 'other'])
        dock.detach_handler()

    def test_warnings_from_engine_loggers_reach_the_dock(self):
        dock = LogDock()
        try:
            logging.getLogger('engine.test').warning('price feed stalled')
            logging.getLogger('engine.test').debug('chatter')
        finally:
            dock.detach_handler()
        text = dock.text.toPlainText()
        self.assertIn('price feed stalled', text)
        self.assertNotIn('chatter', text)


if __name__ == "__main__":
    unittest.main()
