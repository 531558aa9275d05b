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
from engine.state import ChartState
from engine.viewport import PriceRange, TimeRange

T0 = 1749664800000
MIN = 60_000


def _app():
    return QApplication.instance() or QApplication([])


def _state(price_range=None):
    candles = [Candle(T0 + i * MIN, 100.0, 110.0, 90.0, 105.0, 5.0) for i in range(5)]
    history = PriceHistory(Granularity.ONE_MINUTE, candles)
    return ChartState(history, TimeRange(T0, T0 + 4 * MIN), price_range)


class ChartStateTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = _app()

    def test_price_range_is_fitted_when_not_given(self):
        state = _state()
        self.assertLess(state.price_range.min, 90.0)
        self.assertGreater(state.price_range.max, 110.0)
        self.assertEqual(_state(PriceRange(1.0, 2.0)).price_range, PriceRange(1.0, 2.0))

    def test_subscribe_and_dispose(self):
        state = _state()
        seen = []
        sub = state.subscribe(seen.append)
        state.set_time_range(TimeRange(T0, T0 + 2 * MIN))
        state.set_time_range(TimeRange(T0, T0 + 2 * MIN))
        self.assertEqual(seen, ['time_range'])
        sub.dispose()
        sub.dispose()
        self.assertFalse(sub.active)
        state.set_price_range(PriceRange(0.0, 1.0))
        self.assertEqual(seen, ['time_range'])

    def test_field_filter(self):
        state = _state()
        seen = []
        state.subscribe(seen.append, fields=('price_range',))
        state.set_time_range(TimeRange(T0, T0 + MIN))
        state.set_price_range(PriceRange(0.0, 1.0))
        self.assertEqual(seen, ['price_range'])

    def test_live_candle_notifies_only_when_accepted(self):
        state = _state()
        seen = []
        state.subscribe(seen.append)
        self.assertTrue(state.set_live_candle(Candle(T0 + 4 * MIN, 0.0, 120.0, 95.0, 118.0, 9.0)))
        self.assertEqual(state.live_candle.close, 118.0)
        self.assertEqual(state.live_candle.open, 100.0)
        self.assertFalse(state.set_live_candle(Candle(T0, 0.0, 1.0, 0.0, 1.0)))
        self.assertEqual(seen, ['live_candle'])

    def test_second_based_live_candle_is_stored_merged(self):
        state = _state()
        self.assertTrue(state.set_live_candle(Candle((T0 + 4 * MIN) // 1000, 0.0, 120.0, 95.0, 118.0, 9.0)))
        live = state.live_candle
        self.assertEqual(live.timestamp, T0 + 4 * MIN)
        self.assertTrue(live.live)
        self.assertEqual(live.open, 100.0)

    def test_fit_price_range_without_candles(self):
        state = _state(PriceRange(1.0, 2.0))
        state.set_time_range(TimeRange(T0 - 10 * MIN, T0 - 5 * MIN))
        self.assertFalse(state.fit_price_range())
        self.assertEqual(state.price_range, PriceRange(1.0, 2.0))


if __name__ == "__main__":
    unittest.main()
