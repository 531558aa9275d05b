import os
import sys
import unittest

REPO_ROOT = os.path.dirname(os.path.dirname(__file__))
APP_DIR = os.path.join(REPO_ROOT, "app")
if APP_DIR not in sys.path:
    sys.path.insert(0, APP_DIR)

from engine.config import LayoutOptions
from engine.layout import MIN_VISIBLE_CANDLES, bar_layout, candle_count, compute_item_width, zoom_span_limits
from engine.viewport import TimeRange


class LayoutTests(unittest.TestCase):
    def test_zero_items_returns_minimum(self):
        self.assertEqual(compute_item_width(600.0, 0, 2.0, 1.0, 500.0), 1.0)

    def test_width_accounts_for_gaps(self):
        # 10 items, 9 gaps of 2px: (600 - 18) / 10
        self.assertAlmostEqual(compute_item_width(600.0, 10, 2.0, 1.0, 500.0), 58.2)

    def test_width_is_clamped(self):
        self.assertEqual(compute_item_width(600.0, 1, 2.0, 1.0, 500.0), 500.0)
        self.assertEqual(compute_item_width(100.0, 1000, 2.0, 1.0, 500.0), 1.0)

    def test_candle_count_rounds_up(self):
        self.assertEqual(candle_count(TimeRange(0, 150_000), 60_000), 3)
        self.assertEqual(candle_count(TimeRange(0, 0), 60_000), 0)
        self.assertEqual(candle_count(TimeRange(0, 60_000), 0), 0)

    def test_bar_layout_uses_options(self):
        options = LayoutOptions(gap_width_px=4.0, min_bar_width_px=3.0, max_bar_width_px=20.0)
        layout = bar_layout(1000.0, TimeRange(0, 600_000), 60_000, options)
        self.assertEqual(layout.width, 20.0)
        self.assertEqual(layout.gap, 4.0)

    def test_zoom_limits_follow_minimum_candle_width(self):
        # 1px bar + 2px gap: 600px holds at most 200 candles.
        min_span, max_span = zoom_span_limits(600.0, 60_000, LayoutOptions())
        self.assertEqual(min_span, MIN_VISIBLE_CANDLES * 60_000)
        self.assertEqual(max_span, 200 * 60_000)

    def test_zoom_limits_never_invert(self):
        min_span, max_span = zoom_span_limits(0.0, 60_000, LayoutOptions())
        self.assertEqual(min_span, max_span)
        min_span, max_span = zoom_span_limits(12.0, 60_000, LayoutOptions(gap_width_px=6.0, min_bar_width_px=5.0))
        self.assertGreaterEqual(max_span, min_span)


if __name__ == "__main__":
    unittest.main()
