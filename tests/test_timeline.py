import os
import sys
import unittest

REPO_ROOT = os.path.dirname(os.path.dirname(__file__))
APP_DIR = os.path.join(REPO_ROOT, "app")
if APP_DIR not in sys.path:
    sys.path.insert(0, APP_DIR)

from engine.price_history import Granularity
from engine.timeline import (
    DAY_MS,
    HOUR_MS,
    MINUTE_MS,
    Timeline,
    format_label,
    iterate_timeline,
    label_interval_ms,
)


class TimelineTests(unittest.TestCase):
    def test_slots_are_ordered_and_interval_aligned(self):
        slots = list(Timeline(Granularity.ONE_MINUTE, 30_000, 270_000, 240.0))
        stamps = [slot.timestamp for slot in slots]
        self.assertEqual(stamps, [0, 60_000, 120_000, 180_000, 240_000])
        xs = [slot.x for slot in slots]
        self.assertEqual(xs, sorted(xs))
        self.assertAlmostEqual(xs[1], 30.0)

    def test_alignment_does_not_depend_on_pan_offset(self):
        a = list(Timeline(Granularity.ONE_MINUTE, 30_000, 600_000, 100.0))
        b = list(Timeline(Granularity.ONE_MINUTE, 47_123, 617_123, 100.0))
        for slot in a + b:
            self.assertEqual(slot.timestamp % MINUTE_MS, 0)
        self.assertEqual(a[0].timestamp, b[0].timestamp)

    def test_empty_or_inverted_viewport_yields_nothing(self):
        self.assertEqual(list(Timeline(Granularity.ONE_MINUTE, 60_000, 60_000, 100.0)), [])
        self.assertEqual(list(Timeline(Granularity.ONE_MINUTE, 120_000, 60_000, 100.0)), [])

    def test_invalid_interval_raises(self):
        with self.assertRaises(ValueError):
            list(Timeline(Granularity.ONE_MINUTE, 0, 60_000, 100.0, interval_ms=0))

    def test_explicit_interval_overrides_granularity(self):
        slots = list(Timeline(Granularity.ONE_MINUTE, 0, HOUR_MS, 100.0, interval_ms=10 * MINUTE_MS))
        self.assertEqual(len(slots), 7)

    def test_callback_errors_propagate(self):
        seen = []

        def _callback(x, timestamp):
            seen.append(timestamp)
            if len(seen) == 2:
                raise RuntimeError("boom")

        with self.assertRaises(RuntimeError):
            iterate_timeline(
                _callback,
                granularity=Granularity.ONE_MINUTE,
                viewport_start=0,
                viewport_end=10 * MINUTE_MS,
                canvas_width_px=100.0,
            )
        self.assertEqual(seen, [0, MINUTE_MS])


class TimeLabelTests(unittest.TestCase):
    def test_label_intervals(self):
        self.assertEqual(label_interval_ms(Granularity.ONE_MINUTE), 10 * MINUTE_MS)
        self.assertEqual(label_interval_ms(Granularity.ONE_HOUR), 6 * HOUR_MS)
        self.assertEqual(label_interval_ms(Granularity.ONE_DAY), DAY_MS)
        self.assertEqual(label_interval_ms(Granularity.FIVE_MINUTE), 12 * HOUR_MS)

    def test_label_format(self):
        self.assertRegex(format_label(1749664800000, Granularity.ONE_MINUTE), r"^\d{2}:\d{2}$")
        self.assertRegex(format_label(1749664800000, Granularity.ONE_DAY), r"^[A-Z][a-z]{2} \d{1,2}$")


if __name__ == "__main__":
    unittest.main()
