import os
import sys
import unittest

REPO_ROOT = os.path.dirname(os.path.dirname(__file__))
APP_DIR = os.path.join(REPO_ROOT, "app")
if APP_DIR not in sys.path:
    sys.path.insert(0, APP_DIR)

from engine.timestamps import SECONDS_BOUNDARY, is_in_viewport, to_millis
from engine.viewport import TimeRange


class TimestampTests(unittest.TestCase):
    def test_seconds_become_millis(self):
        self.assertEqual(to_millis(1749664800), 1749664800000)

    def test_millis_are_unchanged(self):
        self.assertEqual(to_millis(1749664800000), 1749664800000)
        self.assertEqual(to_millis(to_millis(1749664800)), 1749664800000)

    def test_boundary_is_read_as_millis(self):
        # Calendar heuristic: seconds at or past the boundary are not rescaled.
        self.assertEqual(to_millis(SECONDS_BOUNDARY), SECONDS_BOUNDARY)
        self.assertEqual(to_millis(SECONDS_BOUNDARY - 1), (SECONDS_BOUNDARY - 1) * 1000)

    def test_viewport_check_normalizes_and_buffers(self):
        time_range = TimeRange(1749664800000, 1749668400000)
        self.assertTrue(is_in_viewport(1749664800, time_range))
        self.assertTrue(is_in_viewport(1749668400000, time_range))
        self.assertFalse(is_in_viewport(1749668460000, time_range))
        self.assertTrue(is_in_viewport(1749668460000, time_range, buffer_ms=60_000))


if __name__ == "__main__":
    unittest.main()
