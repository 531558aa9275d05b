import os
import sys
import unittest

REPO_ROOT = os.path.dirname(os.path.dirname(__file__))
APP_DIR = os.path.join(REPO_ROOT, "app")
if APP_DIR not in sys.path:
    sys.path.insert(0, APP_DIR)

from engine.price_lines import EDGE_INSET_PX, LineStyle, PriceLine, hit_test, visible_lines
from engine.transform import AxisMapping
from engine.viewport import PriceRange, TimeRange


def _mapping(price_range):
    return AxisMapping(TimeRange(0, 1000), price_range, 400.0, 200.0)


class PriceLineTests(unittest.TestCase):
    def test_create_assigns_id_and_style(self):
        line = PriceLine.create(101.5, line_style='dashed')
        self.assertEqual(line.line_style, LineStyle.DASHED)
        self.assertEqual(len(line.id), 32)
        self.assertNotEqual(line.id, PriceLine.create(101.5).id)
        self.assertEqual(PriceLine.create(1.0, id='fixed').id, 'fixed')

    def test_span_respects_extension_flags(self):
        self.assertEqual(PriceLine.create(1.0).span(400.0), (0.0, 400.0))
        line = PriceLine.create(1.0, extend_left=False, extend_right=False)
        self.assertEqual(line.span(400.0), (EDGE_INSET_PX, 400.0 - EDGE_INSET_PX))
        self.assertEqual(line.span(60.0), (EDGE_INSET_PX, EDGE_INSET_PX))

    def test_out_of_range_line_is_not_drawn_or_hit(self):
        price_range = PriceRange(60.0, 120.0)
        below = PriceLine.create(50.0, id='below')
        inside = PriceLine.create(90.0, id='inside')
        self.assertEqual([line.id for line in visible_lines([below, inside], price_range)], ['inside'])
        mapping = _mapping(price_range)
        # y for 50 would sit below the canvas; nothing there may match.
        self.assertIsNone(hit_test([below], mapping.price_to_y(50.0), mapping, 5.0))
        self.assertIsNone(hit_test([below, inside], 200.0, mapping, 5.0))

    def test_visible_lines_sorted_by_z_index(self):
        lines = [
            PriceLine.create(80.0, id='top', z_index=90),
            PriceLine.create(80.0, id='bottom', z_index=10),
        ]
        self.assertEqual([line.id for line in visible_lines(lines, None)], ['bottom', 'top'])

    def test_hit_test_threshold_and_topmost(self):
        mapping = _mapping(PriceRange(90.0, 110.0))
        low = PriceLine.create(100.0, id='low', z_index=1)
        high = PriceLine.create(100.0, id='high', z_index=2)
        self.assertEqual(hit_test([low, high], 104.0, mapping, 5.0).id, 'high')
        self.assertIsNone(hit_test([low, high], 106.0, mapping, 5.0))
        self.assertEqual(hit_test([low, high], 100.0, mapping, 5.0, lambda l: l.id == 'low').id, 'low')


if __name__ == "__main__":
    unittest.main()
