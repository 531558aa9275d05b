from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, List, Optional, Tuple
import uuid

from .transform import AxisMapping
from .viewport import PriceRange


class LineStyle(str, Enum):
    SOLID = 'solid'
    DASHED = 'dashed'
    DOTTED = 'dotted'


# Dash/gap lengths in pixels.
DASH_PATTERNS = {
    LineStyle.SOLID: (),
    LineStyle.DASHED: (8.0, 4.0),
    LineStyle.DOTTED: (2.0, 3.0),
}

# Unextended lines stop this far from the edge they do not extend to.
EDGE_INSET_PX = 50.0


@dataclass(frozen=True)
class PriceLineLabel:
    text: str
    position: str = 'right'
    background_color: Optional[str] = None
    text_color: Optional[str] = None
    font_size: Optional[float] = None


@dataclass(frozen=True)
class PriceLine:
    id: str
    price: float
    color: str = '#808080'
    line_width: float = 1.0
    line_style: LineStyle = LineStyle.SOLID
    draggable: bool = False
    interactive: bool = True
    extend_left: bool = True
    extend_right: bool = True
    z_index: int = 50
    label: Optional[PriceLineLabel] = None
    show_price_label: bool = True
    metadata: Any = None

    @classmethod
    def create(cls, price: float, id: Optional[str] = None, **kwargs: Any) -> "PriceLine":
        if 'line_style' in kwargs:
            kwargs['line_style'] = LineStyle(kwargs['line_style'])
        return cls(id=id or uuid.uuid4().hex, price=float(price), **kwargs)

    def span(self, width: float) -> Tuple[float, float]:
        start = 0.0 if self.extend_left else EDGE_INSET_PX
        end = width if self.extend_right else width - EDGE_INSET_PX
        return start, max(start, end)


@dataclass(frozen=True)
class PriceLineClickedEvent:
    line_id: str
    line: PriceLine


@dataclass(frozen=True)
class PriceLineHoveredEvent:
    line_id: str
    line: PriceLine


@dataclass(frozen=True)
class PriceLineDraggedEvent:
    line_id: str
    old_price: float
    new_price: float
    line: PriceLine


def visible_lines(lines: Iterable[PriceLine], price_range: Optional[PriceRange]) -> List[PriceLine]:
    """Lines inside the price range, lowest z_index first (drawn first)."""
    lines = list(lines)
    if price_range is not None:
        lines = [line for line in lines if price_range.min <= line.price <= price_range.max]
    return sorted(lines, key=lambda line: line.z_index)


def hit_test(
    lines: Iterable[PriceLine],
    y: float,
    mapping: AxisMapping,
    threshold_px: float,
    predicate: Optional[Callable[[PriceLine], bool]] = None,
) -> Optional[PriceLine]:
    # Topmost first so overlapping lines resolve to the one drawn last.
    for line in reversed(visible_lines(lines, mapping.price_range)):
        if predicate is not None and not predicate(line):
            continue
        if abs(y - mapping.price_to_y(line.price)) <= threshold_px:
            return line
    return None
