from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, Mapping, Optional


@dataclass(frozen=True)
class LayoutOptions:
    gap_width_px: float = 2.0
    min_bar_width_px: float = 1.0
    max_bar_width_px: float = 500.0


@dataclass(frozen=True)
class ColorOptions:
    up: str = '#22C55E'
    down: str = '#EF5350'
    volume_alpha: int = 128
    axis_text: str = '#666666'
    axis_tick: str = '#CCCCCC'
    background: Optional[str] = None
    label_font_px: float = 10.0


@dataclass(frozen=True)
class ChartOptions:
    layout: LayoutOptions = field(default_factory=LayoutOptions)
    colors: ColorOptions = field(default_factory=ColorOptions)
    hit_threshold_px: float = 5.0
    log_throttle_ms: float = 5000.0
    # Live candle counts as recent while it is within this many intervals of now.
    live_recent_intervals: int = 2
    price_padding: float = 0.05

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "ChartOptions":
        data = dict(data or {})
        kwargs = _take_known(cls, data, nested={'layout': LayoutOptions, 'colors': ColorOptions})
        return cls(**kwargs)


def _take_known(cls: type, data: Dict[str, Any], nested: Optional[Dict[str, type]] = None) -> Dict[str, Any]:
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown {cls.__name__} option(s): {', '.join(unknown)}")
    out: Dict[str, Any] = {}
    for key, value in data.items():
        sub = (nested or {}).get(key)
        if sub is not None and isinstance(value, Mapping):
            value = sub(**_take_known(sub, dict(value)))
        out[key] = value
    return out
