"""
Convenience package shim.

The chart engine lives under `app/engine` and the app typically runs with `app/`
on `sys.path` (via `python app/main.py`). This shim makes `import engine.*`
resolvable from the repo root as well.
"""

from __future__ import annotations

import os

_HERE = os.path.abspath(os.path.dirname(__file__))
_APP_ENGINE = os.path.normpath(os.path.join(_HERE, "..", "app", "engine"))

if os.path.isdir(_APP_ENGINE):
    __path__.append(_APP_ENGINE)  # type: ignore[name-defined]
