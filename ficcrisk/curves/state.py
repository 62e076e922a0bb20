"""Snapshots of curve state used to undo bumps."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple


@dataclass(frozen=True)
class CurveState:
    """Everything needed to put a curve back exactly as it was.

    Two states compare equal only when quotes, fitted ordinates and the
    curve-specific extras (default date, recovery, ...) are all identical.
    """

    curve_name: str
    quotes: Tuple[float, ...]
    ordinates: Tuple[float, ...]
    extras: Tuple[Tuple[str, Any], ...] = ()

    def extra(self, key: str, default: Any = None) -> Any:
        for name, value in self.extras:
            if name == key:
                return value
        return default
