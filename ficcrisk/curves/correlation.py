"""
Correlation objects shifted by scenarios.
"""
from typing import List, Sequence

import numpy as np


class Correlation:
    """Factor correlations clipped to [-1, 1].

    ``strikes_locked`` mirrors base-correlation objects whose strikes are
    pinned until a correlation shift unlocks them for remapping.
    """

    def __init__(self, name: str, values: Sequence[float], names: Sequence[str] = ()):
        self.name = name
        self.values = np.clip(np.asarray(values, dtype=float), -1.0, 1.0)
        self.names: List[str] = list(names)
        self.strikes_locked = True

    def bump(self, amount: float, relative: bool = False) -> float:
        """Bump every factor and return the average realized change."""
        before = self.values.copy()
        if relative:
            self.values = np.clip(before * (1.0 + amount), -1.0, 1.0)
        else:
            self.values = np.clip(before + amount, -1.0, 1.0)
        return float(np.mean(self.values - before)) if len(before) else 0.0

    def set_values(self, value: float) -> None:
        self.values = np.clip(np.full_like(self.values, value), -1.0, 1.0)

    def clone(self) -> "Correlation":
        other = Correlation(self.name, self.values.copy(), self.names)
        other.strikes_locked = self.strikes_locked
        return other

    def copy_from(self, other: "Correlation") -> None:
        self.values = other.values.copy()
        self.strikes_locked = other.strikes_locked

    def __repr__(self) -> str:
        return f"Correlation(name='{self.name}', values={self.values.tolist()})"
