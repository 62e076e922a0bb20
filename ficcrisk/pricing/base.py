"""
Pricer interface consumed by the sensitivity engine.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Hashable, List, Optional, Protocol, runtime_checkable

import numpy as np

from ficcrisk.schema.enums import CurveCategory


@dataclass
class MarketDependencies:
    """Market objects a pricer reads, grouped by the role they play."""

    curves: Dict[CurveCategory, list] = field(default_factory=dict)
    correlations: list = field(default_factory=list)

    def of(self, category: CurveCategory) -> list:
        return [c for c in self.curves.get(category, []) if c is not None]

    def all_curves(self) -> list:
        """Every curve once, in category order."""
        seen = set()
        result = []
        for category in CurveCategory:
            for curve in self.of(category):
                if id(curve) not in seen:
                    seen.add(id(curve))
                    result.append(curve)
        return result


@dataclass(frozen=True)
class OrdinateDerivatives:
    """First and second derivatives of a measure with respect to a curve's ordinates.

    ``hessian`` is either a full ``(n, n)`` matrix or a lower-triangular
    packed vector of length ``n (n + 1) / 2`` with element ``(l, k)``,
    ``k <= l``, stored at ``l (l + 1) / 2 + k``.
    """

    curve: object
    gradient: np.ndarray
    hessian: Optional[np.ndarray] = None


class Pricer(ABC):
    """Opaque pricing collaborator.

    Subclasses compute ``pv`` and report which market objects they read.
    Other measures are exposed through the measure registry.
    """

    def __init__(self, description: str = "", as_of: Optional[date] = None):
        self.description = description or self.__class__.__name__
        self.as_of = as_of

    @abstractmethod
    def pv(self) -> float:
        """Present value."""
        pass

    @abstractmethod
    def market_objects(self) -> MarketDependencies:
        """Market objects this pricer reads."""
        pass

    def reset(self) -> None:
        """Invalidate cached internal state after market data changed."""
        pass

    @property
    def maturity(self) -> Optional[date]:
        return None

    def __str__(self) -> str:
        return self.description


@runtime_checkable
class SupportsDefaultChanged(Protocol):
    """Pricers with special handling when a name's default status changes."""

    def mark_default_changed(self, changed: bool) -> None:
        ...


@runtime_checkable
class SupportsSharedModel(Protocol):
    """Pricers backed by a cached sub-model that other pricers may share."""

    def shared_model_key(self) -> Optional[Hashable]:
        ...

    def prepare_shared_model(self) -> None:
        ...


@runtime_checkable
class SupportsOrdinateDerivatives(Protocol):
    """Pricers able to differentiate a measure with respect to curve ordinates."""

    def ordinate_derivatives(self, measure: str) -> List[OrdinateDerivatives]:
        ...


@runtime_checkable
class SupportsCorrelationRemap(Protocol):
    """Pricers whose correlation strikes must be remapped after credit bumps."""

    def remap_correlations(self) -> None:
        ...
