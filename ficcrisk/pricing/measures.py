"""
Registry binding (pricer type, measure name) pairs to evaluation functions.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from .base import Pricer

logger = logging.getLogger(__name__)

DEFAULT_MEASURE = "Pv"


@dataclass(frozen=True)
class MeasureSpec:
    """A resolved measure: how to evaluate it and whether it adds across trades."""

    name: str
    func: Callable[[object], float]
    additive: bool = True


class MeasureRegistry:
    """Maps ``(pricer type, measure)`` to a function.

    Lookup walks the pricer type's MRO, so a measure registered on a base
    class serves every subclass unless a subclass overrides it. Names are
    case-insensitive.
    """

    def __init__(self):
        self._measures: Dict[Tuple[type, str], MeasureSpec] = {}
        self._lock = threading.Lock()

    def register(
        self,
        pricer_type: type,
        name: str,
        func: Optional[Callable[[object], float]] = None,
        additive: bool = True,
    ):
        """
        Register a measure, directly or as a decorator.

        Args:
            pricer_type: Pricer class the measure applies to
            name: Measure name, e.g. "Pv" or "ParRate"
            func: Function of the pricer returning the measure value
            additive: Whether values add up across pricers

        Returns:
            ``func`` (or a decorator when ``func`` is None)
        """
        def decorator(fn: Callable[[object], float]) -> Callable[[object], float]:
            with self._lock:
                self._measures[(pricer_type, name.lower())] = MeasureSpec(name, fn, additive)
            logger.debug("Registered measure %s for %s", name, pricer_type.__name__)
            return fn

        if func is None:
            return decorator
        return decorator(func)

    def resolve(self, pricer_type: type, name: str) -> Optional[MeasureSpec]:
        """Find the measure for a pricer type, or None."""
        key = name.lower()
        for klass in pricer_type.__mro__:
            spec = self._measures.get((klass, key))
            if spec is not None:
                return spec
        return None

    def measures_for(self, pricer_type: type) -> list:
        """Names of every measure available to a pricer type."""
        names = {}
        for klass in reversed(pricer_type.__mro__):
            for (owner, key), spec in self._measures.items():
                if owner is klass:
                    names[key] = spec.name
        return sorted(names.values())


MEASURES = MeasureRegistry()


def register_measure(pricer_type: type, name: str, func=None, additive: bool = True):
    """Register a measure on the default registry."""
    return MEASURES.register(pricer_type, name, func, additive)


register_measure(Pricer, DEFAULT_MEASURE, lambda pricer: pricer.pv())
