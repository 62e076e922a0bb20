"""
Exception types raised by the sensitivity engine.
"""

from typing import Optional


class SensitivityError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(SensitivityError, ValueError):
    """Invalid parameters, detected before any curve is mutated."""


class CyclicDependencyError(ConfigurationError):
    """The curve prerequisite graph contains a cycle."""

    def __init__(self, cycle):
        self.cycle = list(cycle)
        path = " -> ".join(str(getattr(c, "name", c)) for c in self.cycle)
        super().__init__(f"cyclic curve dependency: {path}")


class UnknownMeasureError(ConfigurationError):
    """A measure is not available for a pricer."""

    def __init__(self, measure: str, pricer_description: str):
        self.measure = measure
        self.pricer_description = pricer_description
        super().__init__(
            f"Measure '{measure}' is not available for pricer {pricer_description}"
        )


class CalibrationError(SensitivityError, RuntimeError):
    """A curve refit failed during a bump."""

    def __init__(
        self,
        curve_name: str,
        message: str,
        selection_name: Optional[str] = None,
    ):
        self.curve_name = curve_name
        self.selection_name = selection_name
        context = f"curve {curve_name}"
        if selection_name:
            context += f", selection {selection_name}"
        super().__init__(f"Refit failed ({context}): {message}")


class BumpStateError(SensitivityError, RuntimeError):
    """A bump was attempted while another bump on the same curves is open."""
