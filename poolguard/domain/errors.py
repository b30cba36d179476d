"""
Engine error taxonomy.

- ``ConfigError``: range catalog missing or internally inconsistent. Fatal for
  the affected parameter/category; the engine never guesses a range.
- ``MissingParameterError``: a required parameter is absent from a reading.
- ``ImplausibleReadingError``: a value is outside physically possible bounds
  (or not a finite number), pointing at a sensor or data-entry fault rather
  than a chemical emergency.

Missing and implausible parameters are recoverable at the caller level: they
are excluded from aggregation and reported, never counted as safe.
"""

from __future__ import annotations

from typing import Any, Optional

from poolguard.domain.models import ChemicalParameter, PlausibilityBounds


class PoolGuardError(Exception):
    """Base class for all engine errors."""


class ConfigError(PoolGuardError):
    """Range catalog or engine configuration is missing or inconsistent."""


class ReadingError(PoolGuardError):
    """Base class for per-parameter reading problems."""

    def __init__(self, parameter: ChemicalParameter, message: str) -> None:
        super().__init__(message)
        self.parameter = parameter


class MissingParameterError(ReadingError):
    """A parameter required for classification is not present in the reading."""

    def __init__(self, parameter: ChemicalParameter) -> None:
        super().__init__(parameter, f"{parameter.value} missing from reading")


class ImplausibleReadingError(ReadingError):
    """A value is not finite or lies outside physically possible bounds."""

    def __init__(
        self,
        parameter: ChemicalParameter,
        value: Any,
        bounds: Optional[PlausibilityBounds] = None,
    ) -> None:
        if bounds is None:
            msg = f"{parameter.value} value {value!r} is not a finite number"
        else:
            msg = (
                f"{parameter.value} value {value!r} outside physical bounds "
                f"[{bounds.minimum:g}, {bounds.maximum:g}]"
            )
        super().__init__(parameter, msg)
        self.value = value
        self.bounds = bounds
