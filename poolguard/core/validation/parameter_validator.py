"""
Single-parameter classification against the range catalog.

The validator is a set of pure functions: the same reading, parameter and
catalog always produce the same `ParameterResult`, and nothing is mutated.

Band search starts from the safe band and walks outward. Values exactly on a
band boundary resolve to the safer side, so a pH of exactly ``safe_min`` is
``SAFE``. Values beyond the outer critical bounds are still ``CRITICAL``;
only values failing the physical plausibility check are rejected.
"""

from __future__ import annotations

import math
from typing import Any, Optional

from poolguard.core.catalog.range_catalog import RangeCatalog
from poolguard.domain.errors import ImplausibleReadingError, MissingParameterError
from poolguard.domain.models import (
    ChemicalParameter,
    ChemicalReading,
    ParameterRange,
    ParameterResult,
    PoolCategory,
    SeverityLevel,
)


def check_plausible(parameter: ChemicalParameter, value: Any, catalog: RangeCatalog) -> float:
    """
    Coerce a raw value to float and check it is physically possible.

    Parameters
    ----------
    parameter
        Parameter the value belongs to.
    value
        Raw value from the reading.
    catalog
        Catalog providing plausibility bounds.

    Returns
    -------
    float
        The value as a finite float.

    Raises
    ------
    ImplausibleReadingError
        If the value is not a finite number or lies outside the parameter's
        plausibility bounds.
    """
    if isinstance(value, bool):
        raise ImplausibleReadingError(parameter, value)
    try:
        v = float(value)
    except (TypeError, ValueError):
        raise ImplausibleReadingError(parameter, value) from None

    if not math.isfinite(v):
        raise ImplausibleReadingError(parameter, v)

    bounds = catalog.plausibility(parameter)
    if bounds is not None and not bounds.contains(v):
        raise ImplausibleReadingError(parameter, v, bounds)
    return v


def classify_value(value: float, rng: ParameterRange) -> ParameterResult:
    """
    Place a value into its severity band for a given range.

    Parameters
    ----------
    value
        Finite, plausible value.
    rng
        Applicable parameter range.

    Returns
    -------
    ParameterResult
        Severity and signed distance to the safe band.
    """
    if rng.safe_min <= value <= rng.safe_max:
        return ParameterResult(rng.parameter, value, SeverityLevel.SAFE, 0.0)

    if value < rng.safe_min:
        distance = value - rng.safe_min
        severity = SeverityLevel.CAUTION if value >= rng.caution_min else SeverityLevel.CRITICAL
    else:
        distance = value - rng.safe_max
        severity = SeverityLevel.CAUTION if value <= rng.caution_max else SeverityLevel.CRITICAL

    return ParameterResult(rng.parameter, value, severity, distance)


def classify(
    reading: ChemicalReading,
    parameter: ChemicalParameter,
    category: PoolCategory,
    catalog: RangeCatalog,
    usage: Optional[str] = None,
) -> ParameterResult:
    """
    Classify one parameter of a reading.

    Parameters
    ----------
    reading
        Technician reading.
    parameter
        Parameter to classify.
    category
        Pool category selecting the range table.
    catalog
        Range catalog.
    usage
        Optional usage level for usage-specific ranges.

    Returns
    -------
    ParameterResult
        Classification result.

    Raises
    ------
    MissingParameterError
        If the parameter is not present in the reading.
    ImplausibleReadingError
        If the value is not finite or physically impossible.
    ConfigError
        If the catalog has no range for the parameter/category.
    """
    raw = reading.get(parameter)
    if raw is None:
        raise MissingParameterError(parameter)

    value = check_plausible(parameter, raw, catalog)
    rng = catalog.lookup(parameter, category, usage)
    return classify_value(value, rng)
