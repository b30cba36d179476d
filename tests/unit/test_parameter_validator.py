"""
Unit tests for poolguard.core.validation.parameter_validator.

These tests validate:
- boundary inclusivity (values on a band edge resolve to the safer band)
- severity is monotonic in distance from the safe band
- missing and physically implausible values raise typed errors
- values beyond the outer critical bounds are still CRITICAL
"""

from __future__ import annotations

import math
from datetime import datetime

import pytest

from poolguard.core.catalog.range_catalog import default_catalog
from poolguard.core.validation.parameter_validator import (
    check_plausible,
    classify,
    classify_value,
)
from poolguard.domain.errors import (
    ImplausibleReadingError,
    MissingParameterError,
    ReadingError,
)
from poolguard.domain.models import (
    ChemicalParameter,
    ChemicalReading,
    PoolCategory,
    SeverityLevel,
)

CATALOG = default_catalog()


def _mk_reading(**values) -> ChemicalReading:
    return ChemicalReading(
        pool_id="P1",
        category=PoolCategory.STANDARD,
        timestamp=datetime(2026, 1, 1, 10, 0, 0),
        technician_id="T1",
        values={ChemicalParameter(k): v for k, v in values.items()},
    )


@pytest.mark.parametrize(
    "value, expected",
    [
        (7.2, SeverityLevel.SAFE),
        (7.5, SeverityLevel.SAFE),
        (7.8, SeverityLevel.SAFE),
        (7.1, SeverityLevel.CAUTION),
        (7.0, SeverityLevel.CAUTION),
        (7.9, SeverityLevel.CAUTION),
        (8.0, SeverityLevel.CAUTION),
        (6.9, SeverityLevel.CRITICAL),
        (6.5, SeverityLevel.CRITICAL),
        (8.1, SeverityLevel.CRITICAL),
        (8.5, SeverityLevel.CRITICAL),
    ],
)
def test_ph_band_boundaries(value: float, expected: SeverityLevel) -> None:
    rng = CATALOG.lookup(ChemicalParameter.PH, PoolCategory.STANDARD)
    assert classify_value(value, rng).severity == expected


def test_every_default_boundary_resolves_to_safer_band() -> None:
    """
    For every default range, safe edges are SAFE and caution edges are CAUTION.
    """
    for rng in CATALOG.all():
        for edge in (rng.safe_min, rng.safe_max):
            if math.isfinite(edge):
                assert classify_value(edge, rng).severity == SeverityLevel.SAFE, rng
        for edge in (rng.caution_min, rng.caution_max):
            if math.isfinite(edge) and edge not in (rng.safe_min, rng.safe_max):
                assert classify_value(edge, rng).severity == SeverityLevel.CAUTION, rng


def test_severity_is_monotonic_moving_away_from_safe() -> None:
    rng = CATALOG.lookup(ChemicalParameter.FREE_CHLORINE, PoolCategory.STANDARD)

    upward = [classify_value(v, rng).severity for v in (2.0, 4.0, 4.5, 5.0, 6.0, 9.0, 20.0)]
    assert upward == sorted(upward)

    downward = [classify_value(v, rng).severity for v in (2.0, 1.0, 0.6, 0.3, 0.2, 0.0)]
    assert downward == sorted(downward)


def test_distance_to_safe_is_signed() -> None:
    rng = CATALOG.lookup(ChemicalParameter.PH, PoolCategory.STANDARD)

    assert classify_value(7.4, rng).distance_to_safe == 0.0
    assert classify_value(7.0, rng).distance_to_safe == pytest.approx(-0.2)
    assert classify_value(8.2, rng).distance_to_safe == pytest.approx(0.4)


def test_beyond_critical_bounds_is_still_critical() -> None:
    """
    A pH of 9.5 is alarming but physically possible; it is classified, not rejected.
    """
    result = classify(_mk_reading(pH=9.5), ChemicalParameter.PH, PoolCategory.STANDARD, CATALOG)
    assert result.severity == SeverityLevel.CRITICAL
    assert result.value == 9.5


def test_one_sided_combined_chlorine() -> None:
    rng = CATALOG.lookup(ChemicalParameter.COMBINED_CHLORINE, PoolCategory.STANDARD)

    assert classify_value(0.0, rng).severity == SeverityLevel.SAFE
    assert classify_value(0.2, rng).severity == SeverityLevel.SAFE
    assert classify_value(0.3, rng).severity == SeverityLevel.CAUTION
    assert classify_value(0.6, rng).severity == SeverityLevel.CRITICAL


def test_missing_parameter_raises() -> None:
    with pytest.raises(MissingParameterError) as exc:
        classify(_mk_reading(pH=7.4), ChemicalParameter.FREE_CHLORINE, PoolCategory.STANDARD, CATALOG)
    assert exc.value.parameter == ChemicalParameter.FREE_CHLORINE
    assert isinstance(exc.value, ReadingError)


@pytest.mark.parametrize(
    "parameter, value",
    [
        (ChemicalParameter.PH, 15.0),
        (ChemicalParameter.FREE_CHLORINE, -1.0),
        (ChemicalParameter.PH, math.nan),
        (ChemicalParameter.TEMPERATURE, math.inf),
        (ChemicalParameter.PH, "seven"),
        (ChemicalParameter.PH, True),
    ],
)
def test_implausible_values_raise(parameter: ChemicalParameter, value: object) -> None:
    with pytest.raises(ImplausibleReadingError) as exc:
        check_plausible(parameter, value, CATALOG)
    assert exc.value.parameter == parameter


def test_implausible_reading_through_classify() -> None:
    with pytest.raises(ImplausibleReadingError):
        classify(_mk_reading(pH=15.0), ChemicalParameter.PH, PoolCategory.STANDARD, CATALOG)


def test_integer_values_are_accepted() -> None:
    assert check_plausible(ChemicalParameter.TOTAL_ALKALINITY, 100, CATALOG) == 100.0


def test_category_changes_classification() -> None:
    """
    FC 2.5 is safe in a standard pool but below the spa safe band.
    """
    reading = _mk_reading(freeChlorine=2.5)
    std = classify(reading, ChemicalParameter.FREE_CHLORINE, PoolCategory.STANDARD, CATALOG)
    spa = classify(reading, ChemicalParameter.FREE_CHLORINE, PoolCategory.SPA, CATALOG)

    assert std.severity == SeverityLevel.SAFE
    assert spa.severity == SeverityLevel.CAUTION
    assert spa.is_low


def test_implausible_error_keeps_raw_value() -> None:
    with pytest.raises(ImplausibleReadingError) as exc:
        check_plausible(ChemicalParameter.PH, "seven", CATALOG)
    assert exc.value.value == "seven"
    assert exc.value.bounds is None
    assert "'seven' is not a finite number" in str(exc.value)
