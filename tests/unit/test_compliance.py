"""
Unit tests for poolguard.core.compliance.

These tests validate the whole-reading evaluation:
- pool profile category and usage select the range table
- missing and implausible parameters are excluded, never counted as passed
- report counts, issue priorities, closure decision and action lists
- value formatting and testing-gap severity
"""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from poolguard.core.catalog.range_catalog import default_catalog
from poolguard.core.compliance import (
    evaluate_reading,
    format_value,
    priority_of,
    reading_age_severity,
)
from poolguard.domain.models import (
    ChemicalParameter as P,
    ChemicalReading,
    PoolCategory,
    PoolProfile,
    SeverityLevel,
)

CATALOG = default_catalog()
TS = datetime(2026, 1, 1, 10, 0, 0)


def _mk_reading(values, category: PoolCategory = PoolCategory.STANDARD) -> ChemicalReading:
    return ChemicalReading(
        pool_id="P1",
        category=category,
        timestamp=TS,
        technician_id="T1",
        values=values,
    )


def test_profile_category_overrides_reading_category() -> None:
    reading = _mk_reading({P.PH: 7.4, P.FREE_CHLORINE: 2.5})

    std = evaluate_reading(reading, CATALOG)
    spa = evaluate_reading(reading, CATALOG, profile=PoolProfile("P1", PoolCategory.SPA))

    assert std.status.overall_severity == SeverityLevel.SAFE
    assert spa.status.result_for(P.FREE_CHLORINE).severity == SeverityLevel.CAUTION


def test_heavy_usage_profile_uses_usage_range() -> None:
    reading = _mk_reading({P.PH: 7.4, P.FREE_CHLORINE: 1.5})
    profile = PoolProfile("P1", PoolCategory.STANDARD, usage="heavy")

    assert evaluate_reading(reading, CATALOG).status.overall_severity == SeverityLevel.SAFE
    report = evaluate_reading(reading, CATALOG, profile=profile)
    assert report.status.result_for(P.FREE_CHLORINE).severity == SeverityLevel.CAUTION


def test_missing_required_parameter_is_excluded() -> None:
    report = evaluate_reading(_mk_reading({P.FREE_CHLORINE: 2.0}), CATALOG)

    assert report.total_tests == 1
    assert report.passed_tests == 1
    assert [(e.parameter, e.reason) for e in report.excluded_parameters] == [(P.PH, "missing")]


def test_optional_parameter_may_be_absent() -> None:
    report = evaluate_reading(_mk_reading({P.PH: 7.4, P.FREE_CHLORINE: 2.0}), CATALOG)
    assert report.excluded_parameters == ()


def test_implausible_value_is_excluded(caplog) -> None:
    with caplog.at_level("WARNING"):
        report = evaluate_reading(_mk_reading({P.PH: 15.0, P.FREE_CHLORINE: 2.0}), CATALOG)

    (excluded,) = report.excluded_parameters
    assert excluded.parameter == P.PH
    assert excluded.reason == "implausible"
    assert excluded.value == 15.0
    assert report.status.result_for(P.PH) is None
    assert "pH value 15.0 outside physical bounds" in caplog.text


def test_report_counts_and_priorities() -> None:
    report = evaluate_reading(
        _mk_reading(
            {
                P.PH: 7.4,
                P.FREE_CHLORINE: 0.5,
                P.COMBINED_CHLORINE: 0.6,
                P.TOTAL_ALKALINITY: 100.0,
            }
        ),
        CATALOG,
    )

    assert report.total_tests == 4
    assert report.passed_tests == 2
    assert report.caution_tests == 1
    assert report.critical_tests == 1
    assert report.status.overall_severity == SeverityLevel.CRITICAL
    assert not report.requires_closure
    assert report.closure_reasons == ()

    assert [(i.parameter, i.priority) for i in report.issues] == [
        (P.COMBINED_CHLORINE, 24),
        (P.FREE_CHLORINE, 20),
    ]
    assert report.required_actions[0].startswith("Superchlorinate to breakpoint")
    assert report.required_actions[1].startswith("Restrict bather entry.")
    assert len(report.recommendations) == 1
    assert report.recommendations[0].startswith("Add liquid or granular chlorine")


def test_compound_emergency_requires_closure() -> None:
    report = evaluate_reading(_mk_reading({P.PH: 8.0, P.FREE_CHLORINE: 0.5}), CATALOG)

    assert report.requires_closure
    assert report.closure_reasons == ("compromised-disinfection",)
    assert report.required_actions[0] == "IMMEDIATE POOL CLOSURE REQUIRED"
    assert report.required_actions[1].startswith("Close the pool; lower pH")
    assert [i.parameter for i in report.issues] == [P.FREE_CHLORINE, P.PH]


def test_zero_chlorine_closure_lists_critical_parameters() -> None:
    report = evaluate_reading(_mk_reading({P.PH: 7.4, P.FREE_CHLORINE: 0.0}), CATALOG)

    assert report.requires_closure
    assert report.closure_reasons == ("zero-disinfectant", "freeChlorine critical")


def test_priority_weights() -> None:
    assert priority_of(P.FREE_CHLORINE, SeverityLevel.CRITICAL) == 30
    assert priority_of(P.TEMPERATURE, SeverityLevel.CAUTION) == 4
    assert priority_of(P.PH, SeverityLevel.CRITICAL) > priority_of(P.ORP, SeverityLevel.CRITICAL)


@pytest.mark.parametrize(
    "parameter, value, unit, expected",
    [
        (P.PH, 7.456, "", "7.5"),
        (P.FREE_CHLORINE, 2, "ppm", "2.0 ppm"),
        (P.TOTAL_ALKALINITY, 100.4, "ppm", "100 ppm"),
        (P.ORP, 712.6, "mV", "713 mV"),
    ],
)
def test_format_value(parameter, value, unit, expected) -> None:
    assert format_value(parameter, value, unit) == expected


def test_reading_age_severity() -> None:
    now = datetime(2026, 1, 15, 10, 0, 0)
    max_age = timedelta(days=14)

    assert reading_age_severity(None, now, max_age) == SeverityLevel.CRITICAL
    assert reading_age_severity(now - timedelta(days=14), now, max_age) == SeverityLevel.SAFE
    assert reading_age_severity(now - timedelta(days=15), now, max_age) == SeverityLevel.CRITICAL
    assert reading_age_severity(now - timedelta(hours=2), now) == SeverityLevel.SAFE
