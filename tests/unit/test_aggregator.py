"""
Unit tests for poolguard.core.status.aggregator and compound rules.

These tests validate:
- overall severity is the worst parameter severity, raised by compound rules
- aggregation is independent of input order
- compound flags appear in rule-table order
- excluded parameters are carried through unchanged
"""

from __future__ import annotations

import random
from datetime import datetime
from typing import Dict, List

import pytest

from poolguard.core.catalog.range_catalog import default_catalog
from poolguard.core.status.aggregator import aggregate, evaluate_rules, normalize_results
from poolguard.core.status.compound_rules import (
    FLAG_CHLORAMINE_BUILDUP,
    FLAG_COMPROMISED_DISINFECTION,
    FLAG_ZERO_DISINFECTANT,
    ChloramineBuildupRule,
    CompromisedDisinfectionRule,
    ZeroDisinfectantRule,
)
from poolguard.core.validation.parameter_validator import classify_value
from poolguard.domain.models import (
    ChemicalParameter as P,
    ExcludedParameter,
    ParameterResult,
    PoolCategory,
    SeverityLevel,
)

CATALOG = default_catalog()
TS = datetime(2026, 1, 1, 10, 0, 0)


def _mk_results(values: Dict[P, float]) -> List[ParameterResult]:
    return [classify_value(v, CATALOG.lookup(p, PoolCategory.STANDARD)) for p, v in values.items()]


def test_all_safe_is_safe() -> None:
    status = aggregate(_mk_results({P.PH: 7.4, P.FREE_CHLORINE: 2.0}), "P1", TS)

    assert status.overall_severity == SeverityLevel.SAFE
    assert status.compound_severity == SeverityLevel.SAFE
    assert status.compound_risk_flags == ()
    assert status.pool_id == "P1"
    assert status.timestamp == TS


def test_empty_results_are_safe() -> None:
    status = aggregate([], "P1", TS)
    assert status.overall_severity == SeverityLevel.SAFE
    assert status.parameter_results == ()


def test_overall_is_worst_parameter() -> None:
    status = aggregate(
        _mk_results({P.PH: 7.4, P.TOTAL_ALKALINITY: 70.0, P.CALCIUM_HARDNESS: 50.0}),
        "P1",
        TS,
    )
    assert status.overall_severity == SeverityLevel.CRITICAL
    assert status.result_for(P.TOTAL_ALKALINITY).severity == SeverityLevel.CAUTION


def test_order_independence() -> None:
    results = _mk_results(
        {
            P.PH: 8.0,
            P.FREE_CHLORINE: 0.5,
            P.COMBINED_CHLORINE: 0.3,
            P.TEMPERATURE: 88.0,
            P.ORP: 700.0,
        }
    )
    expected = aggregate(results, "P1", TS)

    rnd = random.Random(42)
    for _ in range(10):
        shuffled = list(results)
        rnd.shuffle(shuffled)
        assert aggregate(shuffled, "P1", TS) == expected


def test_zero_free_chlorine_is_emergency() -> None:
    status = aggregate(_mk_results({P.PH: 7.4, P.FREE_CHLORINE: 0.0}), "P1", TS)

    assert status.overall_severity == SeverityLevel.EMERGENCY
    assert FLAG_ZERO_DISINFECTANT in status.compound_risk_flags


def test_caution_ph_high_with_caution_fc_low_is_emergency() -> None:
    """
    pH 8.0 and FC 0.5 are each only CAUTION, but together disinfection fails.
    """
    results = _mk_results({P.PH: 8.0, P.FREE_CHLORINE: 0.5})
    assert all(r.severity == SeverityLevel.CAUTION for r in results)

    status = aggregate(results, "P1", TS)
    assert status.overall_severity == SeverityLevel.EMERGENCY
    assert status.compound_severity == SeverityLevel.EMERGENCY
    assert status.compound_risk_flags == (FLAG_COMPROMISED_DISINFECTION,)


def test_low_ph_with_low_fc_is_not_compromised_disinfection() -> None:
    status = aggregate(_mk_results({P.PH: 7.0, P.FREE_CHLORINE: 0.5}), "P1", TS)

    assert status.overall_severity == SeverityLevel.CAUTION
    assert status.compound_risk_flags == ()


def test_chloramine_buildup_is_critical() -> None:
    status = aggregate(
        _mk_results({P.PH: 7.4, P.FREE_CHLORINE: 2.0, P.COMBINED_CHLORINE: 0.6}),
        "P1",
        TS,
    )

    assert status.overall_severity == SeverityLevel.CRITICAL
    assert status.compound_severity == SeverityLevel.CRITICAL
    assert status.compound_risk_flags == (FLAG_CHLORAMINE_BUILDUP,)


def test_flags_follow_rule_table_order() -> None:
    """
    FC 0 with high pH fires compromised-disinfection then zero-disinfectant.
    """
    status = aggregate(_mk_results({P.FREE_CHLORINE: 0.0, P.PH: 8.2}), "P1", TS)
    assert status.compound_risk_flags == (FLAG_COMPROMISED_DISINFECTION, FLAG_ZERO_DISINFECTANT)


def test_excluded_parameters_are_carried_through() -> None:
    excluded = [
        ExcludedParameter(P.PH, "missing"),
        ExcludedParameter(P.FREE_CHLORINE, "implausible", value=-1.0),
    ]
    status = aggregate(_mk_results({P.TEMPERATURE: 82.0}), "P1", TS, excluded=excluded)

    assert status.overall_severity == SeverityLevel.SAFE
    assert [e.parameter for e in status.excluded_parameters] == [P.FREE_CHLORINE, P.PH]


def test_duplicate_results_rejected() -> None:
    r = ParameterResult(P.PH, 7.4, SeverityLevel.SAFE)
    with pytest.raises(ValueError):
        normalize_results([r, r])


def test_custom_rule_table_is_respected() -> None:
    results = normalize_results(_mk_results({P.FREE_CHLORINE: 0.0, P.PH: 8.2}))

    matches = evaluate_rules(results, [ZeroDisinfectantRule()])
    assert [m.flag for m in matches] == [FLAG_ZERO_DISINFECTANT]

    assert evaluate_rules(results, []) == []


def test_rules_ignore_absent_parameters() -> None:
    results = {r.parameter: r for r in _mk_results({P.PH: 8.3})}

    assert CompromisedDisinfectionRule().evaluate(results) is None
    assert ZeroDisinfectantRule().evaluate(results) is None
    assert ChloramineBuildupRule().evaluate(results) is None


def test_unevaluated_rules_listed() -> None:
    ph_only = aggregate(_mk_results({P.PH: 7.4}), "P1", TS)
    assert ph_only.unevaluated_rules == (
        FLAG_COMPROMISED_DISINFECTION,
        FLAG_ZERO_DISINFECTANT,
        FLAG_CHLORAMINE_BUILDUP,
    )
    assert ph_only.compound_severity == SeverityLevel.SAFE

    no_cc = aggregate(_mk_results({P.PH: 7.4, P.FREE_CHLORINE: 2.0}), "P1", TS)
    assert no_cc.unevaluated_rules == (FLAG_CHLORAMINE_BUILDUP,)

    full = aggregate(
        _mk_results({P.PH: 7.4, P.FREE_CHLORINE: 2.0, P.COMBINED_CHLORINE: 0.1}), "P1", TS
    )
    assert full.unevaluated_rules == ()
