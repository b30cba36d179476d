"""
Whole-reading compliance evaluation.

Runs the parameter validator over every parameter of a reading (plus any
required parameter that is missing), aggregates the results into a
`PoolStatus`, and summarizes the outcome as a `ComplianceReport`:

- test counts per severity band
- closure decision with reasons
- issues sorted by priority (parameter weight x severity multiplier)
- de-duplicated recommendations (caution) and required actions (critical and
  above)

Missing and implausible parameters are reported as exclusions. They never
count as passed tests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from poolguard.config.settings import Settings
from poolguard.core.alert.recommendations import recommend, side_of
from poolguard.core.catalog.range_catalog import RangeCatalog
from poolguard.core.status.aggregator import aggregate
from poolguard.core.status.compound_rules import DEFAULT_RULES
from poolguard.core.status.rule_base import CompoundRule
from poolguard.core.validation.parameter_validator import classify
from poolguard.domain.errors import ImplausibleReadingError, MissingParameterError
from poolguard.domain.models import (
    COMPOUND_SUBJECT,
    ChemicalParameter as P,
    ChemicalReading,
    ExcludedParameter,
    ParameterResult,
    PoolProfile,
    PoolStatus,
    SeverityLevel,
)

logger = logging.getLogger(__name__)

DEFAULT_REQUIRED: Tuple[P, ...] = Settings().required_parameters

PARAMETER_PRIORITY: Dict[P, int] = {
    P.FREE_CHLORINE: 10,
    P.PH: 9,
    P.COMBINED_CHLORINE: 8,
    P.ORP: 7,
    P.TOTAL_ALKALINITY: 6,
    P.CYANURIC_ACID: 4,
    P.CALCIUM_HARDNESS: 3,
    P.TEMPERATURE: 2,
}

SEVERITY_MULTIPLIER: Dict[SeverityLevel, int] = {
    SeverityLevel.SAFE: 1,
    SeverityLevel.CAUTION: 2,
    SeverityLevel.CRITICAL: 3,
    SeverityLevel.EMERGENCY: 4,
}

_PRECISION: Dict[P, int] = {
    P.PH: 1,
    P.FREE_CHLORINE: 1,
    P.COMBINED_CHLORINE: 1,
}


@dataclass(frozen=True)
class ComplianceIssue:
    """One non-safe parameter, with its priority and recommended action."""

    parameter: P
    value: float
    severity: SeverityLevel
    priority: int
    recommendation: str


@dataclass(frozen=True)
class ComplianceReport:
    """
    Summary of one reading's compliance.

    Parameters
    ----------
    status
        Aggregated pool status (includes compound flags and exclusions).
    total_tests
        Number of classified parameters.
    passed_tests, caution_tests, critical_tests
        Classified parameters per severity band.
    requires_closure
        True when the overall severity is EMERGENCY.
    closure_reasons
        Compound flags and critical parameters behind a closure.
    issues
        Non-safe parameters, highest priority first.
    recommendations
        De-duplicated actions for caution-level issues.
    required_actions
        De-duplicated actions for critical issues and closures.
    """

    status: PoolStatus
    total_tests: int
    passed_tests: int
    caution_tests: int
    critical_tests: int
    requires_closure: bool
    closure_reasons: Tuple[str, ...]
    issues: Tuple[ComplianceIssue, ...]
    recommendations: Tuple[str, ...]
    required_actions: Tuple[str, ...]

    @property
    def excluded_parameters(self) -> Tuple[ExcludedParameter, ...]:
        return self.status.excluded_parameters


def priority_of(parameter: P, severity: SeverityLevel) -> int:
    """Issue priority: parameter base weight times severity multiplier."""
    return PARAMETER_PRIORITY.get(parameter, 1) * SEVERITY_MULTIPLIER[severity]


def format_value(parameter: P, value: float, unit: str = "") -> str:
    """Format a value with parameter-appropriate precision and unit."""
    precision = _PRECISION.get(parameter, 0)
    return f"{value:.{precision}f} {unit}".strip()


def classify_reading(
    reading: ChemicalReading,
    catalog: RangeCatalog,
    profile: Optional[PoolProfile] = None,
    required: Iterable[P] = DEFAULT_REQUIRED,
) -> Tuple[List[ParameterResult], List[ExcludedParameter]]:
    """
    Classify every present parameter plus every required one.

    Returns
    -------
    (results, excluded)
        Classified results and the parameters that could not be classified.

    Raises
    ------
    ConfigError
        If the catalog lacks a range for a present parameter.
    """
    category = profile.category if profile is not None else reading.category
    usage = profile.usage if profile is not None else None

    wanted = set(reading.values.keys()) | set(required)
    results: List[ParameterResult] = []
    excluded: List[ExcludedParameter] = []

    for parameter in sorted(wanted, key=lambda p: p.value):
        try:
            results.append(classify(reading, parameter, category, catalog, usage))
        except MissingParameterError as e:
            excluded.append(ExcludedParameter(parameter, "missing", str(e)))
        except ImplausibleReadingError as e:
            logger.warning("pool %s: %s", reading.pool_id, e)
            excluded.append(ExcludedParameter(parameter, "implausible", str(e), value=reading.get(parameter)))

    return results, excluded


def build_report(status: PoolStatus) -> ComplianceReport:
    """Summarize an aggregated status as a compliance report."""
    results = status.parameter_results
    passed = sum(1 for r in results if r.severity == SeverityLevel.SAFE)
    caution = sum(1 for r in results if r.severity == SeverityLevel.CAUTION)
    critical = sum(1 for r in results if r.severity >= SeverityLevel.CRITICAL)

    issues = sorted(
        (
            ComplianceIssue(
                parameter=r.parameter,
                value=r.value,
                severity=r.severity,
                priority=priority_of(r.parameter, r.severity),
                recommendation=recommend(r.parameter.value, r.severity, side=side_of(r.distance_to_safe)),
            )
            for r in results
            if r.severity > SeverityLevel.SAFE
        ),
        key=lambda i: (-i.priority, i.parameter.value),
    )

    requires_closure = status.overall_severity == SeverityLevel.EMERGENCY

    closure_reasons: List[str] = []
    if requires_closure:
        closure_reasons.extend(status.compound_risk_flags)
        closure_reasons.extend(
            f"{i.parameter.value} {i.severity.value}" for i in issues if i.severity >= SeverityLevel.CRITICAL
        )

    recommendations: List[str] = []
    required_actions: List[str] = []
    if requires_closure:
        required_actions.append("IMMEDIATE POOL CLOSURE REQUIRED")
    if status.compound_risk_flags:
        required_actions.append(
            recommend(COMPOUND_SUBJECT, status.compound_severity, compound_flags=status.compound_risk_flags)
        )
    for i in issues:
        target = required_actions if i.severity >= SeverityLevel.CRITICAL else recommendations
        if i.recommendation not in target:
            target.append(i.recommendation)

    return ComplianceReport(
        status=status,
        total_tests=len(results),
        passed_tests=passed,
        caution_tests=caution,
        critical_tests=critical,
        requires_closure=requires_closure,
        closure_reasons=tuple(dict.fromkeys(closure_reasons)),
        issues=tuple(issues),
        recommendations=tuple(recommendations),
        required_actions=tuple(required_actions),
    )


def evaluate_reading(
    reading: ChemicalReading,
    catalog: RangeCatalog,
    profile: Optional[PoolProfile] = None,
    required: Iterable[P] = DEFAULT_REQUIRED,
    rules: Sequence[CompoundRule] = DEFAULT_RULES,
) -> ComplianceReport:
    """
    Classify, aggregate and summarize one reading.

    Parameters
    ----------
    reading
        Technician reading.
    catalog
        Range catalog.
    profile
        Optional pool profile; its category and usage take precedence over
        the reading's category.
    required
        Parameters that must be present; missing ones are excluded and
        reported.
    rules
        Compound-rule table.

    Returns
    -------
    ComplianceReport
        Report wrapping the aggregated `PoolStatus`.
    """
    results, excluded = classify_reading(reading, catalog, profile, required)
    status = aggregate(results, reading.pool_id, reading.timestamp, excluded=excluded, rules=rules)
    return build_report(status)


def reading_age_severity(
    last_reading_at: Optional[datetime],
    now: datetime,
    max_age: timedelta = Settings().max_reading_age,
) -> SeverityLevel:
    """
    Severity of a pool's testing gap.

    Returns CRITICAL when the pool was never tested or its latest reading is
    older than ``max_age``, SAFE otherwise.
    """
    if last_reading_at is None:
        return SeverityLevel.CRITICAL
    return SeverityLevel.CRITICAL if now - last_reading_at > max_age else SeverityLevel.SAFE
