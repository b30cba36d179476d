"""
Pool status aggregation.

Combines per-parameter results into one `PoolStatus`:

1. The base severity is the worst single-parameter severity.
2. Compound rules from an ordered rule table are evaluated against the
   normalized results; each match appends its flag and may escalate the
   overall severity.
3. Rules whose inputs lack a result are listed as unevaluated, so a
   missing chlorine reading is never read as a cleared compound condition.

Aggregation is deterministic and independent of the order in which results
are supplied: results are sorted by parameter name before anything else.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, Sequence, Tuple

from poolguard.core.status.compound_rules import DEFAULT_RULES
from poolguard.core.status.rule_base import CompoundRule, RuleMatch
from poolguard.domain.models import (
    ChemicalParameter,
    ExcludedParameter,
    ParameterResult,
    PoolStatus,
    SeverityLevel,
)


def normalize_results(results: Iterable[ParameterResult]) -> Tuple[ParameterResult, ...]:
    """
    Sort results by parameter name.

    Raises
    ------
    ValueError
        If the same parameter appears more than once.
    """
    ordered = tuple(sorted(results, key=lambda r: r.parameter.value))
    seen = set()
    for r in ordered:
        if r.parameter in seen:
            raise ValueError(f"duplicate result for {r.parameter.value}")
        seen.add(r.parameter)
    return ordered


def unevaluated_rules(
    results: Sequence[ParameterResult],
    rules: Sequence[CompoundRule] = DEFAULT_RULES,
) -> Tuple[str, ...]:
    """Flags of rules with at least one input lacking a result, in table order."""
    present = {r.parameter for r in results}
    return tuple(rule.flag for rule in rules if not all(p in present for p in rule.inputs))


def evaluate_rules(
    results: Sequence[ParameterResult],
    rules: Sequence[CompoundRule] = DEFAULT_RULES,
) -> List[RuleMatch]:
    """
    Evaluate compound rules in table order.

    Parameters
    ----------
    results
        Normalized parameter results.
    rules
        Ordered rule table.

    Returns
    -------
    list of RuleMatch
        Matches of the rules that fired, in table order.
    """
    indexed: Dict[ChemicalParameter, ParameterResult] = {r.parameter: r for r in results}
    matches: List[RuleMatch] = []
    for rule in rules:
        m = rule.evaluate(indexed)
        if m is not None:
            matches.append(m)
    return matches


def aggregate(
    results: Iterable[ParameterResult],
    pool_id: str,
    timestamp: datetime,
    excluded: Iterable[ExcludedParameter] = (),
    rules: Sequence[CompoundRule] = DEFAULT_RULES,
) -> PoolStatus:
    """
    Aggregate parameter results into a pool status.

    Parameters
    ----------
    results
        Per-parameter results, in any order.
    pool_id
        Pool the results belong to.
    timestamp
        Timestamp of the underlying reading.
    excluded
        Parameters left out of aggregation (missing or implausible); carried
        through so consumers cannot mistake "no data" for "safe".
    rules
        Ordered compound-rule table.

    Returns
    -------
    PoolStatus
        Aggregated status. With no results, the overall severity is SAFE.
    """
    normalized = normalize_results(results)

    overall = max((r.severity for r in normalized), default=SeverityLevel.SAFE)

    matches = evaluate_rules(normalized, rules)
    compound = max((m.escalate_to for m in matches), default=SeverityLevel.SAFE)
    overall = max(overall, compound)

    excluded_sorted = tuple(sorted(excluded, key=lambda e: e.parameter.value))

    return PoolStatus(
        pool_id=pool_id,
        timestamp=timestamp,
        overall_severity=overall,
        parameter_results=normalized,
        compound_risk_flags=tuple(m.flag for m in matches),
        excluded_parameters=excluded_sorted,
        compound_severity=compound,
        unevaluated_rules=unevaluated_rules(normalized, rules),
    )
