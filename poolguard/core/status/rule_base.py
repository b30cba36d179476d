"""
Compound-risk rule contracts.

This module defines the contract between:

- Compound rules (stateless predicates over normalized parameter results)
  producing -> class:`RuleMatch`
- The status aggregator consuming matches to escalate overall severity and
  collect compound risk flags

Rules are evaluated in table order against results sorted by parameter name,
so the outcome never depends on the order results were supplied in.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Protocol, Tuple

from poolguard.domain.models import ChemicalParameter, ParameterResult, SeverityLevel


@dataclass(frozen=True)
class RuleMatch:
    """
    Result of a triggered compound rule.

    Parameters
    ----------
    flag
        Stable identifier appended to ``PoolStatus.compound_risk_flags``.
    escalate_to
        Minimum overall severity the rule imposes.
    message
        Human-readable description of the compound condition.
    """

    flag: str
    escalate_to: SeverityLevel
    message: str


class CompoundRule(Protocol):
    """
    Protocol interface for compound-risk rules.

    Any class implementing this protocol can be placed in the aggregator's
    rule table. Rules must be **stateless** and derive everything from the
    results they are given.

    Attributes
    ----------
    flag
        Identifier reported when the rule fires.
    inputs
        Parameters the rule reads. The rule cannot be evaluated unless all
        of them have results.

    Methods
    -------
    evaluate(results)
        Return a match if the rule fires, otherwise None.
    """

    flag: str
    inputs: Tuple[ChemicalParameter, ...]

    def evaluate(self, results: Mapping[ChemicalParameter, ParameterResult]) -> Optional[RuleMatch]:
        """
        Evaluate the rule.

        Parameters
        ----------
        results
            Parameter results indexed by parameter, built from the normalized
            (sorted) result list. Excluded parameters are absent.

        Returns
        -------
        RuleMatch or None
            Match when the rule fires.
        """
        ...
