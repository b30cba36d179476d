from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from poolguard.core.status.rule_base import CompoundRule, RuleMatch
from poolguard.domain.models import ChemicalParameter, ParameterResult, SeverityLevel

FLAG_COMPROMISED_DISINFECTION = "compromised-disinfection"
FLAG_ZERO_DISINFECTANT = "zero-disinfectant"
FLAG_CHLORAMINE_BUILDUP = "chloramine-buildup"


def _is_critical_or_caution_low(r: Optional[ParameterResult]) -> bool:
    if r is None:
        return False
    if r.severity == SeverityLevel.CRITICAL:
        return True
    return r.severity == SeverityLevel.CAUTION and r.is_low


def _is_critical_or_caution_high(r: Optional[ParameterResult]) -> bool:
    if r is None:
        return False
    if r.severity == SeverityLevel.CRITICAL:
        return True
    return r.severity == SeverityLevel.CAUTION and r.is_high


@dataclass(frozen=True)
class CompromisedDisinfectionRule(CompoundRule):
    """
    Low chlorine combined with high pH.

    Fires when free chlorine is critical or caution-low AND pH is critical or
    caution-high. Chlorine efficacy drops sharply as pH rises, so the two
    together leave the pool without effective disinfection even when neither
    is critical on its own.
    """

    flag: str = FLAG_COMPROMISED_DISINFECTION
    inputs: Tuple[ChemicalParameter, ...] = (ChemicalParameter.FREE_CHLORINE, ChemicalParameter.PH)

    def evaluate(self, results: Mapping[ChemicalParameter, ParameterResult]) -> Optional[RuleMatch]:
        fc = results.get(ChemicalParameter.FREE_CHLORINE)
        ph = results.get(ChemicalParameter.PH)
        if fc is None or ph is None:
            return None
        if not (_is_critical_or_caution_low(fc) and _is_critical_or_caution_high(ph)):
            return None
        return RuleMatch(
            flag=self.flag,
            escalate_to=SeverityLevel.EMERGENCY,
            message=f"Disinfection compromised: free chlorine {fc.value:g} ppm with pH {ph.value:g}",
        )


@dataclass(frozen=True)
class ZeroDisinfectantRule(CompoundRule):
    """
    No free chlorine at all.

    Fires when the free chlorine value is exactly zero, regardless of any
    other parameter.
    """

    flag: str = FLAG_ZERO_DISINFECTANT
    inputs: Tuple[ChemicalParameter, ...] = (ChemicalParameter.FREE_CHLORINE,)

    def evaluate(self, results: Mapping[ChemicalParameter, ParameterResult]) -> Optional[RuleMatch]:
        fc = results.get(ChemicalParameter.FREE_CHLORINE)
        if fc is None or fc.value != 0:
            return None
        return RuleMatch(
            flag=self.flag,
            escalate_to=SeverityLevel.EMERGENCY,
            message="No free chlorine detected",
        )


@dataclass(frozen=True)
class ChloramineBuildupRule(CompoundRule):
    """
    Chloramines accumulating while free chlorine looks acceptable.

    Fires when combined chlorine is critical AND free chlorine is safe or
    caution. This is an air-quality concern, so escalation is capped at
    ``CRITICAL``.
    """

    flag: str = FLAG_CHLORAMINE_BUILDUP
    inputs: Tuple[ChemicalParameter, ...] = (ChemicalParameter.COMBINED_CHLORINE, ChemicalParameter.FREE_CHLORINE)

    def evaluate(self, results: Mapping[ChemicalParameter, ParameterResult]) -> Optional[RuleMatch]:
        cc = results.get(ChemicalParameter.COMBINED_CHLORINE)
        fc = results.get(ChemicalParameter.FREE_CHLORINE)
        if cc is None or fc is None:
            return None
        if cc.severity != SeverityLevel.CRITICAL:
            return None
        if fc.severity not in (SeverityLevel.SAFE, SeverityLevel.CAUTION):
            return None
        return RuleMatch(
            flag=self.flag,
            escalate_to=SeverityLevel.CRITICAL,
            message=f"Chloramine buildup: combined chlorine {cc.value:g} ppm",
        )


DEFAULT_RULES: Tuple[CompoundRule, ...] = (
    CompromisedDisinfectionRule(),
    ZeroDisinfectantRule(),
    ChloramineBuildupRule(),
)
