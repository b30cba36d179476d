"""
Recommended-action lookup.

Actions are derived from ``(subject, side, severity, direction)`` through
plain lookup tables so wording can change without touching alert logic.
The alert engine stores the structured fields alongside the text, so a
presentation layer can render its own guidance instead.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional, Tuple

from poolguard.domain.models import (
    COMPOUND_SUBJECT,
    ChemicalParameter as P,
    SeverityLevel,
    TrendDirection,
)

LOW = "low"
HIGH = "high"

_ADJUSTMENTS: Dict[Tuple[str, str], str] = {
    (P.FREE_CHLORINE.value, LOW): "Add liquid or granular chlorine and check chlorine feeder operation",
    (P.FREE_CHLORINE.value, HIGH): "Reduce chlorine feed; allow natural dissipation or add sodium thiosulfate",
    (P.COMBINED_CHLORINE.value, HIGH): "Superchlorinate to break chloramines and increase fresh-air ventilation",
    (P.PH.value, LOW): "Add sodium carbonate (soda ash) to raise pH; check alkalinity first",
    (P.PH.value, HIGH): "Add muriatic acid or sodium bisulfate in small increments to lower pH",
    (P.TOTAL_ALKALINITY.value, LOW): "Add sodium bicarbonate to raise alkalinity",
    (P.TOTAL_ALKALINITY.value, HIGH): "Add muriatic acid to lower alkalinity; monitor pH closely",
    (P.CALCIUM_HARDNESS.value, LOW): "Add calcium chloride to raise hardness",
    (P.CALCIUM_HARDNESS.value, HIGH): "Partially drain and refill; inspect surfaces for scale",
    (P.CYANURIC_ACID.value, LOW): "Add cyanuric acid stabilizer (outdoor pools only)",
    (P.CYANURIC_ACID.value, HIGH): "Partially drain and refill; stabilizer cannot be reduced chemically",
    (P.TEMPERATURE.value, LOW): "Check heater operation and thermostat setting",
    (P.TEMPERATURE.value, HIGH): "Lower heater setpoint and increase circulation",
    (P.ORP.value, LOW): "Increase sanitizer feed and verify ORP controller calibration",
    (P.ORP.value, HIGH): "Reduce sanitizer feed and verify ORP probe calibration",
}

# Critical free chlorine shortfalls call for shock rather than routine dosing.
_CRITICAL_ADJUSTMENTS: Dict[Tuple[str, str], str] = {
    (P.FREE_CHLORINE.value, LOW): "Add shock treatment",
    (P.PH.value, HIGH): "Add acid to bring pH below 7.8 before re-opening",
}

_COMPOUND_ACTIONS: Dict[str, str] = {
    "zero-disinfectant": "Close the pool immediately and shock-chlorinate",
    "compromised-disinfection": "Close the pool; lower pH and raise free chlorine together",
    "chloramine-buildup": "Superchlorinate to breakpoint and ventilate the facility",
}

_SEVERITY_PREFIX: Dict[SeverityLevel, str] = {
    SeverityLevel.CAUTION: "",
    SeverityLevel.CRITICAL: "Restrict bather entry. ",
    SeverityLevel.EMERGENCY: "CLOSE POOL. ",
}

_RETEST: Dict[SeverityLevel, str] = {
    SeverityLevel.CAUTION: "re-test in 4 hours",
    SeverityLevel.CRITICAL: "re-test in 1 hour",
    SeverityLevel.EMERGENCY: "re-test in 30 minutes",
}


def side_of(distance_to_safe: float) -> Optional[str]:
    """Map a signed distance to ``"low"``/``"high"`` (None when safe)."""
    if distance_to_safe < 0:
        return LOW
    if distance_to_safe > 0:
        return HIGH
    return None


def _is_worsening(side: Optional[str], direction: TrendDirection) -> bool:
    return (side == LOW and direction == TrendDirection.DECREASING) or (
        side == HIGH and direction == TrendDirection.INCREASING
    )


def _is_recovering(side: Optional[str], direction: TrendDirection) -> bool:
    return (side == LOW and direction == TrendDirection.INCREASING) or (
        side == HIGH and direction == TrendDirection.DECREASING
    )


def recommend(
    subject: str,
    severity: SeverityLevel,
    side: Optional[str] = None,
    direction: TrendDirection = TrendDirection.STABLE,
    compound_flags: Tuple[str, ...] = (),
    projected_critical_at: Optional[datetime] = None,
) -> str:
    """
    Build the recommended action for an alert.

    Parameters
    ----------
    subject
        Parameter value or ``"compound"``.
    severity
        Alert severity.
    side
        ``"low"`` or ``"high"`` relative to the safe band (parameter alerts).
    direction
        Trend direction of the parameter.
    compound_flags
        Triggered compound flags (compound alerts).
    projected_critical_at
        Advisory projection used for "re-test by" guidance.

    Returns
    -------
    str
        Action text, e.g. ``"Add shock treatment; re-test in 1 hour"``.
    """
    if severity == SeverityLevel.SAFE:
        return "No action required"

    if subject == COMPOUND_SUBJECT:
        parts = [_COMPOUND_ACTIONS.get(f, f"Investigate {f}") for f in compound_flags]
        base = "; ".join(parts) if parts else "Investigate combined chemistry"
        return f"{base}; {_RETEST[severity]}"

    base = None
    if severity >= SeverityLevel.CRITICAL and side is not None:
        base = _CRITICAL_ADJUSTMENTS.get((subject, side))
    if base is None and side is not None:
        base = _ADJUSTMENTS.get((subject, side))
    if base is None:
        base = f"Check {subject} and adjust toward the safe range"

    text = f"{_SEVERITY_PREFIX[severity]}{base}; {_RETEST[severity]}"

    if _is_worsening(side, direction):
        text += " (trend worsening)"
        if projected_critical_at is not None and severity < SeverityLevel.CRITICAL:
            text += f"; projected critical by {projected_critical_at.isoformat(timespec='minutes')}"
    elif _is_recovering(side, direction):
        text += " (trend recovering)"

    return text
