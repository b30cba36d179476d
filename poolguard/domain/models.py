"""
Domain models and enums.

This module defines the core domain-level types used across the engine:
- Chemical parameters, pool categories and severity levels
- Range reference data (safe/caution/critical bounds, plausibility bounds)
- Pool profiles and technician-submitted chemical readings
- Per-parameter results, aggregated pool status and trend results
- Alerts, which represent the lifecycle of one continuing incident

These are immutable (frozen) dataclasses so they can be shared across layers
and threads, and compared by value in tests.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple


class ChemicalParameter(str, Enum):
    """
    Chemical or physical parameter measured in a pool water test.

    Members
    -------
    PH : str
        Water pH (unitless).
    FREE_CHLORINE : str
        Free available chlorine (ppm).
    COMBINED_CHLORINE : str
        Combined chlorine / chloramines (ppm).
    TOTAL_ALKALINITY : str
        Total alkalinity (ppm as CaCO3).
    CALCIUM_HARDNESS : str
        Calcium hardness (ppm as CaCO3).
    CYANURIC_ACID : str
        Cyanuric acid stabilizer (ppm).
    TEMPERATURE : str
        Water temperature (F).
    ORP : str
        Oxidation-reduction potential (mV).
    """

    PH = "pH"
    FREE_CHLORINE = "freeChlorine"
    COMBINED_CHLORINE = "combinedChlorine"
    TOTAL_ALKALINITY = "totalAlkalinity"
    CALCIUM_HARDNESS = "calciumHardness"
    CYANURIC_ACID = "cyanuricAcid"
    TEMPERATURE = "temperature"
    ORP = "orp"


class PoolCategory(str, Enum):
    """
    Pool category used to select the applicable range table.

    Members
    -------
    STANDARD : str
        General-use swimming pool.
    SPA : str
        Hot tub / spa (higher temperature ceiling, higher chlorine floor).
    THERAPY : str
        Therapy pool (warm water, moderate bather load).
    KIDDIE : str
        Shallow children's pool (narrower chlorine tolerance).
    """

    STANDARD = "standard"
    SPA = "spa"
    THERAPY = "therapy"
    KIDDIE = "kiddie"


_SEVERITY_RANK = {"safe": 0, "caution": 1, "critical": 2, "emergency": 3}


class SeverityLevel(str, Enum):
    """
    Totally ordered severity level: ``SAFE < CAUTION < CRITICAL < EMERGENCY``.

    Used for per-parameter classification, pool-level status and alert
    severity. Comparison operators follow the severity order rather than
    string order, so ``max()`` returns the worst level.
    """

    SAFE = "safe"
    CAUTION = "caution"
    CRITICAL = "critical"
    EMERGENCY = "emergency"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self.value]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, SeverityLevel):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, SeverityLevel):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, SeverityLevel):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, SeverityLevel):
            return NotImplemented
        return self.rank >= other.rank


class TrendDirection(str, Enum):
    """Direction of travel of a parameter across a reading window."""

    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


COMPOUND_SUBJECT = "compound"


@dataclass(frozen=True)
class ParameterRange:
    """
    Safe/caution/critical bounds for one parameter in one pool category.

    Bands, from the inside out:

    - safe:     ``safe_min <= v <= safe_max``
    - caution:  ``caution_min <= v < safe_min`` or ``safe_max < v <= caution_max``
    - critical: anything beyond the caution bounds

    One-sided parameters use ``-inf``/``+inf`` for the missing side.

    Parameters
    ----------
    parameter
        Parameter the range applies to.
    category
        Pool category the range applies to.
    safe_min, safe_max
        Inclusive safe band.
    caution_min, caution_max
        Inclusive outer edges of the caution band.
    critical_min, critical_max
        Outer reference bounds of the critical band.
    unit
        Measurement unit label (e.g. "ppm", "F", "mV").
    usage
        Optional usage level (e.g. "heavy") for usage-specific overrides.
    regulation
        Optional regulatory reference (e.g. "MAHC 5.7.3.1.1").
    """

    parameter: ChemicalParameter
    category: PoolCategory
    safe_min: float
    safe_max: float
    caution_min: float
    caution_max: float
    critical_min: float
    critical_max: float
    unit: str = ""
    usage: Optional[str] = None
    regulation: str = ""

    def is_ordered(self) -> bool:
        """Return True if the bounds satisfy the band ordering invariant."""
        return (
            self.critical_min <= self.caution_min <= self.safe_min
            <= self.safe_max <= self.caution_max <= self.critical_max
        )

    @property
    def safe_midpoint(self) -> float:
        if math.isinf(self.safe_min):
            return self.safe_max
        if math.isinf(self.safe_max):
            return self.safe_min
        return (self.safe_min + self.safe_max) / 2.0

    def safe_range_label(self) -> str:
        """Human-readable safe range, e.g. ``"7.2-7.8"`` or ``"<= 0.2 ppm"``."""
        if math.isinf(self.safe_min):
            text = f"<= {self.safe_max:g} {self.unit}"
        elif math.isinf(self.safe_max):
            text = f">= {self.safe_min:g} {self.unit}"
        else:
            text = f"{self.safe_min:g}-{self.safe_max:g} {self.unit}"
        return text.strip()


@dataclass(frozen=True)
class PlausibilityBounds:
    """Physically possible bounds for a parameter, independent of category."""

    parameter: ChemicalParameter
    minimum: float
    maximum: float

    def contains(self, value: float) -> bool:
        return self.minimum <= value <= self.maximum


@dataclass(frozen=True)
class PoolProfile:
    """
    Static description of a pool as known to the input provider.

    Parameters
    ----------
    pool_id
        Stable identifier of the pool.
    category
        Pool category used for range lookups.
    name
        Optional display name.
    usage
        Optional usage level used for usage-specific range overrides.
    """

    pool_id: str
    category: PoolCategory
    name: str = ""
    usage: Optional[str] = None


@dataclass(frozen=True)
class ChemicalReading:
    """
    One technician submission of chemical values for a pool.

    The ``values`` mapping is wrapped in a read-only proxy at construction;
    the engine only derives results from readings and never mutates them.

    Parameters
    ----------
    pool_id
        Pool the reading was taken for.
    category
        Pool category at the time of the reading.
    timestamp
        When the sample was taken.
    technician_id
        Identifier of the submitting technician.
    values
        Measured values per parameter. Parameters not tested are absent.
    """

    pool_id: str
    category: PoolCategory
    timestamp: datetime
    technician_id: str
    values: Mapping[ChemicalParameter, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    def get(self, parameter: ChemicalParameter) -> Optional[float]:
        return self.values.get(parameter)


@dataclass(frozen=True)
class ParameterResult:
    """
    Classification of one parameter of one reading.

    Parameters
    ----------
    parameter
        Classified parameter.
    value
        Measured value.
    severity
        Severity band the value falls into.
    distance_to_safe
        Signed gap to the nearest safe boundary: negative below ``safe_min``,
        positive above ``safe_max``, 0 inside the safe band.
    """

    parameter: ChemicalParameter
    value: float
    severity: SeverityLevel
    distance_to_safe: float = 0.0

    @property
    def is_low(self) -> bool:
        return self.distance_to_safe < 0

    @property
    def is_high(self) -> bool:
        return self.distance_to_safe > 0


@dataclass(frozen=True)
class ExcludedParameter:
    """
    A parameter left out of aggregation, with the reason.

    ``reason`` is ``"missing"`` (not in the reading) or ``"implausible"``
    (outside physical bounds, likely a sensor or data-entry fault).
    """

    parameter: ChemicalParameter
    reason: str
    detail: str = ""
    value: Optional[float] = None


@dataclass(frozen=True)
class PoolStatus:
    """
    Aggregated status of one pool for one reading.

    Parameters
    ----------
    pool_id
        Pool the status belongs to.
    timestamp
        Timestamp of the reading the status was derived from.
    overall_severity
        Worst per-parameter severity, possibly escalated by compound rules.
    parameter_results
        Per-parameter results, sorted by parameter name.
    compound_risk_flags
        Identifiers of triggered compound rules, in rule-table order.
    excluded_parameters
        Parameters that could not be classified and were left out.
    compound_severity
        Severity attributed to the triggered compound rules (SAFE if none).
    unevaluated_rules
        Flags of compound rules that could not be evaluated because one of
        their inputs is missing or excluded; their condition is unknown.
    """

    pool_id: str
    timestamp: datetime
    overall_severity: SeverityLevel
    parameter_results: Tuple[ParameterResult, ...] = ()
    compound_risk_flags: Tuple[str, ...] = ()
    excluded_parameters: Tuple[ExcludedParameter, ...] = ()
    compound_severity: SeverityLevel = SeverityLevel.SAFE
    unevaluated_rules: Tuple[str, ...] = ()

    def result_for(self, parameter: ChemicalParameter) -> Optional[ParameterResult]:
        for r in self.parameter_results:
            if r.parameter == parameter:
                return r
        return None


@dataclass(frozen=True)
class TrendResult:
    """
    Trend of one parameter across an ordered window of readings.

    Parameters
    ----------
    parameter
        Analyzed parameter.
    direction
        Increasing, decreasing or stable.
    rate_per_hour
        Estimated change per hour (0 when insufficient data).
    projected_critical_at
        Advisory linear projection of when the value reaches the critical
        band, or None when it is moving away or cannot be extrapolated.
    sample_count
        Number of usable samples in the window.
    """

    parameter: ChemicalParameter
    direction: TrendDirection = TrendDirection.STABLE
    rate_per_hour: float = 0.0
    projected_critical_at: Optional[datetime] = None
    sample_count: int = 0


@dataclass(frozen=True)
class AlertKey:
    """
    Identity of an alert slot: at most one open alert per key.

    ``subject`` is a ``ChemicalParameter`` value or ``"compound"``.
    """

    pool_id: str
    subject: str


@dataclass(frozen=True)
class Alert:
    """
    One continuing safety incident for a pool parameter or compound condition.

    The ``id`` is assigned when the alert opens and is preserved across
    escalations. ``safe_since`` records when the subject first read safe again
    while the alert was open; it is cleared by any non-safe reading.

    Parameters
    ----------
    id
        Stable alert identifier.
    pool_id
        Pool the alert belongs to.
    subject
        Parameter value or ``"compound"``.
    severity
        Highest severity recorded while open.
    opened_at
        Timestamp of the reading that opened the alert.
    last_escalated_at
        Timestamp of the most recent escalation (``opened_at`` initially).
    resolved_at
        Timestamp of resolution, or None while open.
    message
        Latest human-readable description.
    recommended_action
        Latest recommended action.
    actions
        All recommended actions issued so far, oldest first.
    direction
        Trend direction at the last transition.
    compound_risk_flags
        Compound flags active at the last transition.
    safe_since
        Start of the current safe stretch, or None.
    value
        Latest measured value for parameter alerts.
    """

    id: str
    pool_id: str
    subject: str
    severity: SeverityLevel
    opened_at: datetime
    last_escalated_at: datetime
    resolved_at: Optional[datetime] = None
    message: str = ""
    recommended_action: str = ""
    actions: Tuple[str, ...] = ()
    direction: TrendDirection = TrendDirection.STABLE
    compound_risk_flags: Tuple[str, ...] = ()
    safe_since: Optional[datetime] = None
    value: Optional[float] = None

    @property
    def key(self) -> AlertKey:
        return AlertKey(pool_id=self.pool_id, subject=self.subject)

    @property
    def is_open(self) -> bool:
        return self.resolved_at is None
