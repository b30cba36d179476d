"""
Parameter trend analysis over a reading window.

Fits a least-squares line to ``value`` over elapsed hours and reports:

- direction: increasing / decreasing / stable (``|rate| <= noise_threshold``)
- rate per hour
- an advisory linear projection of when the value reaches the critical band

Insufficient data is a valid outcome, never an error: fewer than two usable
samples, or samples all sharing one timestamp, yield a ``STABLE`` result with
zero rate and no projection.

The projection is informational only. It feeds recommended-action text and
"re-test by" guidance and never changes severity.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from poolguard.config.settings import Settings
from poolguard.core.catalog.range_catalog import RangeCatalog
from poolguard.core.validation.parameter_validator import check_plausible
from poolguard.domain.errors import ImplausibleReadingError
from poolguard.domain.models import (
    ChemicalParameter,
    ChemicalReading,
    ParameterRange,
    PoolCategory,
    TrendDirection,
    TrendResult,
)

# Projections further out than this are not meaningful for pool chemistry.
MAX_PROJECTION_HOURS = 24.0 * 365.0

_DEFAULT_NOISE: Dict[ChemicalParameter, float] = Settings().noise_thresholds()


def _usable_samples(
    history: Iterable[ChemicalReading],
    parameter: ChemicalParameter,
    catalog: RangeCatalog,
    now: datetime,
) -> List[Tuple[datetime, float]]:
    samples: List[Tuple[datetime, float]] = []
    for reading in history:
        if reading.timestamp > now:
            continue
        raw = reading.get(parameter)
        if raw is None:
            continue
        try:
            value = check_plausible(parameter, raw, catalog)
        except ImplausibleReadingError:
            continue
        samples.append((reading.timestamp, value))
    samples.sort(key=lambda s: s[0])
    return samples


def _slope_per_hour(samples: Sequence[Tuple[datetime, float]]) -> Optional[float]:
    """
    Least-squares slope of value over hours since the first sample.

    Returns None when all samples share one timestamp.
    """
    t0 = samples[0][0]
    hours = np.array([(ts - t0).total_seconds() / 3600.0 for ts, _ in samples], dtype=float)
    values = np.array([v for _, v in samples], dtype=float)

    if float(np.ptp(hours)) == 0.0:
        return None

    slope, _intercept = np.polyfit(hours, values, 1)
    return float(slope)


def project_critical_at(
    current: float,
    at: datetime,
    rate_per_hour: float,
    rng: ParameterRange,
) -> Optional[datetime]:
    """
    Linearly extrapolate when the value enters the critical band.

    The boundary is the outer caution edge in the direction of travel
    (``caution_max`` when rising, ``caution_min`` when falling). A value
    already past that edge returns ``at``.

    Parameters
    ----------
    current
        Latest value.
    at
        Timestamp of the latest value.
    rate_per_hour
        Signed rate of change.
    rng
        Applicable parameter range.

    Returns
    -------
    datetime or None
        Projected time, or None if not moving, moving toward an unbounded
        side, or the projection lies beyond ``MAX_PROJECTION_HOURS``.
    """
    if rate_per_hour > 0:
        boundary = rng.caution_max
        if math.isinf(boundary):
            return None
        if current > boundary:
            return at
        hours = (boundary - current) / rate_per_hour
    elif rate_per_hour < 0:
        boundary = rng.caution_min
        if math.isinf(boundary):
            return None
        if current < boundary:
            return at
        hours = (boundary - current) / rate_per_hour
    else:
        return None

    if hours > MAX_PROJECTION_HOURS:
        return None
    return at + timedelta(hours=hours)


def analyze(
    history: Sequence[ChemicalReading],
    parameter: ChemicalParameter,
    category: PoolCategory,
    now: datetime,
    catalog: RangeCatalog,
    noise_threshold: Optional[float] = None,
    usage: Optional[str] = None,
) -> TrendResult:
    """
    Analyze the trend of one parameter across a reading window.

    Parameters
    ----------
    history
        Readings for one pool, ascending by timestamp. Readings without the
        parameter, with implausible values, or dated after ``now`` are skipped.
    parameter
        Parameter to analyze.
    category
        Pool category for the critical-boundary lookup.
    now
        Evaluation time.
    catalog
        Range catalog.
    noise_threshold
        Minimum ``|rate|`` (units per hour) treated as real drift. Defaults to
        the per-parameter value from `Settings.noise_thresholds`.
    usage
        Optional usage level for usage-specific ranges.

    Returns
    -------
    TrendResult
        Direction, rate and projection. Never raises for short history.

    Raises
    ------
    ConfigError
        If a projection is needed and the catalog has no range for the pair.
    """
    samples = _usable_samples(history, parameter, catalog, now)
    if len(samples) < 2:
        return TrendResult(parameter=parameter, sample_count=len(samples))

    rate = _slope_per_hour(samples)
    if rate is None:
        return TrendResult(parameter=parameter, sample_count=len(samples))

    eps = noise_threshold if noise_threshold is not None else _DEFAULT_NOISE.get(parameter, 0.0)
    if abs(rate) <= eps:
        return TrendResult(
            parameter=parameter,
            direction=TrendDirection.STABLE,
            rate_per_hour=rate,
            sample_count=len(samples),
        )

    direction = TrendDirection.INCREASING if rate > 0 else TrendDirection.DECREASING
    last_ts, last_value = samples[-1]
    rng = catalog.lookup(parameter, category, usage)

    return TrendResult(
        parameter=parameter,
        direction=direction,
        rate_per_hour=rate,
        projected_critical_at=project_critical_at(last_value, last_ts, rate, rng),
        sample_count=len(samples),
    )


def analyze_all(
    history: Sequence[ChemicalReading],
    parameters: Iterable[ChemicalParameter],
    category: PoolCategory,
    now: datetime,
    catalog: RangeCatalog,
    noise_thresholds: Optional[Dict[ChemicalParameter, float]] = None,
    usage: Optional[str] = None,
) -> List[TrendResult]:
    """Run `analyze` for several parameters over the same window."""
    thresholds = noise_thresholds or {}
    return [
        analyze(
            history,
            p,
            category,
            now,
            catalog,
            noise_threshold=thresholds.get(p),
            usage=usage,
        )
        for p in parameters
    ]
