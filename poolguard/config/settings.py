from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, List, Tuple

from poolguard.domain.models import (
    ChemicalParameter as P,
    ParameterRange,
    PlausibilityBounds,
    PoolCategory,
)

_INF = math.inf

# (critical_min, caution_min, safe_min, safe_max, caution_max, critical_max, unit, regulation)
_Row = Tuple[float, float, float, float, float, float, str, str]

_STANDARD: Dict[P, _Row] = {
    P.PH: (6.5, 7.0, 7.2, 7.8, 8.0, 8.5, "", "MAHC 5.7.3.2"),
    P.FREE_CHLORINE: (0.0, 0.3, 1.0, 4.0, 5.0, 10.0, "ppm", "MAHC 5.7.3.1.1"),
    P.COMBINED_CHLORINE: (-_INF, -_INF, -_INF, 0.2, 0.4, 1.0, "ppm", "MAHC 5.7.3.1.2"),
    P.TOTAL_ALKALINITY: (40.0, 60.0, 80.0, 120.0, 150.0, 180.0, "ppm", "MAHC 5.7.3.3"),
    P.CALCIUM_HARDNESS: (100.0, 150.0, 200.0, 400.0, 500.0, 1000.0, "ppm", "MAHC 5.7.3.5"),
    P.CYANURIC_ACID: (0.0, 10.0, 30.0, 50.0, 90.0, 100.0, "ppm", "MAHC 5.7.3.4"),
    P.TEMPERATURE: (70.0, 75.0, 78.0, 86.0, 90.0, 104.0, "F", "MAHC 4.7.3.1"),
    P.ORP: (500.0, 600.0, 650.0, 900.0, 1000.0, 1200.0, "mV", "MAHC 5.7.3.6"),
}

_CATEGORY_OVERRIDES: Dict[PoolCategory, Dict[P, _Row]] = {
    PoolCategory.SPA: {
        P.FREE_CHLORINE: (0.0, 2.0, 3.0, 5.0, 8.0, 10.0, "ppm", "MAHC 5.7.3.1.1"),
        P.TEMPERATURE: (80.0, 90.0, 95.0, 102.0, 104.0, 106.0, "F", "MAHC 4.7.3.1"),
    },
    PoolCategory.THERAPY: {
        P.FREE_CHLORINE: (0.0, 1.0, 2.0, 5.0, 8.0, 10.0, "ppm", "MAHC 5.7.3.1.1"),
        P.TEMPERATURE: (78.0, 82.0, 86.0, 96.0, 100.0, 104.0, "F", "MAHC 4.7.3.1"),
    },
    PoolCategory.KIDDIE: {
        P.FREE_CHLORINE: (0.0, 1.0, 2.0, 4.0, 5.0, 8.0, "ppm", "MAHC 5.7.3.1.1"),
    },
}

# Usage-specific overrides: (category, usage) -> rows
_USAGE_OVERRIDES: Dict[Tuple[PoolCategory, str], Dict[P, _Row]] = {
    (PoolCategory.STANDARD, "heavy"): {
        P.FREE_CHLORINE: (0.0, 1.0, 2.0, 5.0, 6.0, 10.0, "ppm", "MAHC 5.7.3.1.1"),
    },
}

_PLAUSIBILITY: Dict[P, Tuple[float, float]] = {
    P.PH: (0.0, 14.0),
    P.FREE_CHLORINE: (0.0, 100.0),
    P.COMBINED_CHLORINE: (0.0, 50.0),
    P.TOTAL_ALKALINITY: (0.0, 1000.0),
    P.CALCIUM_HARDNESS: (0.0, 5000.0),
    P.CYANURIC_ACID: (0.0, 500.0),
    P.TEMPERATURE: (32.0, 212.0),
    P.ORP: (-1000.0, 2000.0),
}


def _mk_range(param: P, category: PoolCategory, row: _Row, usage: str | None = None) -> ParameterRange:
    crit_min, caut_min, safe_min, safe_max, caut_max, crit_max, unit, regulation = row
    return ParameterRange(
        parameter=param,
        category=category,
        safe_min=safe_min,
        safe_max=safe_max,
        caution_min=caut_min,
        caution_max=caut_max,
        critical_min=crit_min,
        critical_max=crit_max,
        unit=unit,
        usage=usage,
        regulation=regulation,
    )


@dataclass(frozen=True)
class Settings:
    """
    Central place for built-in engine defaults.

    The range table mirrors MAHC guidance. Everything here can be overridden
    from config.yaml (see ``poolguard.core.config.yaml_config``).
    """

    # Minimum continuous safe time before an open alert resolves
    alert_cooldown: timedelta = timedelta(minutes=60)

    # Pools untested for longer than this are flagged
    max_reading_age: timedelta = timedelta(days=14)

    # Readings kept per pool for trend analysis
    history_size: int = 48

    required_parameters: Tuple[P, ...] = (P.PH, P.FREE_CHLORINE)

    def parameter_ranges(self) -> List[ParameterRange]:
        """
        Returns the default range table for every category and usage override.
        """
        ranges: List[ParameterRange] = []
        for category in PoolCategory:
            rows = dict(_STANDARD)
            rows.update(_CATEGORY_OVERRIDES.get(category, {}))
            for param, row in rows.items():
                ranges.append(_mk_range(param, category, row))

        for (category, usage), rows in _USAGE_OVERRIDES.items():
            for param, row in rows.items():
                ranges.append(_mk_range(param, category, row, usage=usage))
        return ranges

    def plausibility_bounds(self) -> List[PlausibilityBounds]:
        """
        Returns physical plausibility bounds for every parameter.
        """
        return [
            PlausibilityBounds(parameter=p, minimum=lo, maximum=hi)
            for p, (lo, hi) in _PLAUSIBILITY.items()
        ]

    def noise_thresholds(self) -> Dict[P, float]:
        """
        Returns per-parameter trend noise thresholds (units per hour).
        """
        return {
            P.PH: 0.02,
            P.FREE_CHLORINE: 0.05,
            P.COMBINED_CHLORINE: 0.02,
            P.TOTAL_ALKALINITY: 1.0,
            P.CALCIUM_HARDNESS: 2.0,
            P.CYANURIC_ACID: 0.5,
            P.TEMPERATURE: 0.25,
            P.ORP: 5.0,
        }
