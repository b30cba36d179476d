from __future__ import annotations

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from poolguard.config.settings import Settings
from poolguard.domain.errors import ConfigError
from poolguard.domain.models import (
    ChemicalParameter,
    ParameterRange,
    PlausibilityBounds,
    PoolCategory,
)

RangeKey = Tuple[ChemicalParameter, PoolCategory, Optional[str]]


def _check_range(rng: ParameterRange) -> None:
    bounds = (
        rng.critical_min,
        rng.caution_min,
        rng.safe_min,
        rng.safe_max,
        rng.caution_max,
        rng.critical_max,
    )
    if any(math.isnan(b) for b in bounds):
        raise ConfigError(f"{rng.parameter.value}/{rng.category.value}: NaN bound in range")
    if not rng.is_ordered():
        raise ConfigError(
            f"{rng.parameter.value}/{rng.category.value}"
            f"{'/' + rng.usage if rng.usage else ''}: bounds must satisfy "
            "critical_min <= caution_min <= safe_min <= safe_max <= caution_max <= critical_max "
            f"(got {bounds})"
        )


@dataclass(frozen=True)
class RangeCatalog:
    """
    Immutable lookup table of parameter ranges.

    The catalog is built once at configuration load. Every range is checked
    against the band ordering invariant at build time, so a misconfigured
    table fails fast instead of producing classifications.

    Lookups are keyed by ``(parameter, category, usage)``. A usage-specific
    entry takes precedence over the category-wide entry (``usage=None``).
    A missing entry raises `ConfigError`; there is no fallback range.

    Attributes
    ----------
    _ranges
        Internal mapping of range key to ParameterRange.
    _plausibility
        Internal mapping of parameter to physical plausibility bounds.
    """

    _ranges: Mapping[RangeKey, ParameterRange] = field(default_factory=dict)
    _plausibility: Mapping[ChemicalParameter, PlausibilityBounds] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_ranges", MappingProxyType(dict(self._ranges)))
        object.__setattr__(self, "_plausibility", MappingProxyType(dict(self._plausibility)))

    @classmethod
    def from_ranges(
        cls,
        ranges: Iterable[ParameterRange],
        plausibility: Iterable[PlausibilityBounds] = (),
    ) -> "RangeCatalog":
        """
        Validate and index ranges.

        Parameters
        ----------
        ranges
            Range entries. Each ``(parameter, category, usage)`` may appear
            only once.
        plausibility
            Physical bounds per parameter.

        Raises
        ------
        ConfigError
            If a range violates the ordering invariant, a key is duplicated,
            or plausibility bounds are inverted.
        """
        indexed: Dict[RangeKey, ParameterRange] = {}
        for rng in ranges:
            _check_range(rng)
            key = (rng.parameter, rng.category, rng.usage)
            if key in indexed:
                raise ConfigError(
                    f"duplicate range for {rng.parameter.value}/{rng.category.value}"
                    f"{'/' + rng.usage if rng.usage else ''}"
                )
            indexed[key] = rng

        bounds: Dict[ChemicalParameter, PlausibilityBounds] = {}
        for b in plausibility:
            if not b.minimum <= b.maximum:
                raise ConfigError(f"{b.parameter.value}: plausibility minimum exceeds maximum")
            bounds[b.parameter] = b

        return cls(indexed, bounds)

    def lookup(
        self,
        parameter: ChemicalParameter,
        category: PoolCategory,
        usage: Optional[str] = None,
    ) -> ParameterRange:
        """
        Retrieve the range for a parameter in a pool category.

        Parameters
        ----------
        parameter
            Parameter to look up.
        category
            Pool category.
        usage
            Optional usage level; falls back to the category-wide entry when
            no usage-specific entry exists.

        Returns
        -------
        ParameterRange
            The applicable range.

        Raises
        ------
        ConfigError
            If no range is configured for the pair.
        """
        if usage is not None:
            rng = self._ranges.get((parameter, category, usage))
            if rng is not None:
                return rng
        rng = self._ranges.get((parameter, category, None))
        if rng is None:
            raise ConfigError(f"no range configured for {parameter.value} in {category.value} pools")
        return rng

    def plausibility(self, parameter: ChemicalParameter) -> Optional[PlausibilityBounds]:
        """Return physical plausibility bounds for a parameter, if configured."""
        return self._plausibility.get(parameter)

    def all(self) -> List[ParameterRange]:
        """Return all ranges, in insertion order."""
        return list(self._ranges.values())

    def with_overrides(self, overrides: Iterable[ParameterRange]) -> "RangeCatalog":
        """
        Return a new catalog where ``overrides`` replace entries with the same key.

        New keys are added. The result is validated like `from_ranges`.
        """
        merged: Dict[RangeKey, ParameterRange] = dict(self._ranges)
        seen: set = set()
        for rng in overrides:
            key = (rng.parameter, rng.category, rng.usage)
            if key in seen:
                raise ConfigError(
                    f"duplicate override for {rng.parameter.value}/{rng.category.value}"
                    f"{'/' + rng.usage if rng.usage else ''}"
                )
            seen.add(key)
            merged[key] = rng
        return RangeCatalog.from_ranges(merged.values(), self._plausibility.values())


def default_catalog(settings: Optional[Settings] = None) -> RangeCatalog:
    """Build the catalog from the built-in MAHC-derived defaults."""
    s = settings or Settings()
    return RangeCatalog.from_ranges(s.parameter_ranges(), s.plausibility_bounds())
