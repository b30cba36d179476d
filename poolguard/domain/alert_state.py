"""
Caller-owned alert state.

`AlertState` is the set of open alerts, keyed by `AlertKey`. The alert engine
takes one in and returns an updated one; it keeps no state of its own. Every
update returns a new `AlertState`, so a previously returned value is never
changed behind the caller's back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterator, List, Mapping, Optional

from poolguard.domain.models import Alert, AlertKey


@dataclass(frozen=True)
class AlertState:
    """
    Immutable mapping of open alerts.

    Invariants
    ----------
    - At most one alert per ``AlertKey``.
    - Only open alerts (``resolved_at is None``) are held.
    """

    alerts: Mapping[AlertKey, Alert] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "alerts", MappingProxyType(dict(self.alerts)))

    def __len__(self) -> int:
        return len(self.alerts)

    def __iter__(self) -> Iterator[Alert]:
        return iter(self.alerts.values())

    def __contains__(self, key: object) -> bool:
        return key in self.alerts

    def get(self, key: AlertKey) -> Optional[Alert]:
        return self.alerts.get(key)

    def with_alert(self, alert: Alert) -> "AlertState":
        """Return a new state with ``alert`` stored under its key."""
        updated = dict(self.alerts)
        updated[alert.key] = alert
        return AlertState(updated)

    def without(self, key: AlertKey) -> "AlertState":
        """Return a new state with ``key`` removed (no-op if absent)."""
        updated = dict(self.alerts)
        updated.pop(key, None)
        return AlertState(updated)

    def open_alerts(self, pool_id: Optional[str] = None) -> List[Alert]:
        """
        Return open alerts, optionally restricted to one pool.

        Results are sorted by pool id and subject for stable output.
        """
        items = [a for a in self.alerts.values() if pool_id is None or a.pool_id == pool_id]
        return sorted(items, key=lambda a: (a.pool_id, a.subject))
