"""
Alert lifecycle engine.

This module turns a `PoolStatus` (plus trend results) into alert lifecycle
transitions against a caller-owned `AlertState`:

- OPENED:    no open alert for the key, severity >= CAUTION
- ESCALATED: open alert, severity strictly above the recorded severity
- RESOLVED:  open alert, severity SAFE continuously for at least ``cooldown``

Anything else is suppressed: no new alert object is emitted for repeated
readings at the same (or a lower, non-safe) severity.

The engine keeps no state of its own. The only ordering requirement is that
successive calls for the same pool receive the previously returned state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from poolguard.config.settings import Settings
from poolguard.core.alert.recommendations import recommend, side_of
from poolguard.domain.alert_state import AlertState
from poolguard.domain.events import AlertEvent, AlertTransition
from poolguard.domain.models import (
    COMPOUND_SUBJECT,
    Alert,
    AlertKey,
    PoolStatus,
    SeverityLevel,
    TrendDirection,
    TrendResult,
)

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN = Settings().alert_cooldown


@dataclass(frozen=True)
class _Observation:
    """Current severity of one alert key, extracted from a pool status."""

    subject: str
    severity: SeverityLevel
    side: Optional[str] = None
    value: Optional[float] = None
    flags: Tuple[str, ...] = ()


@dataclass(frozen=True)
class AlertProcessResult:
    """
    Output of one `process` call.

    Parameters
    ----------
    alerts
        Alerts that transitioned in this call (opened, escalated or resolved),
        ordered by subject.
    alert_state
        Updated open-alert state to pass into the next call for the pool.
    events
        Lifecycle events, one per transitioned alert.
    """

    alerts: Tuple[Alert, ...]
    alert_state: AlertState
    events: Tuple[AlertEvent, ...]


def alert_id_for(key: AlertKey, opened_at: datetime) -> str:
    """Deterministic alert id derived from the key and opening time."""
    return f"{key.pool_id}:{key.subject}:{opened_at.strftime('%Y%m%dT%H%M%S')}"


def _observations(status: PoolStatus) -> List[_Observation]:
    obs = [
        _Observation(
            subject=r.parameter.value,
            severity=r.severity,
            side=side_of(r.distance_to_safe),
            value=r.value,
        )
        for r in status.parameter_results
    ]
    obs.append(
        _Observation(
            subject=COMPOUND_SUBJECT,
            severity=status.compound_severity,
            flags=status.compound_risk_flags,
        )
    )
    return sorted(obs, key=lambda o: o.subject)


def _message(pool_id: str, o: _Observation) -> str:
    if o.subject == COMPOUND_SUBJECT:
        flags = ", ".join(o.flags) if o.flags else "none"
        return f"{pool_id}: compound risk {o.severity.value} ({flags})"
    side = f" {o.side}" if o.side else ""
    return f"{pool_id}: {o.subject}{side} {o.severity.value} ({o.value:g})"


def _action(o: _Observation, trend: Optional[TrendResult]) -> str:
    direction = trend.direction if trend is not None else TrendDirection.STABLE
    projected = trend.projected_critical_at if trend is not None else None
    return recommend(
        o.subject,
        o.severity,
        side=o.side,
        direction=direction,
        compound_flags=o.flags,
        projected_critical_at=projected,
    )


def process(
    status: PoolStatus,
    trends: Sequence[TrendResult],
    alert_state: AlertState,
    cooldown: timedelta = DEFAULT_COOLDOWN,
) -> AlertProcessResult:
    """
    Apply one pool status to the alert state machine.

    Parameters
    ----------
    status
        Aggregated status for the pool's latest reading.
    trends
        Trend results for the pool (used for recommended actions only).
    alert_state
        Open alerts returned by the previous call (or an empty state).
    cooldown
        Minimum continuous time at SAFE before an open alert resolves.

    Returns
    -------
    AlertProcessResult
        Transitioned alerts, the updated state and lifecycle events.

    Notes
    -----
    Parameters excluded from ``status`` (missing or implausible) produce no
    observation, so their open alerts are neither escalated nor resolved.
    The same holds for an open compound alert whose rules are listed in
    ``status.unevaluated_rules``. While a compound alert stays open at the
    same or a lower severity, its flags and guidance follow the rules that
    currently fire.
    """
    ts = status.timestamp
    trend_by_subject: Dict[str, TrendResult] = {t.parameter.value: t for t in trends}

    state = alert_state
    changed: List[Alert] = []
    events: List[AlertEvent] = []

    for o in _observations(status):
        key = AlertKey(pool_id=status.pool_id, subject=o.subject)
        prev = state.get(key)
        trend = trend_by_subject.get(o.subject)

        # Compound rules behind an open alert that cannot be evaluated give no
        # observation, same as an excluded parameter.
        if (
            o.subject == COMPOUND_SUBJECT
            and prev is not None
            and o.severity <= prev.severity
            and any(f in status.unevaluated_rules for f in prev.compound_risk_flags)
        ):
            continue

        # none -> open
        if prev is None:
            if o.severity < SeverityLevel.CAUTION:
                continue
            action = _action(o, trend)
            alert = Alert(
                id=alert_id_for(key, ts),
                pool_id=status.pool_id,
                subject=o.subject,
                severity=o.severity,
                opened_at=ts,
                last_escalated_at=ts,
                message=_message(status.pool_id, o),
                recommended_action=action,
                actions=(action,),
                direction=trend.direction if trend is not None else TrendDirection.STABLE,
                compound_risk_flags=o.flags,
                value=o.value,
            )
            state = state.with_alert(alert)
            changed.append(alert)
            events.append(AlertEvent(alert=alert, transition=AlertTransition.OPENED, timestamp=ts))
            logger.info("alert opened: %s severity=%s", alert.id, alert.severity.value)
            continue

        # open/escalated -> escalated
        if o.severity > prev.severity:
            action = _action(o, trend)
            alert = replace(
                prev,
                severity=o.severity,
                last_escalated_at=ts,
                message=_message(status.pool_id, o),
                recommended_action=action,
                actions=prev.actions + (action,),
                direction=trend.direction if trend is not None else prev.direction,
                compound_risk_flags=o.flags,
                safe_since=None,
                value=o.value,
            )
            state = state.with_alert(alert)
            changed.append(alert)
            events.append(AlertEvent(alert=alert, transition=AlertTransition.ESCALATED, timestamp=ts))
            logger.info(
                "alert escalated: %s %s -> %s", alert.id, prev.severity.value, alert.severity.value
            )
            continue

        # open/escalated -> resolved, once safe for the whole cooldown
        if o.severity == SeverityLevel.SAFE:
            safe_since = prev.safe_since or ts
            if ts - safe_since >= cooldown:
                alert = replace(prev, resolved_at=ts, safe_since=safe_since, value=o.value)
                state = state.without(key)
                changed.append(alert)
                events.append(AlertEvent(alert=alert, transition=AlertTransition.RESOLVED, timestamp=ts))
                logger.info("alert resolved: %s after %s safe", alert.id, ts - safe_since)
            elif prev.safe_since is None:
                state = state.with_alert(replace(prev, safe_since=safe_since, value=o.value))
                logger.debug("alert %s safe since %s, cooldown pending", prev.id, safe_since)
            continue

        # Suppressed: same or lower non-safe band. A non-safe reading restarts
        # the cooldown.
        updated = replace(prev, safe_since=None, value=o.value)
        if o.subject == COMPOUND_SUBJECT and o.flags != prev.compound_risk_flags:
            recorded = replace(o, severity=prev.severity)
            action = _action(recorded, trend)
            updated = replace(
                updated,
                compound_risk_flags=o.flags,
                message=_message(status.pool_id, recorded),
                recommended_action=action,
                actions=prev.actions + (action,),
            )
        if updated != prev:
            state = state.with_alert(updated)

    return AlertProcessResult(alerts=tuple(changed), alert_state=state, events=tuple(events))
