from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import Any, Dict, Optional

from poolguard.domain.alert_state import AlertState
from poolguard.domain.events import AlertEvent
from poolguard.notification.base import NotificationEvent


def _iso(ts: Optional[datetime]) -> Optional[str]:
    """
    Convert datetime to ISO-8601 string with second precision.

    Parameters
    ----------
    ts
        Timestamp to convert, or None.

    Returns
    -------
    str or None
        ISO-8601 formatted timestamp (seconds precision).
    """
    return ts.isoformat(timespec="seconds") if ts is not None else None


def build_alert_webhook_payload(ev: AlertEvent, state: AlertState) -> Dict[str, Any]:
    """
    Build a webhook payload for an alert event plus open-alert totals.

    The payload includes:
    - "event": the transition and the alert's structured fields
      (subject, severity, direction, compound flags) so receivers can render
      their own guidance
    - "totals": counters over the open alerts for the event's pool

    Parameters
    ----------
    ev
        Alert event that triggered the webhook.
    state
        Open-alert state after the transition.

    Returns
    -------
    dict
        Webhook payload dictionary with keys: "type", "event", and "totals".
    """
    a = ev.alert

    # ---- totals snapshot for the pool ----
    open_alerts = state.open_alerts(a.pool_id)
    by_severity = Counter(o.severity.value for o in open_alerts)

    event_payload = {
        "transition": ev.transition.value,
        "timestamp": _iso(ev.timestamp),
        "alert_id": a.id,
        "pool_id": a.pool_id,
        "subject": a.subject,
        "severity": a.severity.value,
        "direction": a.direction.value,
        "compound_risk_flags": list(a.compound_risk_flags),
        "value": a.value,
        "message": a.message,
        "recommended_action": a.recommended_action,
        "opened_at": _iso(a.opened_at),
        "last_escalated_at": _iso(a.last_escalated_at),
        "resolved_at": _iso(a.resolved_at),
    }

    totals_payload = {
        "open_alerts": len(open_alerts),
        "open_by_severity": {k: int(v) for k, v in sorted(by_severity.items())},
    }

    return {
        "type": "alert_event",
        "event": event_payload,
        "totals": totals_payload,
    }


def to_notification(ev: AlertEvent, state: AlertState) -> NotificationEvent:
    """Wrap an alert event as a `NotificationEvent` for notifiers."""
    return NotificationEvent(
        type="alert_event",
        payload=build_alert_webhook_payload(ev, state),
        severity=ev.alert.severity,
        pool_id=ev.alert.pool_id,
        ts=_iso(ev.timestamp),
    )
