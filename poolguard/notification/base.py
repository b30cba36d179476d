from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

from poolguard.domain.models import SeverityLevel


@dataclass(frozen=True)
class NotificationEvent:
    """
    Message handed to notifiers for one alert transition.

    Parameters
    ----------
    type
        Message kind; alert transitions use ``"alert_event"``.
    payload
        JSON-serializable body (see `build_alert_webhook_payload`).
    severity
        Severity of the alert after the transition.
    pool_id
        Pool the alert belongs to.
    ts
        ISO-8601 timestamp of the reading that caused the transition.
    """

    type: str
    payload: Dict[str, Any]
    severity: Optional[SeverityLevel] = None
    pool_id: Optional[str] = None
    ts: Optional[str] = None


def should_notify(event: NotificationEvent, min_severity: SeverityLevel) -> bool:
    """True when the event carries no severity or one at or above ``min_severity``."""
    return event.severity is None or event.severity >= min_severity


class Notifier(Protocol):
    """Anything with a ``notify(event)`` method can receive alert notifications."""

    def notify(self, event: NotificationEvent) -> None:
        ...
