"""
Alert event domain models.

An `AlertEvent` represents *what happened* to an alert at a specific time,
while `Alert` (in models.py) represents the incident itself and
`AlertState` represents *what is currently open*.

Events are typically used for:
- logging and audit trails
- notification dispatch
- reporting and post-analysis
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from poolguard.domain.models import Alert


class AlertTransition(str, Enum):
    """
    Alert lifecycle transition.

    Members
    -------
    OPENED : str
        A new alert was opened for a key with no open alert.
    ESCALATED : str
        An open alert moved to a strictly higher severity.
    RESOLVED : str
        An open alert stayed safe for at least the cooldown and was closed.
    """

    OPENED = "OPENED"
    ESCALATED = "ESCALATED"
    RESOLVED = "RESOLVED"


@dataclass(frozen=True)
class AlertEvent:
    """
    Alert event emitted when an alert transitions.

    Parameters
    ----------
    alert
        Alert snapshot after the transition.
    transition
        Lifecycle transition (OPENED, ESCALATED, RESOLVED).
    timestamp
        Timestamp of the reading that caused the transition.
    """

    alert: Alert
    transition: AlertTransition
    timestamp: datetime
