"""
Unit tests for poolguard.domain.alert_state.AlertState.
"""

from __future__ import annotations

from datetime import datetime

import pytest

from poolguard.domain.alert_state import AlertState
from poolguard.domain.models import Alert, AlertKey, SeverityLevel


def _mk_alert(pool_id: str, subject: str, severity: SeverityLevel = SeverityLevel.CAUTION) -> Alert:
    ts = datetime(2026, 1, 1, 10, 0, 0)
    return Alert(
        id=f"{pool_id}:{subject}",
        pool_id=pool_id,
        subject=subject,
        severity=severity,
        opened_at=ts,
        last_escalated_at=ts,
    )


def test_with_alert_returns_new_state() -> None:
    empty = AlertState()
    a = _mk_alert("P1", "pH")

    state = empty.with_alert(a)

    assert len(empty) == 0
    assert len(state) == 1
    assert AlertKey("P1", "pH") in state
    assert state.get(a.key) is a


def test_with_alert_replaces_same_key() -> None:
    state = AlertState().with_alert(_mk_alert("P1", "pH"))
    state = state.with_alert(_mk_alert("P1", "pH", SeverityLevel.CRITICAL))

    assert len(state) == 1
    assert state.get(AlertKey("P1", "pH")).severity == SeverityLevel.CRITICAL


def test_without_removes_key_and_ignores_missing() -> None:
    state = AlertState().with_alert(_mk_alert("P1", "pH"))

    assert len(state.without(AlertKey("P1", "pH"))) == 0
    assert len(state.without(AlertKey("P2", "pH"))) == 1


def test_open_alerts_filters_and_sorts() -> None:
    state = AlertState()
    for pool, subject in [("P2", "pH"), ("P1", "pH"), ("P1", "compound")]:
        state = state.with_alert(_mk_alert(pool, subject))

    assert [(a.pool_id, a.subject) for a in state.open_alerts()] == [
        ("P1", "compound"),
        ("P1", "pH"),
        ("P2", "pH"),
    ]
    assert [a.subject for a in state.open_alerts("P1")] == ["compound", "pH"]
    assert state.open_alerts("P9") == []


def test_alerts_mapping_is_read_only() -> None:
    state = AlertState().with_alert(_mk_alert("P1", "pH"))
    with pytest.raises(TypeError):
        state.alerts[AlertKey("P1", "orp")] = _mk_alert("P1", "orp")  # type: ignore[index]
