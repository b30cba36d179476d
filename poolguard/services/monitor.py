from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Deque, Dict, List, Optional, Sequence, Tuple

from poolguard.core.alert.alert_engine import process
from poolguard.core.compliance import ComplianceReport, evaluate_reading, reading_age_severity
from poolguard.core.config.yaml_config import EngineConfig, default_engine_config
from poolguard.core.trend.trend_analyzer import analyze_all
from poolguard.domain.alert_state import AlertState
from poolguard.domain.events import AlertEvent
from poolguard.domain.models import (
    Alert,
    ChemicalReading,
    PoolProfile,
    SeverityLevel,
    TrendResult,
)
from poolguard.notification.base import Notifier
from poolguard.notification.payload import to_notification

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmissionResult:
    """
    Everything produced for one submitted reading.

    Parameters
    ----------
    report
        Compliance report (wraps the aggregated `PoolStatus`).
    trends
        Trend results for every classified parameter.
    alerts
        Alerts that transitioned for this reading.
    events
        Lifecycle events for those alerts.
    alert_state
        Open alerts for the pool after this reading.
    """

    report: ComplianceReport
    trends: Tuple[TrendResult, ...]
    alerts: Tuple[Alert, ...]
    events: Tuple[AlertEvent, ...]
    alert_state: AlertState


@dataclass
class _PoolRecord:
    """Per-pool mutable record, guarded by its own lock."""

    history: Deque[ChemicalReading]
    alert_state: AlertState = field(default_factory=AlertState)
    last_reading_at: Optional[datetime] = None
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


@dataclass
class PoolComplianceMonitor:
    """
    Orchestrate classification, trend analysis and alerting per pool.

    Responsibilities
    ----------------
    - Keep a bounded history window and the latest `AlertState` per pool.
    - Run the pure engine functions for each submitted reading and thread
      the returned `AlertState` into the next call for that pool.
    - Forward alert events to the configured notifiers.

    Concurrency Model
    -----------------
    Each pool has its own lock, so submissions for one pool are processed one
    at a time while different pools proceed in parallel. A short registry
    lock guards creation of pool records.

    Parameters
    ----------
    config
        Engine configuration (catalog, thresholds, cooldown, history size).
    notifiers
        Notifiers receiving alert events. Delivery failures are logged and do
        not affect alert state.
    """

    config: EngineConfig = field(default_factory=default_engine_config)
    notifiers: Sequence[Notifier] = ()

    _profiles: Dict[str, PoolProfile] = field(default_factory=dict, init=False, repr=False)
    _pools: Dict[str, _PoolRecord] = field(default_factory=dict, init=False, repr=False)
    _registry_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def register_pool(self, profile: PoolProfile) -> None:
        """
        Add or update a pool profile.

        Parameters
        ----------
        profile
            Pool profile. Its category and usage level take precedence over
            the category carried by individual readings.
        """
        with self._registry_lock:
            self._profiles[profile.pool_id] = profile

    def _record(self, pool_id: str) -> _PoolRecord:
        with self._registry_lock:
            rec = self._pools.get(pool_id)
            if rec is None:
                rec = _PoolRecord(history=deque(maxlen=self.config.history_size))
                self._pools[pool_id] = rec
            return rec

    def _profile_for(self, reading: ChemicalReading) -> PoolProfile:
        with self._registry_lock:
            profile = self._profiles.get(reading.pool_id)
        return profile or PoolProfile(pool_id=reading.pool_id, category=reading.category)

    def submit(self, reading: ChemicalReading, now: Optional[datetime] = None) -> SubmissionResult:
        """
        Process one technician reading.

        Parameters
        ----------
        reading
            Submitted reading.
        now
            Evaluation time for trend analysis. Defaults to the reading's
            timestamp.

        Returns
        -------
        SubmissionResult
            Report, trends, transitioned alerts and the updated alert state.

        Raises
        ------
        ConfigError
            If the range catalog has no entry for a parameter in the reading.
        """
        profile = self._profile_for(reading)
        rec = self._record(reading.pool_id)
        ts = now or reading.timestamp

        with rec.lock:
            report = evaluate_reading(
                reading,
                self.config.catalog,
                profile=profile,
                required=self.config.required_parameters,
            )
            rec.history.append(reading)

            trends = analyze_all(
                list(rec.history),
                [r.parameter for r in report.status.parameter_results],
                profile.category,
                ts,
                self.config.catalog,
                noise_thresholds=self.config.noise_thresholds,
                usage=profile.usage,
            )

            result = process(report.status, trends, rec.alert_state, self.config.alert_cooldown)
            rec.alert_state = result.alert_state
            if rec.last_reading_at is None or reading.timestamp > rec.last_reading_at:
                rec.last_reading_at = reading.timestamp

        if report.excluded_parameters:
            logger.warning(
                "pool %s: excluded %s",
                reading.pool_id,
                ", ".join(f"{e.parameter.value} ({e.reason})" for e in report.excluded_parameters),
            )
        if report.requires_closure:
            logger.warning("pool %s: closure required (%s)", reading.pool_id, ", ".join(report.closure_reasons))

        self._dispatch(result.events, result.alert_state)

        return SubmissionResult(
            report=report,
            trends=tuple(trends),
            alerts=result.alerts,
            events=result.events,
            alert_state=result.alert_state,
        )

    def _dispatch(self, events: Sequence[AlertEvent], state: AlertState) -> None:
        for ev in events:
            notification = to_notification(ev, state)
            for notifier in self.notifiers:
                try:
                    notifier.notify(notification)
                except Exception:
                    logger.exception("notifier %r failed for alert %s", notifier, ev.alert.id)

    def alert_state(self, pool_id: str) -> AlertState:
        """Return the latest alert state for a pool (empty if unknown)."""
        with self._registry_lock:
            rec = self._pools.get(pool_id)
        if rec is None:
            return AlertState()
        with rec.lock:
            return rec.alert_state

    def history(self, pool_id: str) -> List[ChemicalReading]:
        """Return a snapshot copy of the pool's history window."""
        with self._registry_lock:
            rec = self._pools.get(pool_id)
        if rec is None:
            return []
        with rec.lock:
            return list(rec.history)

    def open_alerts(self) -> List[Alert]:
        """Return open alerts across all pools, sorted by pool and subject."""
        with self._registry_lock:
            records = list(self._pools.values())
        alerts: List[Alert] = []
        for rec in records:
            with rec.lock:
                alerts.extend(rec.alert_state)
        return sorted(alerts, key=lambda a: (a.pool_id, a.subject))

    def overdue_pools(self, now: datetime) -> List[str]:
        """
        Return ids of pools whose testing gap exceeds the configured maximum.

        Registered pools that were never tested are included.
        """
        with self._registry_lock:
            pool_ids = sorted(set(self._profiles) | set(self._pools))
            records = dict(self._pools)

        overdue: List[str] = []
        for pool_id in pool_ids:
            rec = records.get(pool_id)
            last = None
            if rec is not None:
                with rec.lock:
                    last = rec.last_reading_at
            if reading_age_severity(last, now, self.config.max_reading_age) >= SeverityLevel.CRITICAL:
                overdue.append(pool_id)
        return overdue
