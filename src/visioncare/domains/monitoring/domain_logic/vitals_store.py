"""Vitals store: per-subject state, bounded history and the system log.

The store is the only owner of ``SubjectRecord`` instances. Subjects are
created once for a fixed set of ids and are reset, never removed.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Iterable, Iterator
from typing import Any

from visioncare.core.events.listeners import ListenerRegistry
from visioncare.core.scheduling.clock import Clock, SystemClock, iso_timestamp
from visioncare.domains.monitoring.domain_logic.models import (
    HeartRateSample,
    LogEntry,
    RiskLevel,
    SubjectRecord,
    VitalsSample,
)
from visioncare.domains.monitoring.emergency.models import (
    AlertType,
    EmergencyTrigger,
    Severity,
)

logger = logging.getLogger(__name__)


def classify_heart_rate(
    value: float, warning_threshold: float, critical_threshold: float
) -> RiskLevel:
    """Two-threshold risk label: critical at/above critical, warning at/above warning."""
    if value >= critical_threshold:
        return RiskLevel.CRITICAL
    if value >= warning_threshold:
        return RiskLevel.WARNING
    return RiskLevel.NORMAL


class VitalsStore:
    """Owns subject records and emits a critical trigger on critical readings.

    Usage::

        store = VitalsStore([1, 2], clock=clock)
        store.subscribe_critical(escalation.trigger)
        store.update_heart_rate(1, 150)
        store.get_subject(1).risk_level  # RiskLevel.CRITICAL
    """

    def __init__(
        self,
        subject_ids: Iterable[int],
        *,
        clock: Clock | None = None,
        warning_threshold: float = 100,
        critical_threshold: float = 125,
        history_limit: int = 50,
        log_limit: int = 200,
    ) -> None:
        if warning_threshold >= critical_threshold:
            raise ValueError("warning_threshold must be lower than critical_threshold")
        self._clock = clock or SystemClock()
        self._warning_threshold = warning_threshold
        self._critical_threshold = critical_threshold
        self._history_limit = history_limit
        self._subjects: dict[int, SubjectRecord] = {
            sid: SubjectRecord.create(sid, history_limit) for sid in subject_ids
        }
        self._logs: deque[LogEntry] = deque(maxlen=log_limit)
        self._critical = ListenerRegistry[EmergencyTrigger]("vitals_store.critical")
        self.emergency_active = False

    # ---------------------------------------------------------------
    # Subscriptions
    # ---------------------------------------------------------------

    def subscribe_critical(
        self, listener: Callable[[EmergencyTrigger], Any]
    ) -> Callable[[], None]:
        """Register a listener for critical heart-rate readings."""
        return self._critical.subscribe(listener)

    # ---------------------------------------------------------------
    # Mutations
    # ---------------------------------------------------------------

    def update_heart_rate(self, subject_id: int, value: float) -> None:
        """Record a heart-rate reading and re-derive the subject's risk label.

        Unknown subject ids are ignored.
        """
        subject = self._subjects.get(subject_id)
        if subject is None:
            logger.debug("Ignoring heart rate for unknown subject %r", subject_id)
            return

        subject.heart_rate = value
        subject.last_updated = iso_timestamp(self._clock)
        subject.detected = True
        subject.history.append(HeartRateSample(value=value, timestamp_ms=self._clock.now_ms()))

        subject.risk_level = classify_heart_rate(
            value, self._warning_threshold, self._critical_threshold
        )
        self.log_event(f"Patient {subject_id} HR updated: {value:g}")

        if subject.risk_level is RiskLevel.CRITICAL:
            self._raise_critical(subject_id, value)

    def update_vitals(self, subject_id: int, sample: VitalsSample) -> None:
        """Apply a partial vitals sample; absent fields are left unchanged."""
        subject = self._subjects.get(subject_id)
        if subject is None:
            logger.debug("Ignoring vitals for unknown subject %r", subject_id)
            return

        if sample.heart_rate is not None:
            self.update_heart_rate(subject_id, sample.heart_rate)
        if sample.spo2 is not None:
            subject.spo2 = sample.spo2
        if sample.systolic_bp is not None:
            subject.systolic_bp = sample.systolic_bp
        if sample.diastolic_bp is not None:
            subject.diastolic_bp = sample.diastolic_bp
        if sample.temperature is not None:
            subject.temperature = sample.temperature

        self.log_event(f"Sensor data received for Patient {subject_id}")

    def reset(self, subject_id: int) -> None:
        """Restore one subject to its default state."""
        if subject_id not in self._subjects:
            logger.debug("Ignoring reset for unknown subject %r", subject_id)
            return
        self._subjects[subject_id] = SubjectRecord.create(subject_id, self._history_limit)
        self.log_event(f"Patient {subject_id} reset")

    def reset_all(self) -> None:
        """Reset every subject, the system log and the global emergency flag."""
        for sid in list(self._subjects):
            self._subjects[sid] = SubjectRecord.create(sid, self._history_limit)
        self._logs.clear()
        self.emergency_active = False
        self.log_event("System reset completed")

    def clear_emergency(self) -> None:
        if not self.emergency_active:
            return
        self.emergency_active = False
        self.log_event("Emergency cleared")

    # ---------------------------------------------------------------
    # Reads
    # ---------------------------------------------------------------

    def get_subject(self, subject_id: int) -> SubjectRecord | None:
        return self._subjects.get(subject_id)

    def subjects(self) -> list[SubjectRecord]:
        return list(self._subjects.values())

    def subject_ids(self) -> list[int]:
        return list(self._subjects)

    def history_values(self, subject_id: int) -> list[float]:
        """Heart-rate values oldest-first; empty for unknown subjects."""
        subject = self._subjects.get(subject_id)
        if subject is None:
            return []
        return [s.value for s in subject.history]

    def get_risk_summary(self) -> Iterator[dict[str, Any]]:
        """Lazily yield ``{id, risk}`` for every subject in slot order."""
        return ({"id": s.id, "risk": s.risk_level.value} for s in self._subjects.values())

    def logs(self) -> list[LogEntry]:
        return list(self._logs)

    # ---------------------------------------------------------------
    # Internal helpers
    # ---------------------------------------------------------------

    def log_event(self, message: str) -> None:
        """Append to the capped system log and mirror to the process log."""
        self._logs.append(LogEntry(message=message, timestamp=iso_timestamp(self._clock)))
        logger.info("[VisionCare] %s", message)

    def _raise_critical(self, subject_id: int, value: float) -> None:
        self.emergency_active = True
        self.log_event(f"CRITICAL ALERT: Patient {subject_id} possible heart attack")
        self._critical.publish(EmergencyTrigger(
            type=AlertType.HEART_RATE_ANOMALY,
            severity=Severity.CRITICAL,
            message=f"Patient {subject_id} possible heart attack ({value:g} bpm)",
            patient_id=subject_id,
        ))
