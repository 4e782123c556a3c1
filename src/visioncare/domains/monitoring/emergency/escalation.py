"""Emergency escalation state machine.

Two states, one system-wide emergency::

    idle   --trigger-->      active   (record, alert, arm escalation timer)
    active --trigger-->      active   (dropped: no alert, timer untouched)
    active --timer fires-->  active   (ESCALATION alert, timer not re-armed)
    active --resolve-->      idle     (cancel timer, RESOLVED alert)

Only one emergency can be active at a time; triggers that arrive while one
is active are dropped, not queued.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from typing import Any

from visioncare.core.events.listeners import ListenerRegistry
from visioncare.core.scheduling.clock import Clock, SystemClock, iso_timestamp
from visioncare.core.scheduling.timers import ScheduledEvent, TimerQueue
from visioncare.domains.monitoring.domain_logic.models import VitalsSample
from visioncare.domains.monitoring.emergency.alert_manager import AlertManager
from visioncare.domains.monitoring.emergency.models import (
    AlertType,
    DetectionEvent,
    EmergencyRecord,
    EmergencyTrigger,
    EscalationState,
    Severity,
)

logger = logging.getLogger(__name__)

ESCALATION_TIMER = "escalation"

EMERGENCY_GESTURE_NAME = "Emergency Help"
VOICE_EVENT_TYPES = ("VOICE", AlertType.VOICE_EMERGENCY.value)
EMERGENCY_KEYWORDS = (
    "code blue",
    "emergency",
    "patient unconscious",
    "cardiac arrest",
    "help immediately",
)


def is_emergency_transcript(transcript: str) -> bool:
    text = transcript.lower()
    return any(keyword in text for keyword in EMERGENCY_KEYWORDS)


class EscalationStateMachine:
    """Drives the single emergency lifecycle and its escalation timer.

    Alert storage is delegated entirely to the ``AlertManager``.

    Usage::

        machine = EscalationStateMachine(alerts, clock=clock)
        machine.handle_gesture_event({"patient": 1, "gesture": "Emergency Help"})
        machine.run_due()   # fires the escalation alert once the delay elapses
        machine.resolve()
    """

    def __init__(
        self,
        alert_manager: AlertManager,
        *,
        clock: Clock | None = None,
        escalation_delay_ms: int = 10_000,
        log_limit: int = 100,
        heart_rate_min: float = 40,
        heart_rate_max: float = 130,
        spo2_min: float = 85,
    ) -> None:
        self._alerts = alert_manager
        self._clock = clock or SystemClock()
        self._timers = TimerQueue(self._clock)
        self._escalation_delay_ms = escalation_delay_ms
        self._heart_rate_min = heart_rate_min
        self._heart_rate_max = heart_rate_max
        self._spo2_min = spo2_min

        self._state = EscalationState.IDLE
        self._current: EmergencyRecord | None = None
        self._timer_handle: int | None = None
        self._escalated = False
        self._log: deque[EmergencyRecord] = deque(maxlen=log_limit)
        self._resolved = ListenerRegistry[EmergencyRecord]("escalation.resolved")

    # ---------------------------------------------------------------
    # Core transitions
    # ---------------------------------------------------------------

    @property
    def state(self) -> EscalationState:
        return self._state

    @property
    def active(self) -> bool:
        return self._state is EscalationState.ACTIVE

    @property
    def current(self) -> EmergencyRecord | None:
        return self._current

    def trigger(self, trigger: EmergencyTrigger) -> EmergencyRecord | None:
        """Activate an emergency, or drop the trigger if one is already active.

        Returns:
            The new EmergencyRecord, or None when the trigger was dropped.
        """
        if self.active:
            logger.info(
                "Emergency %s dropped: %s already active",
                trigger.type.value,
                self._current.type.value if self._current else "?",
            )
            return None

        record = EmergencyRecord(
            type=trigger.type,
            severity=trigger.severity,
            message=trigger.message,
            timestamp=iso_timestamp(self._clock),
            patient_id=trigger.patient_id,
        )
        self._state = EscalationState.ACTIVE
        self._current = record
        self._escalated = False
        self._log.append(record)

        self._alerts.trigger(record.type, record.severity, record.message)
        logger.error("EMERGENCY ACTIVATED: %s", record.to_dict())

        self._timer_handle = self._timers.schedule(
            self._escalation_delay_ms, ESCALATION_TIMER, payload=record
        )
        return record

    def resolve(self) -> bool:
        """Close the active emergency. No-op (returns False) when idle."""
        if not self.active:
            return False

        self._timers.cancel(self._timer_handle)
        self._timer_handle = None
        record = self._current
        self._state = EscalationState.IDLE
        self._current = None

        self._alerts.trigger(
            AlertType.EMERGENCY_RESOLVED,
            Severity.LOW,
            "Emergency resolved successfully.",
        )
        logger.info("Emergency resolved")
        if record is not None:
            self._resolved.publish(record)
        return True

    def run_due(self) -> int:
        """Fire the escalation timer if its delay has elapsed."""
        return self._timers.run_due(self._on_timer)

    def subscribe_resolved(
        self, listener: Callable[[EmergencyRecord], Any]
    ) -> Callable[[], None]:
        return self._resolved.subscribe(listener)

    # ---------------------------------------------------------------
    # Event classification
    # ---------------------------------------------------------------

    def handle_event(self, raw: DetectionEvent | dict[str, Any]) -> EmergencyRecord | None:
        """Route an inbound detection, gesture or voice event by its shape."""
        event = raw if isinstance(raw, DetectionEvent) else DetectionEvent.from_dict(raw)
        kind = event.type.upper()
        if kind in VOICE_EVENT_TYPES:
            return self.handle_voice_command(event.message or "", patient=event.patient)
        if event.gesture is not None or kind == "GESTURE":
            return self.handle_gesture_event(event)
        return self.handle_patient_event(event)

    def handle_patient_event(self, raw: DetectionEvent | dict[str, Any]) -> EmergencyRecord | None:
        """Patient-detection events: PATIENT_MISSING (high), LOW_CONFIDENCE (medium)."""
        event = raw if isinstance(raw, DetectionEvent) else DetectionEvent.from_dict(raw)

        if event.type == AlertType.PATIENT_MISSING.value:
            return self.trigger(EmergencyTrigger(
                type=AlertType.PATIENT_MISSING,
                severity=Severity.HIGH,
                message="Critical: Patient missing from monitoring zone.",
                patient_id=event.patient,
            ))
        if event.type == AlertType.LOW_CONFIDENCE.value:
            return self.trigger(EmergencyTrigger(
                type=AlertType.LOW_CONFIDENCE,
                severity=Severity.MEDIUM,
                message="Warning: Detection confidence dropped.",
                patient_id=event.patient,
            ))

        logger.debug("Ignoring non-qualifying patient event %r", event.type)
        return None

    def handle_gesture_event(self, raw: DetectionEvent | dict[str, Any]) -> EmergencyRecord | None:
        event = raw if isinstance(raw, DetectionEvent) else DetectionEvent.from_dict(raw)
        if event.gesture != EMERGENCY_GESTURE_NAME:
            logger.debug("Ignoring gesture %r", event.gesture)
            return None
        return self.trigger(EmergencyTrigger(
            type=AlertType.EMERGENCY_GESTURE,
            severity=Severity.CRITICAL,
            message=f"Patient {event.patient} signaled emergency help.",
            patient_id=event.patient,
        ))

    def handle_voice_command(
        self, transcript: str, *, patient: int | None = None
    ) -> EmergencyRecord | None:
        """Trigger a critical emergency when the transcript has an emergency keyword."""
        if not is_emergency_transcript(transcript):
            return None
        return self.trigger(EmergencyTrigger(
            type=AlertType.VOICE_EMERGENCY,
            severity=Severity.CRITICAL,
            message=f"Voice emergency reported: {transcript.strip()}",
            patient_id=patient,
        ))

    def monitor_vitals(
        self, sample: VitalsSample | dict[str, Any] | None, *, patient: int | None = None
    ) -> EmergencyRecord | None:
        """Critical emergency on heart rate outside [min, max] or SpO2 below min."""
        if sample is None:
            return None
        if isinstance(sample, dict):
            sample = VitalsSample.from_dict(sample)

        record = None
        hr = sample.heart_rate
        if hr is not None and (hr > self._heart_rate_max or hr < self._heart_rate_min):
            record = self.trigger(EmergencyTrigger(
                type=AlertType.HEART_RATE_ANOMALY,
                severity=Severity.CRITICAL,
                message=f"Abnormal heart rate detected: {hr:g} bpm",
                patient_id=patient,
            ))

        if sample.spo2 is not None and sample.spo2 < self._spo2_min:
            record = self.trigger(EmergencyTrigger(
                type=AlertType.LOW_OXYGEN,
                severity=Severity.CRITICAL,
                message=f"Critical oxygen level: {sample.spo2:g}%",
                patient_id=patient,
            )) or record

        return record

    # ---------------------------------------------------------------
    # Reads
    # ---------------------------------------------------------------

    def status(self) -> dict[str, Any]:
        return {
            "state": self._state.value,
            "active": self.active,
            "current": self._current.to_dict() if self._current else None,
            "escalated": self._escalated,
        }

    def emergency_log(self) -> list[EmergencyRecord]:
        return list(self._log)

    # ---------------------------------------------------------------
    # Internal helpers
    # ---------------------------------------------------------------

    def _on_timer(self, event: ScheduledEvent) -> None:
        if event.kind != ESCALATION_TIMER or event.payload is not self._current:
            return
        self._timer_handle = None
        self._escalated = True
        self._alerts.trigger(
            AlertType.ESCALATION,
            Severity.CRITICAL,
            "Emergency not resolved. Escalating to higher authority.",
            raised_at_ms=event.fire_at,
        )
        logger.warning("Emergency escalated")
