"""Tests for the EscalationStateMachine."""

from __future__ import annotations

import pytest

from visioncare.domains.monitoring.emergency.escalation import (
    EscalationStateMachine,
    is_emergency_transcript,
)
from visioncare.domains.monitoring.emergency.models import (
    AlertType,
    EmergencyTrigger,
    EscalationState,
    Severity,
)


def _gesture_trigger(patient: int = 1) -> EmergencyTrigger:
    return EmergencyTrigger(
        type=AlertType.EMERGENCY_GESTURE,
        severity=Severity.CRITICAL,
        message=f"Patient {patient} signaled emergency help.",
        patient_id=patient,
    )


@pytest.fixture
def machine(alerts, clock) -> EscalationStateMachine:
    return EscalationStateMachine(alerts, clock=clock, escalation_delay_ms=10_000)


def _types(alerts):
    return [a.type for a in alerts.history()]


class TestTrigger:
    def test_idle_to_active(self, machine, alerts):
        record = machine.trigger(_gesture_trigger())
        assert machine.state is EscalationState.ACTIVE
        assert machine.current is record
        assert record.patient_id == 1
        assert _types(alerts) == [AlertType.EMERGENCY_GESTURE]
        assert machine.emergency_log() == [record]

    def test_second_trigger_is_dropped(self, machine, alerts):
        first = machine.trigger(_gesture_trigger(1))
        assert machine.trigger(_gesture_trigger(2)) is None
        assert machine.current is first
        assert len(alerts.history()) == 1
        assert len(machine.emergency_log()) == 1

    def test_emergency_log_keeps_newest_records(self, alerts, clock):
        machine = EscalationStateMachine(alerts, clock=clock, log_limit=1)
        machine.trigger(_gesture_trigger(1))
        machine.resolve()
        second = machine.trigger(_gesture_trigger(2))
        assert machine.emergency_log() == [second]


class TestEscalationTimer:
    def test_escalates_once_after_delay(self, machine, alerts, clock):
        machine.trigger(_gesture_trigger())
        clock.advance(9_999)
        machine.run_due()
        assert AlertType.ESCALATION not in _types(alerts)

        clock.advance(1)
        assert machine.run_due() == 1
        escalation = alerts.history()[-1]
        assert escalation.type is AlertType.ESCALATION
        assert escalation.severity is Severity.CRITICAL
        assert machine.status()["escalated"] is True
        assert machine.active is True

        clock.advance(60_000)
        assert machine.run_due() == 0
        assert _types(alerts).count(AlertType.ESCALATION) == 1

    def test_dropped_trigger_does_not_reset_timer(self, machine, alerts, clock):
        machine.trigger(_gesture_trigger())
        clock.advance(6_000)
        machine.trigger(_gesture_trigger(2))
        clock.advance(4_000)
        machine.run_due()
        assert AlertType.ESCALATION in _types(alerts)

    def test_resolve_cancels_timer(self, machine, alerts, clock):
        machine.trigger(_gesture_trigger())
        clock.advance(5_000)
        assert machine.resolve() is True
        clock.advance(10_000)
        assert machine.run_due() == 0
        assert AlertType.ESCALATION not in _types(alerts)


class TestResolve:
    def test_resolve_returns_to_idle(self, machine, alerts):
        machine.trigger(_gesture_trigger())
        machine.resolve()
        assert machine.state is EscalationState.IDLE
        assert machine.current is None
        resolved = alerts.history()[-1]
        assert resolved.type is AlertType.EMERGENCY_RESOLVED
        assert resolved.severity is Severity.LOW

    def test_resolve_when_idle_is_noop(self, machine, alerts):
        assert machine.resolve() is False
        assert alerts.history() == []

    def test_resolved_listeners(self, machine):
        seen = []
        machine.subscribe_resolved(seen.append)
        record = machine.trigger(_gesture_trigger())
        machine.resolve()
        assert seen == [record]

    def test_new_emergency_after_resolve(self, machine, clock, alerts):
        machine.trigger(_gesture_trigger(1))
        machine.resolve()
        second = machine.trigger(_gesture_trigger(2))
        assert second is not None
        assert machine.current.patient_id == 2

        clock.advance(10_000)
        machine.run_due()
        assert _types(alerts).count(AlertType.ESCALATION) == 1

    def test_stale_timer_does_not_escalate_new_emergency(self, machine, clock, alerts):
        machine.trigger(_gesture_trigger(1))
        clock.advance(8_000)
        machine.resolve()
        machine.trigger(_gesture_trigger(2))
        clock.advance(2_000)
        machine.run_due()
        assert AlertType.ESCALATION not in _types(alerts)


class TestEventClassification:
    def test_patient_missing_is_high(self, machine):
        record = machine.handle_patient_event({"type": "PATIENT_MISSING", "patient": 2})
        assert record.type is AlertType.PATIENT_MISSING
        assert record.severity is Severity.HIGH

    def test_low_confidence_is_medium(self, machine):
        record = machine.handle_patient_event({"type": "LOW_CONFIDENCE"})
        assert record.severity is Severity.MEDIUM

    def test_other_patient_events_ignored(self, machine):
        assert machine.handle_patient_event({"type": "PATIENT_DETECTED"}) is None
        assert machine.active is False

    def test_emergency_gesture(self, machine):
        record = machine.handle_gesture_event({"patient": 1, "gesture": "Emergency Help"})
        assert record.type is AlertType.EMERGENCY_GESTURE
        assert record.message == "Patient 1 signaled emergency help."

    def test_other_gesture_ignored(self, machine):
        assert machine.handle_gesture_event({"patient": 1, "gesture": "Thumbs Up"}) is None

    @pytest.mark.parametrize("transcript", [
        "CODE BLUE in room 4",
        "patient unconscious",
        "this is an emergency",
        "Cardiac arrest!",
        "help immediately please",
    ])
    def test_voice_keywords(self, machine, transcript):
        assert is_emergency_transcript(transcript)
        record = machine.handle_voice_command(transcript, patient=1)
        assert record.type is AlertType.VOICE_EMERGENCY

    def test_voice_without_keyword(self, machine):
        assert machine.handle_voice_command("turn off the lights") is None

    def test_handle_event_routes_by_shape(self, machine):
        assert machine.handle_event({"type": "VOICE", "message": "code blue"}) is not None
        machine.resolve()
        assert machine.handle_event({"type": "GESTURE", "patient": 1,
                                     "gesture": "Emergency Help"}) is not None
        machine.resolve()
        assert machine.handle_event({"type": "PATIENT_MISSING", "patientId": 2}).patient_id == 2

    def test_voice_event_with_source_key(self, machine):
        record = machine.handle_event({"source": "VOICE", "message": "code blue"})
        assert record.type is AlertType.VOICE_EMERGENCY

    def test_voice_emergency_type_is_routed_to_voice(self, machine):
        record = machine.handle_event(
            {"type": "VOICE_EMERGENCY", "patient": 1, "message": "cardiac arrest"}
        )
        assert record.type is AlertType.VOICE_EMERGENCY
        assert record.patient_id == 1

    def test_voice_without_keyword_via_source_is_ignored(self, machine):
        assert machine.handle_event({"source": "VOICE", "message": "hello"}) is None
        assert machine.active is False


class TestMonitorVitals:
    @pytest.mark.parametrize("sample,expected", [
        ({"heartRate": 131}, AlertType.HEART_RATE_ANOMALY),
        ({"heartRate": 39}, AlertType.HEART_RATE_ANOMALY),
        ({"spo2": 84}, AlertType.LOW_OXYGEN),
    ])
    def test_out_of_band_triggers(self, machine, sample, expected):
        record = machine.monitor_vitals(sample, patient=1)
        assert record.type is expected
        assert record.severity is Severity.CRITICAL

    @pytest.mark.parametrize("sample", [
        {"heartRate": 130}, {"heartRate": 40}, {"spo2": 85}, {}, None,
    ])
    def test_in_band_is_quiet(self, machine, sample):
        assert machine.monitor_vitals(sample) is None
        assert machine.active is False

    def test_both_limits_breached_raise_one_emergency(self, machine, alerts):
        record = machine.monitor_vitals({"heartRate": 150, "spo2": 80}, patient=1)
        assert record.type is AlertType.HEART_RATE_ANOMALY
        assert len(alerts.history()) == 1
