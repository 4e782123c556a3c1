"""Alert, emergency and inbound event models."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any


class Severity(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AlertType(str, enum.Enum):
    """Alert types with a known default message."""

    PATIENT_MISSING = "PATIENT_MISSING"
    EMERGENCY_GESTURE = "EMERGENCY_GESTURE"
    LOW_CONFIDENCE = "LOW_CONFIDENCE"
    MULTIPLE_PATIENTS = "MULTIPLE_PATIENTS"
    SYSTEM_ERROR = "SYSTEM_ERROR"
    HEART_RATE_ANOMALY = "HEART_RATE_ANOMALY"
    LOW_OXYGEN = "LOW_OXYGEN"
    VOICE_EMERGENCY = "VOICE_EMERGENCY"
    ESCALATION = "ESCALATION"
    EMERGENCY_RESOLVED = "EMERGENCY_RESOLVED"


class EscalationState(str, enum.Enum):
    IDLE = "idle"
    ACTIVE = "active"


def alert_type_label(alert_type: AlertType | str) -> str:
    """Wire value of an alert type; unknown types pass through unchanged."""
    return alert_type.value if isinstance(alert_type, AlertType) else str(alert_type)


def coerce_alert_type(value: AlertType | str) -> AlertType | str:
    """Map a raw type string onto ``AlertType`` when it is a known one."""
    if isinstance(value, AlertType):
        return value
    try:
        return AlertType(value)
    except ValueError:
        return value


# ---------------------------------------------------------------------------
# Alerts
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Alert:
    """A raised alert. Lives in the active set until TTL or dismissal."""

    id: int
    type: AlertType | str
    severity: Severity
    message: str
    timestamp: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": alert_type_label(self.type),
            "severity": self.severity.value,
            "message": self.message,
            "timestamp": self.timestamp,
        }


# ---------------------------------------------------------------------------
# Emergencies
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EmergencyTrigger:
    """A qualifying event handed to the escalation state machine."""

    type: AlertType
    severity: Severity
    message: str
    patient_id: int | None = None


@dataclass(frozen=True)
class EmergencyRecord:
    """The single system-wide active emergency."""

    type: AlertType
    severity: Severity
    message: str
    timestamp: str
    patient_id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "severity": self.severity.value,
            "message": self.message,
            "timestamp": self.timestamp,
            "patient": self.patient_id,
        }


@dataclass(frozen=True)
class DetectionEvent:
    """Inbound event from detection, gesture or voice collaborators.

    Wire shape: ``{type, patient?, gesture?, message?}``. The voice
    collaborator sends ``source`` instead of ``type``; both are accepted.
    """

    type: str
    patient: int | None = None
    gesture: str | None = None
    message: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DetectionEvent:
        patient = data.get("patient", data.get("patientId"))
        return cls(
            type=str(data.get("type") or data.get("source") or ""),
            patient=int(patient) if patient is not None else None,
            gesture=data.get("gesture"),
            message=data.get("message"),
        )
