"""Subject, vitals and analysis models for the monitoring domain."""

from __future__ import annotations

import enum
from collections import deque
from dataclasses import dataclass, field
from typing import Any


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class RiskLevel(str, enum.Enum):
    """Coarse risk label derived from the latest heart-rate reading only."""

    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"


class Trend(str, enum.Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


# ---------------------------------------------------------------------------
# Subject state
# ---------------------------------------------------------------------------

DEFAULT_SPO2 = 98


@dataclass(frozen=True)
class HeartRateSample:
    """One heart-rate reading in a subject's history."""

    value: float
    timestamp_ms: int

    def to_dict(self) -> dict[str, Any]:
        return {"value": self.value, "timestamp": self.timestamp_ms}


@dataclass
class SubjectRecord:
    """Mutable vitals state for one monitored subject.

    ``history`` is a bounded deque; appending past ``maxlen`` evicts the
    oldest sample.
    """

    id: int
    history: deque[HeartRateSample]
    heart_rate: float = 0
    spo2: float = DEFAULT_SPO2
    systolic_bp: float | None = None
    diastolic_bp: float | None = None
    temperature: float | None = None
    risk_level: RiskLevel = RiskLevel.NORMAL
    last_updated: str | None = None
    detected: bool = False

    @classmethod
    def create(cls, subject_id: int, history_limit: int) -> SubjectRecord:
        """Build a subject in its zero/default state."""
        return cls(id=subject_id, history=deque(maxlen=history_limit))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "heartRate": self.heart_rate,
            "spo2": self.spo2,
            "systolicBP": self.systolic_bp,
            "diastolicBP": self.diastolic_bp,
            "temperature": self.temperature,
            "riskLevel": self.risk_level.value,
            "history": [s.to_dict() for s in self.history],
            "lastUpdated": self.last_updated,
            "detected": self.detected,
        }


# Inbound payloads use camelCase keys; snake_case is accepted too.
_VITALS_KEYS: dict[str, tuple[str, ...]] = {
    "heart_rate": ("heartRate", "heart_rate"),
    "spo2": ("spo2", "oxygen"),
    "systolic_bp": ("systolicBP", "systolic_bp"),
    "diastolic_bp": ("diastolicBP", "diastolic_bp"),
    "temperature": ("temperature",),
}


@dataclass(frozen=True)
class VitalsSample:
    """A partial vitals update. ``None`` means "leave unchanged"."""

    heart_rate: float | None = None
    spo2: float | None = None
    systolic_bp: float | None = None
    diastolic_bp: float | None = None
    temperature: float | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VitalsSample:
        """Parse an inbound vitals payload; unknown keys are ignored."""
        values: dict[str, float | None] = {}
        for attr, keys in _VITALS_KEYS.items():
            values[attr] = None
            for key in keys:
                if data.get(key) is not None:
                    values[attr] = float(data[key])
                    break
        return cls(**values)

    def is_empty(self) -> bool:
        return all(
            v is None
            for v in (self.heart_rate, self.spo2, self.systolic_bp,
                      self.diastolic_bp, self.temperature)
        )


@dataclass(frozen=True)
class LogEntry:
    """A human-readable system log line."""

    message: str
    timestamp: str

    def to_dict(self) -> dict[str, str]:
        return {"message": self.message, "timestamp": self.timestamp}


# ---------------------------------------------------------------------------
# Analysis results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AnalysisSnapshot:
    """Bundle of history-derived statistics for one subject at one instant."""

    subject_id: int
    average_hr: int
    variability: int
    rapid_spike_detected: bool
    trend: Trend
    risk_score: int
    ai_confidence: int
    timestamp: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "patientId": self.subject_id,
            "averageHR": self.average_hr,
            "variability": self.variability,
            "rapidSpikeDetected": self.rapid_spike_detected,
            "trend": self.trend.value,
            "riskScore": self.risk_score,
            "aiConfidence": self.ai_confidence,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class RiskComparison:
    """Outcome of comparing two subjects' risk scores."""

    higher_risk_subject: int
    scores: dict[int, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "higherRiskPatient": self.higher_risk_subject,
            "riskScores": {str(k): v for k, v in self.scores.items()},
        }
