"""Point-based clinical risk assessment from vitals, ECG flags, age and emergency flags."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

from visioncare.core.scheduling.clock import Clock, SystemClock, iso_timestamp
from visioncare.domains.monitoring.domain_logic.vital_signs import as_number


class ClinicalRiskLevel(str, enum.Enum):
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


RECOMMENDATIONS = {
    ClinicalRiskLevel.CRITICAL: "Immediate ICU attention required. Activate emergency protocol.",
    ClinicalRiskLevel.HIGH: "Urgent medical review required. Continuous monitoring advised.",
    ClinicalRiskLevel.MODERATE: "Monitor closely and re-evaluate in short intervals.",
    ClinicalRiskLevel.LOW: "Stable condition. Continue routine monitoring.",
}


@dataclass(frozen=True)
class ClinicalRiskResult:
    score: int
    level: ClinicalRiskLevel
    recommendation: str
    timestamp: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "level": self.level.value,
            "recommendation": self.recommendation,
            "timestamp": self.timestamp,
        }


def _gt(value: float | None, bound: float) -> bool:
    return value is not None and value > bound


def _lt(value: float | None, bound: float) -> bool:
    return value is not None and value < bound


def score_vitals(vitals: dict[str, Any] | None) -> int:
    """Absent readings contribute nothing; non-numeric ones raise ``InvalidInputError``."""
    if not vitals:
        return 0

    hr = as_number("heartRate", vitals.get("heartRate"))
    systolic = as_number("systolicBP", vitals.get("systolicBP"))
    diastolic = as_number("diastolicBP", vitals.get("diastolicBP"))
    oxygen = as_number("spo2", vitals.get("spo2", vitals.get("oxygen")))
    temp = as_number("temperature", vitals.get("temperature"))

    score = 0
    if _lt(hr, 50) or _gt(hr, 120):
        score += 3
    elif _lt(hr, 60) or _gt(hr, 100):
        score += 2

    if _gt(systolic, 180) or _gt(diastolic, 120):
        score += 4
    elif _gt(systolic, 140) or _gt(diastolic, 90):
        score += 2

    if _lt(oxygen, 90):
        score += 4
    elif _lt(oxygen, 95):
        score += 2

    if _gt(temp, 39) or _lt(temp, 35):
        score += 3
    elif _gt(temp, 38):
        score += 1

    return score


def score_ecg(ecg: dict[str, Any] | None) -> int:
    if not ecg:
        return 0
    score = 0
    if ecg.get("arrhythmiaDetected"):
        score += 4
    if ecg.get("stElevation"):
        score += 5
    if ecg.get("irregularRhythm"):
        score += 3
    return score


def score_age(age: float | None) -> int:
    age = as_number("age", age)
    if not age:
        return 0
    if age > 75:
        return 3
    if age > 60:
        return 2
    if age > 45:
        return 1
    return 0


def score_emergency_flags(flags: dict[str, Any] | None) -> int:
    if not flags:
        return 0
    score = 0
    if flags.get("cardiacArrest"):
        score += 10
    if flags.get("unconscious"):
        score += 5
    if flags.get("respiratoryFailure"):
        score += 8
    return score


def risk_level_for(score: int) -> ClinicalRiskLevel:
    if score >= 15:
        return ClinicalRiskLevel.CRITICAL
    if score >= 10:
        return ClinicalRiskLevel.HIGH
    if score >= 5:
        return ClinicalRiskLevel.MODERATE
    return ClinicalRiskLevel.LOW


class ClinicalRiskAssessor:
    """Sums the four factor scores and maps the total to a risk level."""

    def __init__(self, *, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()

    def assess(
        self,
        *,
        vitals: dict[str, Any] | None = None,
        ecg: dict[str, Any] | None = None,
        age: float | None = None,
        emergency_flags: dict[str, Any] | None = None,
    ) -> ClinicalRiskResult:
        score = (
            score_vitals(vitals)
            + score_ecg(ecg)
            + score_age(age)
            + score_emergency_flags(emergency_flags)
        )
        level = risk_level_for(score)
        return ClinicalRiskResult(
            score=score,
            level=level,
            recommendation=RECOMMENDATIONS[level],
            timestamp=iso_timestamp(self._clock),
        )
