"""Range checks over a single vitals reading.

Each field is classified against a fixed normal range, the statuses are
folded into a 0-100 stability score, and the score maps to a condition.
"""

from __future__ import annotations

from typing import Any

from visioncare.core.scheduling.clock import Clock, SystemClock, iso_timestamp
from visioncare.domains.monitoring.domain_logic.errors import InvalidInputError

# Normal ranges, inclusive on both ends
NORMAL_RANGES: dict[str, tuple[float, float]] = {
    "heartRate": (60, 100),
    "systolicBP": (90, 120),
    "diastolicBP": (60, 80),
    "temperature": (36.5, 37.5),
    "respiratoryRate": (12, 20),
    "spo2": (95, 100),
}

UNKNOWN = "UNKNOWN"
LOW = "LOW"
NORMAL = "NORMAL"
HIGH = "HIGH"
HYPERTENSIVE_CRISIS = "HYPERTENSIVE CRISIS"

OUT_OF_RANGE_PENALTY = 10
CRISIS_PENALTY = 25

# (minimum score, condition), checked highest first
CONDITION_BANDS = [(85, "STABLE"), (65, "MONITOR"), (40, "UNSTABLE")]

NUMERIC_FIELDS = (
    "heartRate", "systolicBP", "diastolicBP", "temperature", "respiratoryRate", "spo2",
)


def as_number(field_name: str, value: Any) -> float | None:
    """Coerce a vitals value to float; ``None`` stays ``None``.

    Raises:
        InvalidInputError: If the value is not numeric.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidInputError(f"{field_name} must be numeric, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"{field_name} must be numeric, got {value!r}") from None


def check_range(field_name: str, value: float | None) -> str:
    """LOW / NORMAL / HIGH against the field's range; UNKNOWN if absent."""
    bounds = NORMAL_RANGES.get(field_name)
    if bounds is None or value is None:
        return UNKNOWN
    low, high = bounds
    if value < low:
        return LOW
    if value > high:
        return HIGH
    return NORMAL


def check_blood_pressure(systolic: float | None, diastolic: float | None) -> str:
    if not systolic or not diastolic:
        return UNKNOWN
    if systolic > 180 or diastolic > 120:
        return HYPERTENSIVE_CRISIS
    if systolic > 140 or diastolic > 90:
        return HIGH
    if systolic < 90 or diastolic < 60:
        return LOW
    return NORMAL


def stability_score(analysis: dict[str, str]) -> int:
    score = 100
    for status in analysis.values():
        if status in (HIGH, LOW):
            score -= OUT_OF_RANGE_PENALTY
        elif status == HYPERTENSIVE_CRISIS:
            score -= CRISIS_PENALTY
    return max(score, 0)


def condition_for(score: int) -> str:
    for floor, condition in CONDITION_BANDS:
        if score >= floor:
            return condition
    return "CRITICAL"


class VitalSignsEvaluator:
    """Evaluates a vitals dict (camelCase keys) into per-field statuses."""

    def __init__(self, *, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()

    def evaluate(self, vitals: dict[str, Any] | None) -> dict[str, Any]:
        """Classify each vital and derive stability score and condition.

        Raises:
            InvalidInputError: If no vitals were supplied or a value is not numeric.
        """
        if not vitals:
            raise InvalidInputError("Vitals data missing")
        values = {name: as_number(name, vitals.get(name)) for name in NUMERIC_FIELDS}

        analysis = {
            "heartRate": check_range("heartRate", values["heartRate"]),
            "bloodPressure": check_blood_pressure(
                values["systolicBP"], values["diastolicBP"]
            ),
            "temperature": check_range("temperature", values["temperature"]),
            "respiratoryRate": check_range("respiratoryRate", values["respiratoryRate"]),
            "spo2": check_range("spo2", values["spo2"]),
        }
        score = stability_score(analysis)

        return {
            "vitals": dict(vitals),
            "analysis": analysis,
            "stabilityScore": score,
            "condition": condition_for(score),
            "timestamp": iso_timestamp(self._clock),
        }
