"""Two-channel SpO2 estimation by ratio-of-ratios.

Pipeline per call::

    raw IR, raw Red --low-pass--> filtered --AC/DC--> R --calibration--> SpO2

Numeric policy:

* ``R`` is 0 when either channel's DC is 0 or the IR channel is flat
  (AC 0); the ratio is undefined there and the estimate falls back to the
  calibration constant.
* The estimate is clamped to the physiological band, then rounded to two
  decimals. Status is classified on the clamped, unrounded value.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from visioncare.core.scheduling.clock import Clock, SystemClock, iso_timestamp
from visioncare.domains.monitoring.domain_logic.errors import InvalidInputError

logger = logging.getLogger(__name__)

SMOOTHING_ALPHA = 0.2
RATIO_SLOPE = 25


class SpO2Status(str, enum.Enum):
    NORMAL = "NORMAL"
    MILD_HYPOXIA = "MILD HYPOXIA"
    MODERATE_HYPOXIA = "MODERATE HYPOXIA"
    SEVERE_HYPOXIA = "SEVERE HYPOXIA"


@dataclass(frozen=True)
class SpO2Reading:
    spo2: float
    status: SpO2Status
    timestamp: str

    def to_dict(self) -> dict[str, Any]:
        return {"spo2": self.spo2, "status": self.status.value, "timestamp": self.timestamp}


def low_pass_filter(signal: Sequence[float], alpha: float = SMOOTHING_ALPHA) -> list[float]:
    """Single-pole exponential smoothing; the first sample passes through."""
    filtered = [float(signal[0])]
    for value in signal[1:]:
        filtered.append(alpha * value + (1 - alpha) * filtered[-1])
    return filtered


def ac_component(signal: Sequence[float]) -> float:
    """Peak-to-peak amplitude."""
    return max(signal) - min(signal)


def dc_component(signal: Sequence[float]) -> float:
    """Arithmetic mean."""
    return sum(signal) / len(signal)


def ratio_of_ratios(ir: Sequence[float], red: Sequence[float]) -> float:
    """``(redAC/redDC) / (irAC/irDC)``, or 0 when undefined."""
    ir_ac, ir_dc = ac_component(ir), dc_component(ir)
    red_ac, red_dc = ac_component(red), dc_component(red)

    if ir_dc == 0 or red_dc == 0 or ir_ac == 0:
        logger.debug("Degenerate ratio (irDC=%s redDC=%s irAC=%s); using 0", ir_dc, red_dc, ir_ac)
        return 0.0
    return (red_ac / red_dc) / (ir_ac / ir_dc)


def classify_spo2(spo2: float) -> SpO2Status:
    if spo2 >= 95:
        return SpO2Status.NORMAL
    if spo2 >= 90:
        return SpO2Status.MILD_HYPOXIA
    if spo2 >= 85:
        return SpO2Status.MODERATE_HYPOXIA
    return SpO2Status.SEVERE_HYPOXIA


class SpO2Estimator:
    """Stateless SpO2 calculator with a fixed linear calibration.

    Usage::

        estimator = SpO2Estimator()
        reading = estimator.calculate([100, 101, 99], [80, 82, 79])
        reading.spo2, reading.status
    """

    def __init__(
        self,
        *,
        calibration_constant: float = 110,
        min_spo2: float = 70,
        max_spo2: float = 100,
        clock: Clock | None = None,
    ) -> None:
        self.calibration_constant = calibration_constant
        self.min_spo2 = min_spo2
        self.max_spo2 = max_spo2
        self._clock = clock or SystemClock()

    def calculate(
        self,
        ir_signal: Sequence[float] | None,
        red_signal: Sequence[float] | None,
    ) -> SpO2Reading:
        """Estimate oxygen saturation from raw IR and Red intensities.

        Raises:
            InvalidInputError: If either channel is missing, empty, or the
                channels differ in length.
        """
        if not ir_signal or not red_signal:
            raise InvalidInputError("Invalid sensor data: IR and Red signals are required")
        if len(ir_signal) != len(red_signal):
            raise InvalidInputError(
                f"Invalid sensor data: channel lengths differ "
                f"(ir={len(ir_signal)}, red={len(red_signal)})"
            )

        ratio = ratio_of_ratios(low_pass_filter(ir_signal), low_pass_filter(red_signal))
        spo2 = self.calibration_constant - RATIO_SLOPE * ratio
        spo2 = max(self.min_spo2, min(self.max_spo2, spo2))

        return SpO2Reading(
            spo2=round(float(spo2), 2),
            status=classify_spo2(spo2),
            timestamp=iso_timestamp(self._clock),
        )
