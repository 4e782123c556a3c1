"""Tests for ratio-of-ratios SpO2 estimation."""

from __future__ import annotations

import pytest

from visioncare.domains.monitoring.domain_logic.errors import InvalidInputError
from visioncare.domains.monitoring.domain_logic.spo2_estimator import (
    SpO2Estimator,
    SpO2Status,
    ac_component,
    classify_spo2,
    dc_component,
    low_pass_filter,
    ratio_of_ratios,
)

IR_WAVE = [100, 200, 100, 200]
OFFSET_WAVE = [200, 300, 200, 300]


@pytest.fixture
def estimator(clock) -> SpO2Estimator:
    return SpO2Estimator(clock=clock)


class TestSignalHelpers:
    def test_low_pass_first_sample_passes_through(self):
        assert low_pass_filter([10, 20]) == pytest.approx([10, 12])

    def test_components(self):
        assert ac_component([3, 9, 5]) == 6
        assert dc_component([3, 9, 6]) == 6

    def test_ratio_is_zero_when_ir_is_flat(self):
        assert ratio_of_ratios([50, 50, 50], [40, 45, 50]) == 0

    def test_ratio_is_zero_when_dc_is_zero(self):
        assert ratio_of_ratios([0, 0], [1, 2]) == 0
        assert ratio_of_ratios([1, 2], [0, 0]) == 0

    @pytest.mark.parametrize("value,expected", [
        (100, SpO2Status.NORMAL),
        (95, SpO2Status.NORMAL),
        (94.99, SpO2Status.MILD_HYPOXIA),
        (90, SpO2Status.MILD_HYPOXIA),
        (89.99, SpO2Status.MODERATE_HYPOXIA),
        (85, SpO2Status.MODERATE_HYPOXIA),
        (84.99, SpO2Status.SEVERE_HYPOXIA),
    ])
    def test_classification_boundaries(self, value, expected):
        assert classify_spo2(value) is expected


class TestCalculate:
    def test_flat_signals_clamp_to_max(self, estimator):
        reading = estimator.calculate([100] * 10, [100] * 10)
        assert reading.spo2 == 100.0
        assert reading.status is SpO2Status.NORMAL

    def test_identical_channels_give_ratio_one(self, estimator):
        reading = estimator.calculate(IR_WAVE, IR_WAVE)
        assert reading.spo2 == pytest.approx(85.0)
        assert reading.status is SpO2Status.MODERATE_HYPOXIA

    def test_higher_red_baseline_raises_estimate(self, estimator):
        reading = estimator.calculate(IR_WAVE, OFFSET_WAVE)
        assert reading.spo2 == pytest.approx(96.51, abs=0.01)
        assert reading.status is SpO2Status.NORMAL

    def test_low_estimate_clamps_to_min(self, estimator):
        reading = estimator.calculate(OFFSET_WAVE, IR_WAVE)
        assert reading.spo2 == 70.0
        assert reading.status is SpO2Status.SEVERE_HYPOXIA

    def test_custom_band(self, clock):
        estimator = SpO2Estimator(min_spo2=75, clock=clock)
        assert estimator.calculate(OFFSET_WAVE, IR_WAVE).spo2 == 75.0

    def test_result_is_rounded_to_two_decimals(self, estimator):
        spo2 = estimator.calculate(IR_WAVE, OFFSET_WAVE).spo2
        assert spo2 == round(spo2, 2)

    def test_to_dict(self, estimator):
        data = estimator.calculate([100] * 3, [100] * 3).to_dict()
        assert data["status"] == "NORMAL"
        assert set(data) == {"spo2", "status", "timestamp"}


class TestInvalidInput:
    def test_missing_channel(self, estimator):
        with pytest.raises(InvalidInputError):
            estimator.calculate(None, [1, 2, 3])

    def test_empty_channel(self, estimator):
        with pytest.raises(InvalidInputError):
            estimator.calculate([1, 2, 3], [])

    def test_length_mismatch(self, estimator):
        with pytest.raises(InvalidInputError, match="lengths differ"):
            estimator.calculate([1, 2, 3], [1, 2])

    def test_invalid_input_is_a_value_error(self, estimator):
        with pytest.raises(ValueError):
            estimator.calculate([], [])
