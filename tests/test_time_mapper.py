"""
Tests for mapping beacon timestamps onto the receiver timeline
"""

import math

import pytest

from beacon_sync.regressor import Fit, IDENTITY_FIT
from beacon_sync.time_mapper import (
    INT64_MAX, MappingRangeError, map_beacon_to_receiver_ms, map_beacon_to_receiver_ns,
    residual_ms,
)


class TestMapToReceiver:

    @pytest.mark.parametrize("beacon_us", [0, 1, 1000, 123_456_789, 9_000_000_000_000])
    def test_identity_is_unit_conversion(self, beacon_us):
        assert map_beacon_to_receiver_ns(IDENTITY_FIT, beacon_us) == beacon_us * 1000

    def test_offset_and_skew(self):
        fit = Fit(alpha=5_000_000.0, beta=1.00002)
        # 2 s of beacon time: 2e9 * 1.00002 = 2_000_040_000, plus 5 ms
        assert map_beacon_to_receiver_ns(fit, 2_000_000) == 2_005_040_000

    def test_rounds_to_nearest_ns(self):
        assert map_beacon_to_receiver_ns(Fit(alpha=0.4, beta=1.0), 1) == 1000
        assert map_beacon_to_receiver_ns(Fit(alpha=0.6, beta=1.0), 1) == 1001

    def test_negative_result_allowed(self):
        fit = Fit(alpha=-10_000.0, beta=1.0)
        assert map_beacon_to_receiver_ns(fit, 2) == -8000

    def test_milliseconds(self):
        fit = Fit(alpha=1_500_000.0, beta=1.0)
        assert map_beacon_to_receiver_ms(fit, 1_000) == pytest.approx(2.5)

    def test_result_is_int(self):
        assert isinstance(map_beacon_to_receiver_ns(Fit(alpha=0.5, beta=1.1), 3), int)


class TestRangeChecks:

    def test_overflow_raises(self):
        fit = Fit(alpha=0.0, beta=1e6)
        with pytest.raises(MappingRangeError):
            map_beacon_to_receiver_ns(fit, 2**62)

    def test_just_past_int64_raises(self):
        fit = Fit(alpha=float(INT64_MAX) + 4096.0, beta=1.0)
        with pytest.raises(MappingRangeError):
            map_beacon_to_receiver_ns(fit, 0)

    def test_non_finite_raises(self):
        with pytest.raises(MappingRangeError):
            map_beacon_to_receiver_ns(Fit(alpha=math.nan, beta=1.0), 0)
        with pytest.raises(MappingRangeError):
            map_beacon_to_receiver_ns(Fit(alpha=0.0, beta=math.inf), 1)

    def test_is_overflow_error(self):
        assert issubclass(MappingRangeError, OverflowError)


class TestResidual:

    def test_exact_sample_has_zero_residual(self):
        fit = Fit(alpha=1000.0, beta=1.0)
        assert residual_ms(fit, 1_000, 1_001_000) == 0.0

    def test_residual_is_absolute(self):
        fit = IDENTITY_FIT
        assert residual_ms(fit, 1_000, 1_000_000 + 2_500_000) == pytest.approx(2.5)
        assert residual_ms(fit, 1_000, 1_000_000 - 2_500_000) == pytest.approx(2.5)

    def test_independent_of_any_window(self):
        """Historical events can be checked against a stored fit"""
        fit = Fit(alpha=0.0, beta=1.00001)
        # 100 s later the skew has added 1 ms
        assert residual_ms(fit, 100_000_000, 100_000_000_000) == pytest.approx(1.0)
