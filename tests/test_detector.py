"""Unit tests for noise reduction and sensor failure detection."""

import logging

import numpy as np
import pytest

from flight.config import DetectorConfig
from flight.interfaces import Channel
from flight.navigation.detector import Drift, FailureDetector, blend, blend_angle
from flight.navigation.history import SensorHistory, angle_difference, lag_offset


@pytest.fixture
def detector():
    return FailureDetector(config=DetectorConfig(), failed=set())


# =============================================================================
# Blending Tests
# =============================================================================


class TestBlend:
    """Test the noise-reduced value."""

    def test_linear_blend(self):
        assert blend(10.0, 20.0) == pytest.approx(17.5)

    def test_blend_weight(self):
        assert blend(0.0, 8.0, raw_weight=1.0) == pytest.approx(4.0)

    def test_angle_blend_takes_short_arc(self):
        assert blend_angle(350.0, 10.0) == pytest.approx(5.0)
        assert blend_angle(10.0, 350.0) == pytest.approx(355.0)


# =============================================================================
# Divergence Tests
# =============================================================================


class TestFailureDetector:
    """Test divergence latching."""

    def test_steady_reading_is_healthy(self, detector, make_frame):
        history = SensorHistory.seed(make_frame(vx=100.0))
        result = detector.assess(history, Channel.VELOCITY_X, 101.0)
        assert not result.diverged
        assert not detector.is_failed(Channel.VELOCITY_X)

    @pytest.mark.parametrize("average", [100.0, -100.0, 500.0])
    def test_twice_average_latches_on_same_tick(self, detector, make_frame, average):
        history = SensorHistory.seed(make_frame(vx=average))
        result = detector.assess(history, Channel.VELOCITY_X, 2.0 * average)
        assert result.diverged
        assert detector.is_failed(Channel.VELOCITY_X)

    @pytest.mark.parametrize("average", [4.0, 10.0, -10.0, 20.0])
    def test_twice_average_latches_at_flight_speeds(self, detector, make_frame, average):
        history = SensorHistory.seed(make_frame(vx=average))
        result = detector.assess(history, Channel.VELOCITY_X, 2.0 * average)
        assert result.diverged
        assert detector.is_failed(Channel.VELOCITY_X)

    def test_descent_rate_stuck_at_zero_latches(self, detector, make_frame):
        history = SensorHistory.seed(make_frame(vy=-4.0))
        result = detector.assess(history, Channel.VELOCITY_Y, 0.0)
        assert result.diverged
        assert detector.is_failed(Channel.VELOCITY_Y)

    def test_small_values_protected_by_noise_floor(self, detector, make_frame):
        """Near zero a doubling is ordinary noise, not a failure."""
        history = SensorHistory.seed(make_frame(vx=0.5))
        result = detector.assess(history, Channel.VELOCITY_X, 1.0)
        assert not result.diverged

    def test_uniform_noise_does_not_latch(self, detector, make_frame):
        """Readings with +-10% uniform noise are smoothed and never latched."""
        rng = np.random.default_rng(0)
        history = SensorHistory.seed(make_frame(vx=100.0))
        raw = 100.0 * (1.0 + rng.uniform(-0.1, 0.1, 200))
        fused = []
        for value in raw:
            result = detector.assess(history, Channel.VELOCITY_X, float(value))
            fused.append(history.push(Channel.VELOCITY_X, result.fused))

        assert not detector.is_failed(Channel.VELOCITY_X)
        assert abs(np.mean(fused) - 100.0) < 2.0
        assert np.std(fused) < np.std(raw)

    def test_latch_is_permanent(self, detector, make_frame):
        history = SensorHistory.seed(make_frame(vx=100.0))
        detector.assess(history, Channel.VELOCITY_X, 1000.0)
        assert detector.is_failed(Channel.VELOCITY_X)

        result = detector.assess(history, Channel.VELOCITY_X, 100.0)
        assert not result.diverged
        assert detector.is_failed(Channel.VELOCITY_X)

    def test_fuse_does_not_latch(self, detector, make_frame):
        history = SensorHistory.seed(make_frame(vx=100.0))
        result = detector.fuse(history, Channel.VELOCITY_X, 1000.0)
        assert result.diverged
        assert not detector.is_failed(Channel.VELOCITY_X)

    def test_other_channels_unaffected(self, detector, make_frame):
        history = SensorHistory.seed(make_frame(vx=100.0, vy=-10.0))
        detector.assess(history, Channel.VELOCITY_X, 1000.0)
        assert detector.failed == {Channel.VELOCITY_X}

    def test_latch_logs_warning(self, detector, make_frame, caplog):
        history = SensorHistory.seed(make_frame(vx=100.0))
        with caplog.at_level(logging.WARNING, logger="flight.navigation.detector"):
            detector.assess(history, Channel.VELOCITY_X, 1000.0)
        assert "VELOCITY_X" in caplog.text


class TestAngleDivergence:
    """Angles diverge on wrapped differences."""

    def test_wrap_is_not_divergence(self, detector, make_frame):
        history = SensorHistory.seed(make_frame(angle=359.0))
        result = detector.assess(history, Channel.ANGLE, 1.0)
        assert not result.diverged
        assert abs(angle_difference(result.fused, 0.5)) < 1e-9

    def test_flip_is_divergence(self, detector, make_frame):
        history = SensorHistory.seed(make_frame(angle=0.0))
        result = detector.assess(history, Channel.ANGLE, 180.0)
        assert result.diverged
        assert detector.is_failed(Channel.ANGLE)

    def test_rotation_rate_is_not_divergence(self, detector, make_frame):
        """A full-rate rotation step stays well inside the band."""
        history = SensorHistory.seed(make_frame(angle=10.0))
        result = detector.assess(history, Channel.ANGLE, 14.3)
        assert not result.diverged


class TestDetectorConfig:
    """Test threshold scaling."""

    def test_threshold_relative_above_floor(self):
        config = DetectorConfig()
        assert config.threshold(Channel.POSITION_Y, 400.0) == pytest.approx(100.0)

    def test_threshold_floor(self):
        config = DetectorConfig()
        floor = config.noise_floor[Channel.POSITION_Y]
        assert config.threshold(Channel.POSITION_Y, 1.0) == pytest.approx(0.25 * floor)

    def test_angle_threshold_ignores_average(self):
        config = DetectorConfig()
        assert config.threshold(Channel.ANGLE, 300.0) == config.threshold(Channel.ANGLE, 0.0)


# =============================================================================
# Expected Motion
# =============================================================================


FALL_STEP = -8.87 * 0.1


class TestDrift:
    """Known and possible motion widen or move the band."""

    def test_free_fall_with_gravity_shift_is_trusted(self, detector, make_frame):
        history = SensorHistory.seed(make_frame(vy=0.0))
        for tick in range(1, 31):
            drift = Drift(shift=lag_offset([FALL_STEP] * tick))
            result = detector.assess(history, Channel.VELOCITY_Y, FALL_STEP * tick, drift)
            history.push(Channel.VELOCITY_Y, result.fused)
        assert not detector.is_failed(Channel.VELOCITY_Y)

    def test_free_fall_without_shift_latches(self, detector, make_frame):
        history = SensorHistory.seed(make_frame(vy=0.0))
        for tick in range(1, 31):
            result = detector.assess(history, Channel.VELOCITY_Y, FALL_STEP * tick)
            history.push(Channel.VELOCITY_Y, result.fused)
        assert detector.is_failed(Channel.VELOCITY_Y)

    def test_sensor_stuck_while_falling_latches(self, detector, make_frame):
        history = SensorHistory.seed(make_frame(vy=-4.0))
        for tick in range(1, 4):
            drift = Drift(shift=lag_offset([FALL_STEP] * tick))
            result = detector.assess(history, Channel.VELOCITY_Y, -4.0, drift)
            history.push(Channel.VELOCITY_Y, result.fused)
        assert detector.is_failed(Channel.VELOCITY_Y)

    def test_thrust_allowance(self, detector, make_frame):
        history = SensorHistory.seed(make_frame(vx=0.0))
        assert detector.fuse(history, Channel.VELOCITY_X, 2.5).diverged

        drift = Drift(allowance=lag_offset([2.5]))
        assert not detector.fuse(history, Channel.VELOCITY_X, 2.5, drift).diverged
        # A thruster that did nothing is inside the same band
        assert not detector.fuse(history, Channel.VELOCITY_X, 0.0, drift).diverged

    def test_allowance_does_not_hide_a_doubling(self, detector, make_frame):
        history = SensorHistory.seed(make_frame(vx=10.0))
        drift = Drift(allowance=lag_offset([2.5]))
        assert detector.fuse(history, Channel.VELOCITY_X, 20.0, drift).diverged
