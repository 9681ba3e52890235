"""Unit tests for the collision-avoidance safety override."""

import math
import warnings

import numpy as np
import pytest
from beartype import beartype
from beartype.roar import BeartypeDecorHintPep585DeprecationWarning

from flight.config import VehicleConfig
from flight.control.allocation import ActuatorHealth, ThrustDemand, hover_power
from flight.control.safety import (
    BEAMS_DOWNWARD,
    BEAMS_TOWARD_NEGATIVE_X,
    BEAMS_TOWARD_POSITIVE_X,
    BEAMS_UPWARD,
    OverrideAction,
    SafetyOverride,
    nearest_obstacle,
)
from flight.interfaces import SONAR_BEAMS, Actuator, ActuatorCommand, Target

TARGET = Target(x=0.0, y=0.0)
GUIDANCE = ActuatorCommand(main=0.0, left=1.0, right=0.0)


@pytest.fixture
def override():
    return SafetyOverride()


def sonar_with(**beams: float) -> np.ndarray:
    """Sweep with no returns except the given beams (beam_9=50.0)."""
    sonar = np.full(SONAR_BEAMS, -1.0)
    for name, distance in beams.items():
        sonar[int(name.split("_")[1])] = distance
    return sonar


# =============================================================================
# Scan Helpers
# =============================================================================


class TestNearestObstacle:
    """Test beam scanning."""

    def test_no_returns_is_infinite(self, empty_sonar):
        assert nearest_obstacle(empty_sonar, BEAMS_DOWNWARD) == math.inf

    def test_ignores_sentinel_and_other_beams(self):
        sonar = sonar_with(beam_9=50.0, beam_10=40.0, beam_27=5.0)
        assert nearest_obstacle(sonar, BEAMS_TOWARD_POSITIVE_X) == 40.0

    def test_quadrants_cover_expected_beams(self):
        assert BEAMS_TOWARD_POSITIVE_X == tuple(range(5, 14))
        assert BEAMS_TOWARD_NEGATIVE_X == tuple(range(22, 32))
        assert BEAMS_DOWNWARD == tuple(range(14, 22))
        assert set(BEAMS_UPWARD) == set(range(0, 5)) | set(range(32, 36))

    def test_hints_are_not_deprecated(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error", BeartypeDecorHintPep585DeprecationWarning)
            beartype(nearest_obstacle.__wrapped__)


class TestLimits:
    """Test the speed-dependent distance limit."""

    def test_distance_limit_floor(self, override, make_estimate):
        assert override.distance_limit(make_estimate(vx=1.0, vy=1.0)) == 75.0

    def test_distance_limit_speed(self, override, make_estimate):
        assert override.distance_limit(make_estimate(vx=10.0, vy=5.0)) == pytest.approx(125.0)

    @pytest.mark.parametrize(("vx", "urgency"), [(0.0, 0.25), (2.5, 0.5), (-10.0, 1.0)])
    def test_urgency(self, override, vx, urgency):
        assert override.urgency(vx) == pytest.approx(urgency)


# =============================================================================
# Override Behaviour
# =============================================================================


class TestOverride:
    """Test braking, realignment and suppression."""

    def test_clear_sky_passes_guidance_through(self, override, make_estimate, empty_sonar):
        est = make_estimate(x=500.0, y=500.0, vx=10.0, vy=-10.0)
        decision = override.apply(est, empty_sonar, TARGET, GUIDANCE)
        assert decision.command == GUIDANCE
        assert decision.action == OverrideAction.NONE

    def test_suppressed_near_platform(self, override, make_estimate):
        est = make_estimate(x=100.0, y=100.0, vx=10.0, vy=-20.0)
        decision = override.apply(est, np.full(SONAR_BEAMS, 1.0), TARGET, GUIDANCE)
        assert decision.command == GUIDANCE
        assert decision.action == OverrideAction.NONE

    def test_not_suppressed_outside_box(self, override, make_estimate):
        est = make_estimate(x=100.0, y=160.0, vx=0.0, vy=-20.0)
        decision = override.apply(est, sonar_with(beam_18=100.0), TARGET, GUIDANCE)
        assert decision.action & OverrideAction.VERTICAL_BRAKE

    def test_horizontal_brake_moving_right(self, override, make_estimate):
        est = make_estimate(x=500.0, y=500.0, vx=10.0, vy=0.0)
        decision = override.apply(est, sonar_with(beam_9=50.0), TARGET, GUIDANCE)
        assert decision.action == OverrideAction.HORIZONTAL_BRAKE
        assert decision.command.right == 1.0
        assert decision.command.left == 0.0
        assert decision.command.main == 0.0

    def test_horizontal_brake_moving_left(self, override, make_estimate):
        est = make_estimate(x=500.0, y=500.0, vx=-10.0, vy=0.0)
        decision = override.apply(est, sonar_with(beam_27=50.0), TARGET, GUIDANCE)
        assert decision.command.left == 1.0
        assert decision.command.right == 0.0

    def test_obstacle_behind_is_ignored(self, override, make_estimate):
        est = make_estimate(x=500.0, y=500.0, vx=10.0, vy=0.0)
        decision = override.apply(est, sonar_with(beam_27=5.0), TARGET, GUIDANCE)
        assert decision.action == OverrideAction.NONE

    def test_low_speed_reduces_urgency(self, override, make_estimate):
        est = make_estimate(x=500.0, y=500.0, vx=0.5, vy=0.0)
        # threshold = 75 * 0.25
        far = override.apply(est, sonar_with(beam_9=30.0), TARGET, GUIDANCE)
        near = override.apply(est, sonar_with(beam_9=10.0), TARGET, GUIDANCE)
        assert far.action == OverrideAction.NONE
        assert near.action == OverrideAction.HORIZONTAL_BRAKE

    def test_descending_toward_ground_fires_main(self, override, make_estimate):
        est = make_estimate(x=500.0, y=500.0, vx=0.0, vy=-12.0)
        decision = override.apply(est, sonar_with(beam_18=100.0), TARGET, GUIDANCE)
        assert decision.action == OverrideAction.VERTICAL_BRAKE
        assert decision.command.main == 1.0
        assert decision.distance_limit == pytest.approx(144.0)

    def test_fast_ascent_toward_ceiling_cuts_main(self, override, make_estimate):
        est = make_estimate(x=500.0, y=500.0, vx=0.0, vy=8.0)
        command = ActuatorCommand(main=1.0, left=0.0, right=0.0)
        decision = override.apply(est, sonar_with(beam_0=30.0), TARGET, command)
        assert decision.command.main == 0.0

    def test_slow_ascent_scans_down(self, override, make_estimate):
        est = make_estimate(x=500.0, y=500.0, vx=0.0, vy=3.0)
        command = ActuatorCommand(main=1.0, left=0.0, right=0.0)
        ceiling = override.apply(est, sonar_with(beam_0=30.0), TARGET, command)
        ground = override.apply(est, sonar_with(beam_18=30.0), TARGET, command)
        assert ceiling.action == OverrideAction.NONE
        assert ground.command.main == 0.0

    def test_both_axes(self, override, make_estimate):
        est = make_estimate(x=500.0, y=500.0, vx=10.0, vy=-12.0)
        decision = override.apply(est, sonar_with(beam_9=50.0, beam_18=50.0), TARGET, GUIDANCE)
        assert decision.action == OverrideAction.HORIZONTAL_BRAKE | OverrideAction.VERTICAL_BRAKE
        assert decision.command == ActuatorCommand(main=1.0, left=0.0, right=1.0)

    def test_tilted_vehicle_realigns_first(self, override, make_estimate):
        est = make_estimate(x=500.0, y=500.0, vx=10.0, vy=0.0, angle=30.0)
        decision = override.apply(est, sonar_with(beam_9=50.0), TARGET, GUIDANCE)
        assert decision.action == OverrideAction.REALIGN
        assert decision.command.rotation == pytest.approx(-30.0)
        assert decision.command.left == GUIDANCE.left

    def test_tilted_with_failed_rotation_brakes(self, override, make_estimate):
        est = make_estimate(x=500.0, y=500.0, vx=10.0, vy=0.0, angle=30.0)
        health = ActuatorHealth(failed=frozenset({Actuator.ROTATION}))
        decision = override.apply(est, sonar_with(beam_9=50.0), TARGET, GUIDANCE, health)
        assert decision.action == OverrideAction.HORIZONTAL_BRAKE
        assert decision.command.rotation is None

    def test_stateless(self, override, make_estimate):
        est = make_estimate(x=500.0, y=500.0, vx=10.0, vy=0.0)
        sonar = sonar_with(beam_9=50.0)
        first = override.apply(est, sonar, TARGET, GUIDANCE)
        second = override.apply(est, sonar, TARGET, GUIDANCE)
        assert first == second

    def test_vertical_brake_keeps_guidance_lateral(self, override, make_estimate):
        est = make_estimate(x=500.0, y=500.0, vx=0.0, vy=-12.0)
        demand = ThrustDemand(lift=0.0, lateral=1.0)
        decision = override.apply(
            est, sonar_with(beam_18=100.0), TARGET, GUIDANCE, demand=demand,
        )
        assert decision.command == ActuatorCommand(main=1.0, left=1.0, right=0.0)


# =============================================================================
# Degraded Actuators
# =============================================================================


class TestDegradedOverride:
    """Braking goes through allocation and respects inferred failures."""

    def test_main_failed_holds_side_thruster_lift(self, override, make_estimate):
        est = make_estimate(x=500.0, y=500.0, vx=0.0, vy=-12.0, angle=90.0)
        health = ActuatorHealth(failed=frozenset({Actuator.MAIN}))
        guidance = ActuatorCommand(main=0.0, left=0.0, right=1.0)
        decision = override.apply(est, sonar_with(beam_18=60.0), TARGET, guidance, health)

        assert decision.action == OverrideAction.VERTICAL_BRAKE
        assert decision.command.rotation is None
        assert decision.command == ActuatorCommand(main=0.0, left=0.0, right=1.0)

    def test_main_failed_upright_rolls_to_side_thruster(self, override, make_estimate):
        est = make_estimate(x=500.0, y=500.0, vx=0.0, vy=-12.0)
        health = ActuatorHealth(failed=frozenset({Actuator.MAIN}))
        decision = override.apply(est, sonar_with(beam_18=60.0), TARGET, GUIDANCE, health)

        assert decision.action == OverrideAction.REALIGN
        assert decision.command.rotation == pytest.approx(90.0)

    def test_side_failed_tilts_instead_of_firing(self, override, make_estimate):
        est = make_estimate(x=500.0, y=500.0, vx=20.0, vy=0.0)
        health = ActuatorHealth(failed=frozenset({Actuator.RIGHT}))
        decision = override.apply(est, sonar_with(beam_9=60.0), TARGET, GUIDANCE, health)

        assert decision.action == OverrideAction.REALIGN
        assert decision.command.rotation == pytest.approx(-20.0)
        assert decision.command.right == GUIDANCE.right

    def test_side_failed_brakes_with_main_once_tilted(self, override, make_estimate):
        est = make_estimate(x=500.0, y=500.0, vx=20.0, vy=0.0, angle=340.0)
        health = ActuatorHealth(failed=frozenset({Actuator.RIGHT}))
        decision = override.apply(est, sonar_with(beam_9=60.0), TARGET, GUIDANCE, health)

        assert decision.action == OverrideAction.HORIZONTAL_BRAKE
        assert decision.command.right == 0.0
        assert decision.command.left == 0.0
        assert decision.command.main == pytest.approx(hover_power(20.0, VehicleConfig()))

    def test_side_failed_low_never_fires_dead_thruster(self, override, make_estimate):
        est = make_estimate(x=500.0, y=40.0, vx=20.0, vy=0.0)
        health = ActuatorHealth(failed=frozenset({Actuator.RIGHT}))
        decision = override.apply(est, sonar_with(beam_9=60.0), TARGET, GUIDANCE, health)

        assert decision.action == OverrideAction.HORIZONTAL_BRAKE
        assert decision.command.right == 0.0
