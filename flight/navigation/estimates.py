"""Fused, failure-tolerant estimates for the control loops.

The provider runs once per tick. It blends every raw reading with history,
latches diverging channels, and substitutes derived values for latched ones:

    velocity <- (position_now - position_previous) / dt
    position <- position_previous + velocity_now * dt
    angle    <- angle_previous + commanded rotation step (dead reckoning)
    range    <- range_previous + vy_now * dt

Position and velocity on each axis back each other up. When both are failed
there is nothing trustworthy left; the returned value is then the mean of the
direct fused reading and the derived value. That is a last-resort compromise,
and such channels are reported in NavigationEstimate.degraded.

Divergence tests allow for the motion expected since the history was seeded:
gravity and commanded thrust on velocity, velocity on position.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import NamedTuple

from beartype import beartype

from flight.config import DetectorConfig, VehicleConfig
from flight.interfaces import Channel, SensorFrame
from flight.navigation.detector import Drift, FailureDetector
from flight.navigation.history import SensorHistory, lag_offset, wrap_degrees

# =============================================================================
# Estimate
# =============================================================================


@beartype
@dataclass(frozen=True)
class NavigationEstimate:
    """Fused readings for one tick.

    Attributes:
        velocity_x: Horizontal velocity
        velocity_y: Vertical velocity (negative when descending)
        position_x: Horizontal position
        position_y: Vertical position
        angle: Tilt from vertical [deg], in [0, 360)
        range_distance: Distance to ground along the main thruster axis
        failed: Channels latched as untrustworthy
        degraded: Channels whose estimate had no trustworthy source
    """
    velocity_x: float
    velocity_y: float
    position_x: float
    position_y: float
    angle: float
    range_distance: float
    failed: frozenset[Channel] = frozenset()
    degraded: frozenset[Channel] = frozenset()

    def value(self, channel: Channel) -> float:
        """Estimate for a channel."""
        return {
            Channel.VELOCITY_X: self.velocity_x,
            Channel.VELOCITY_Y: self.velocity_y,
            Channel.POSITION_X: self.position_x,
            Channel.POSITION_Y: self.position_y,
            Channel.ANGLE: self.angle,
            Channel.RANGE: self.range_distance,
        }[channel]

    @property
    def speed_squared(self) -> float:
        return self.velocity_x ** 2 + self.velocity_y ** 2


class AxisPair(NamedTuple):
    """Position and velocity channels of one axis."""
    position: Channel
    velocity: Channel


AXES: tuple[AxisPair, ...] = (
    AxisPair(Channel.POSITION_X, Channel.VELOCITY_X),
    AxisPair(Channel.POSITION_Y, Channel.VELOCITY_Y),
)


# =============================================================================
# Provider
# =============================================================================


@beartype
@dataclass
class EstimateProvider:
    """Produces one NavigationEstimate per tick from a SensorFrame.

    History and the failure latch belong to the caller's ControllerState and
    are passed in on every update.

    Attributes:
        detector_config: Fusion and divergence tuning
        vehicle: Provides the tick duration for derivations
    """
    detector_config: DetectorConfig
    vehicle: VehicleConfig

    def update(
        self,
        frame: SensorFrame,
        history: SensorHistory,
        failed: set[Channel],
        rotation_step: float = 0.0,
        thrust_steps: Sequence[float] = (),
    ) -> NavigationEstimate:
        """Fuse one frame.

        Args:
            frame: Raw readings for this tick
            history: Seeded channel histories (mutated)
            failed: Latched channels (mutated, only grows)
            rotation_step: Rotation the attitude actuator was expected to
                perform since the last tick [deg]
            thrust_steps: Bound on the thrust velocity change of each tick
                since the history was seeded, newest first

        Returns:
            Fused estimate for this tick
        """
        detector = FailureDetector(config=self.detector_config, failed=failed)
        values: dict[Channel, float] = {}
        degraded: set[Channel] = set()

        for axis in AXES:
            self._fuse_axis(
                frame, history, detector, axis, thrust_steps, values, degraded,
            )

        values[Channel.ANGLE] = self._fuse_angle(frame, history, detector, rotation_step)
        values[Channel.RANGE] = self._fuse_range(
            frame, history, detector, values[Channel.VELOCITY_Y],
            Channel.VELOCITY_Y in degraded, degraded,
        )

        return NavigationEstimate(
            velocity_x=values[Channel.VELOCITY_X],
            velocity_y=values[Channel.VELOCITY_Y],
            position_x=values[Channel.POSITION_X],
            position_y=values[Channel.POSITION_Y],
            angle=values[Channel.ANGLE],
            range_distance=values[Channel.RANGE],
            failed=frozenset(failed),
            degraded=frozenset(degraded),
        )

    def axis_drift(
        self,
        history: SensorHistory,
        axis: AxisPair,
        thrust_steps: Sequence[float],
    ) -> tuple[Drift, Drift]:
        """Expected position and velocity drift on one axis.

        Position moves with the velocity in history. Velocity changes under
        gravity, which is known, and under thrust, which only bounds the
        change since a thruster may deliver less than commanded.
        """
        dt = self.vehicle.dt
        steps = len(thrust_steps)
        velocities = history.samples(axis.velocity)[:steps]
        gravity = -self.vehicle.gravity * dt if axis.velocity is Channel.VELOCITY_Y else 0.0
        position = Drift(shift=lag_offset(velocities * dt))
        velocity = Drift(
            shift=lag_offset([gravity] * steps),
            allowance=self.detector_config.thrust_margin * lag_offset(thrust_steps),
        )
        return position, velocity

    def _fuse_axis(
        self,
        frame: SensorFrame,
        history: SensorHistory,
        detector: FailureDetector,
        axis: AxisPair,
        thrust_steps: Sequence[float],
        values: dict[Channel, float],
        degraded: set[Channel],
    ) -> None:
        """Fuse a position/velocity pair, substituting across the pair."""
        dt = self.vehicle.dt
        pos_c, vel_c = axis

        # Values from the previous tick, before anything is pushed
        prev_pos = history.latest(pos_c)
        prev_prev_pos = history.previous(pos_c)
        prev_vel = history.latest(vel_c)

        pos_drift, vel_drift = self.axis_drift(history, axis, thrust_steps)
        pos = detector.assess(history, pos_c, frame.reading(pos_c), pos_drift)
        vel = detector.assess(history, vel_c, frame.reading(vel_c), vel_drift)
        pos_failed = detector.is_failed(pos_c)
        vel_failed = detector.is_failed(vel_c)

        if not pos_failed:
            values[pos_c] = history.push(pos_c, pos.fused)
        if not vel_failed:
            values[vel_c] = history.push(vel_c, vel.fused)

        if pos_failed and vel_failed:
            derived_pos = history.push(pos_c, prev_pos + prev_vel * dt)
            derived_vel = history.push(vel_c, (prev_pos - prev_prev_pos) / dt)
            values[pos_c] = (pos.fused + derived_pos) / 2.0
            values[vel_c] = (vel.fused + derived_vel) / 2.0
            degraded.update((pos_c, vel_c))
        elif pos_failed:
            values[pos_c] = history.push(pos_c, prev_pos + values[vel_c] * dt)
        elif vel_failed:
            values[vel_c] = history.push(vel_c, (values[pos_c] - prev_pos) / dt)

    def _fuse_angle(
        self,
        frame: SensorFrame,
        history: SensorHistory,
        detector: FailureDetector,
        rotation_step: float,
    ) -> float:
        """Fuse tilt; dead-reckon from commanded rotation once failed."""
        prev_angle = history.latest(Channel.ANGLE)
        result = detector.assess(history, Channel.ANGLE, frame.reading(Channel.ANGLE))
        if not detector.is_failed(Channel.ANGLE):
            return history.push(Channel.ANGLE, result.fused)
        return history.push(Channel.ANGLE, wrap_degrees(prev_angle + rotation_step))

    def _fuse_range(
        self,
        frame: SensorFrame,
        history: SensorHistory,
        detector: FailureDetector,
        velocity_y: float,
        velocity_degraded: bool,
        degraded: set[Channel],
    ) -> float:
        """Fuse range-finder distance; derive from descent rate once failed."""
        prev_range = history.latest(Channel.RANGE)
        result = detector.assess(history, Channel.RANGE, frame.reading(Channel.RANGE))
        if not detector.is_failed(Channel.RANGE):
            return history.push(Channel.RANGE, result.fused)
        derived = history.push(Channel.RANGE, prev_range + velocity_y * self.vehicle.dt)
        if velocity_degraded:
            degraded.add(Channel.RANGE)
            return (result.fused + derived) / 2.0
        return derived
