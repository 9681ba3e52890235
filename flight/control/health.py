"""Actuator-health inference from observed motion.

The vehicle does not tell us when a thruster or the attitude actuator stops
working, so we compare what was commanded against what the fused estimates
say happened. Over one tick with thruster powers p_i held:

    dv/dt + g = sum_i e_i * p_i * a_i * d_i(angle)

where a_i is the nominal acceleration, d_i the world-frame push direction and
e_i the unknown effectiveness (1 for a healthy thruster). The e_i of the
active thrusters are solved by least squares. Rotation effectiveness is the
observed tilt change over the expected rate-limited step.

Effectiveness samples are kept in a rolling window per actuator. A median
below the threshold latches the actuator failed for the rest of the flight.
"""

import logging
from collections import deque
from dataclasses import dataclass, field

import numpy as np
from beartype import beartype

from flight.config import HealthConfig, VehicleConfig
from flight.control.allocation import ActuatorHealth
from flight.control.attitude import thrust_directions
from flight.interfaces import Actuator, Channel, ThrusterLevels
from flight.navigation.estimates import NavigationEstimate
from flight.navigation.history import angle_difference

logger = logging.getLogger(__name__)

THRUSTERS: tuple[Actuator, ...] = (Actuator.MAIN, Actuator.LEFT, Actuator.RIGHT)


def new_effectiveness_window(config: HealthConfig) -> dict[Actuator, deque]:
    """Empty rolling windows for every actuator."""
    return {actuator: deque(maxlen=config.window) for actuator in Actuator}


@beartype
@dataclass
class ActuatorHealthMonitor:
    """Infers failed actuators by comparing commands with observed motion.

    Attributes:
        config: Window and threshold tuning
        vehicle: Nominal accelerations, gravity and tick duration
    """
    config: HealthConfig = field(default_factory=HealthConfig)
    vehicle: VehicleConfig = field(default_factory=VehicleConfig)

    def nominal_accel(self, actuator: Actuator) -> float:
        return {
            Actuator.MAIN: self.vehicle.main_accel,
            Actuator.LEFT: self.vehicle.left_accel,
            Actuator.RIGHT: self.vehicle.right_accel,
        }[actuator]

    def thruster_effectiveness(
        self,
        previous: NavigationEstimate,
        current: NavigationEstimate,
        levels: ThrusterLevels,
    ) -> dict[Actuator, float]:
        """Effectiveness of each thruster that was firing over the last tick.

        Returns an empty dict when the firing thrusters cannot be separated
        (e.g. left and right together) or a velocity sensor is latched failed.
        Velocities derived from position differences are too noisy to
        differentiate again.
        """
        if {Channel.VELOCITY_X, Channel.VELOCITY_Y} & current.failed:
            return {}

        active = [a for a in THRUSTERS if levels.power(a) >= self.config.min_power]
        if not active or len(active) > 2:
            return {}

        dt = self.vehicle.dt
        dv = np.array([
            current.velocity_x - previous.velocity_x,
            current.velocity_y - previous.velocity_y,
        ])
        thrust_accel = dv / dt + np.array([0.0, self.vehicle.gravity])

        directions = thrust_directions(previous.angle)
        columns = np.column_stack([
            directions[a] * self.nominal_accel(a) * levels.power(a) for a in active
        ])
        if np.linalg.matrix_rank(columns) < len(active):
            return {}

        solution, *_ = np.linalg.lstsq(columns, thrust_accel, rcond=None)
        return {a: float(e) for a, e in zip(active, solution)}

    def rotation_effectiveness(
        self,
        previous: NavigationEstimate,
        current: NavigationEstimate,
        rotation_step: float,
    ) -> float | None:
        """Observed over expected tilt change, or None when not assessable."""
        if Channel.ANGLE in current.failed:
            return None
        if abs(rotation_step) < self.config.min_rotation:
            return None
        observed = angle_difference(current.angle, previous.angle)
        return observed / rotation_step

    def observe(
        self,
        previous: NavigationEstimate,
        current: NavigationEstimate,
        levels: ThrusterLevels,
        rotation_step: float,
        samples: dict[Actuator, deque],
        failed: set[Actuator],
    ) -> ActuatorHealth:
        """Record one tick of evidence and update the failure latch.

        Args:
            previous: Estimate at the start of the tick
            current: Estimate at the end of the tick
            levels: Thruster powers in effect over the tick
            rotation_step: Rotation expected over the tick [deg]
            samples: Rolling effectiveness windows (mutated)
            failed: Latched actuators (mutated, only grows)

        Returns:
            Current actuator health
        """
        for actuator, value in self.thruster_effectiveness(previous, current, levels).items():
            samples[actuator].append(value)

        rotation = self.rotation_effectiveness(previous, current, rotation_step)
        if rotation is not None:
            samples[Actuator.ROTATION].append(rotation)

        for actuator, window in samples.items():
            if actuator in failed or len(window) < self.config.min_samples:
                continue
            median = float(np.median(window))
            if median < self.config.threshold:
                failed.add(actuator)
                logger.warning(
                    "%s actuator inferred failed: median effectiveness %.2f over %d samples",
                    actuator.name, median, len(window),
                )

        return ActuatorHealth(failed=frozenset(failed))
