"""Primary descent guidance.

Brings the vehicle over the platform and down within the touchdown limits.
Evaluated fresh every tick from the fused estimate; there is no memory
between ticks and no retry logic, so a misfired command is simply corrected
on the next tick.

Each tick:
1. Rotation gate - if the tilt is off the attitude setpoint, issue one
   shorter-arc rotation and leave the thrusters alone this tick.
2. Horizontal - speed limit from distance-to-target bands (coarse far away,
   fine close in). Thrust toward the target up to the limit, brake with the
   opposing thruster when over it. The thruster not in use is zeroed first.
3. Vertical - descent-rate limit from height bands. Descent is suspended
   while we would reach the ground before being over the platform. The main
   thruster fires whenever we are sinking faster than the limit.

Example:
    >>> from flight.guidance import DescentGuidance
    >>>
    >>> guidance = DescentGuidance()
    >>> result = guidance.compute(estimate, target)
    >>> result.command
    ActuatorCommand(main=0.0, left=1.0, right=0.0, rotation=None)
"""

import math
from dataclasses import dataclass, field
from enum import IntFlag
from typing import NamedTuple

import numpy as np
from beartype import beartype

from flight.config import GuidanceConfig, VehicleConfig
from flight.control.allocation import ActuatorHealth, ThrustDemand, allocate
from flight.control.attitude import alignment_rotation, is_aligned
from flight.interfaces import ActuatorCommand, Actuator, Target
from flight.navigation.estimates import NavigationEstimate

# =============================================================================
# Limits
# =============================================================================


def band_limit(
    distance: float,
    bands: tuple[tuple[float, float], ...],
    final: float,
) -> float:
    """Limit of the first band whose distance is exceeded."""
    for threshold, limit in bands:
        if distance > threshold:
            return limit
    return final


@beartype
def horizontal_speed_limit(distance: float, config: GuidanceConfig) -> float:
    """Horizontal speed limit for a distance to the target.

    With the default bands: >200 -> 25, >100 -> 15, else 5.
    """
    return band_limit(abs(distance), config.horizontal_bands, config.horizontal_final)


@beartype
def descent_rate_limit(height: float, config: GuidanceConfig) -> float:
    """Descent-rate limit (negative) for a height above the target.

    With the default bands: >200 -> -20, >100 -> -10, else -4.
    """
    return band_limit(height, config.vertical_bands, config.vertical_final)


@beartype
def time_to_go(distance: float, speed: float) -> float:
    """Time to cover a distance at a speed; inf when not moving."""
    distance = abs(distance)
    speed = abs(speed)
    if distance == 0.0:
        return 0.0
    if speed == 0.0:
        return math.inf
    return distance / speed


# =============================================================================
# Guidance
# =============================================================================


class GuidanceMode(IntFlag):
    """What guidance did this tick. Translate and descend can co-occur."""
    IDLE = 0
    ROTATING = 1
    TRANSLATING = 2
    DESCENDING = 4


class GuidanceCommand(NamedTuple):
    """Output of one guidance evaluation."""
    command: ActuatorCommand
    mode: GuidanceMode
    vx_limit: float
    vy_limit: float
    attitude: float
    demand: ThrustDemand


@beartype
@dataclass
class DescentGuidance:
    """Rotate / translate / descend guidance loop.

    Attributes:
        config: Bands, lead ratio, station keeping and tilt settings
        vehicle: Thruster and gravity constants for allocation
    """
    config: GuidanceConfig = field(default_factory=GuidanceConfig)
    vehicle: VehicleConfig = field(default_factory=VehicleConfig)

    def lateral_demand(self, error: float, vx: float, vx_limit: float) -> float:
        """Signed lateral push for a horizontal error (position - target).

        Positive pushes toward +x (left thruster), negative toward -x (right).
        """
        cfg = self.config
        if abs(error) <= cfg.station_radius:
            # Over the target: only brake drift
            if abs(vx) <= cfg.station_speed:
                return 0.0
            return float(-np.clip(vx / vx_limit, -1.0, 1.0))

        if error > 0.0:
            # Target lies toward -x
            if vx > -vx_limit:
                return -(vx_limit + min(0.0, vx)) / vx_limit
            return min(1.0, abs(vx) - vx_limit)

        if vx < vx_limit:
            return (vx_limit - max(0.0, vx)) / vx_limit
        return -min(1.0, abs(vx) - vx_limit)

    def vertical_limit(
        self,
        error: float,
        height: float,
        vx: float,
        vy: float,
    ) -> float:
        """Descent-rate limit including the lead-time guard."""
        vy_limit = descent_rate_limit(height, self.config)

        if abs(error) <= self.config.station_radius:
            horizontal_time = 0.0
        else:
            horizontal_time = time_to_go(error, vx)
        vertical_time = time_to_go(max(height, 0.0), vy)

        # Do not arrive at the ground before arriving over the platform
        if horizontal_time > self.config.lead_ratio * vertical_time:
            return 0.0
        return vy_limit

    def compute(
        self,
        estimate: NavigationEstimate,
        target: Target,
        health: ActuatorHealth | None = None,
    ) -> GuidanceCommand:
        """Evaluate guidance for one tick.

        Args:
            estimate: Fused navigation estimate
            target: Landing platform
            health: Actuators still trusted (all healthy if None)

        Returns:
            GuidanceCommand with the actuator command and diagnostics
        """
        health = health or ActuatorHealth()

        error = estimate.position_x - target.x
        height = estimate.position_y - target.y
        vx = estimate.velocity_x
        vy = estimate.velocity_y

        vx_limit = horizontal_speed_limit(error, self.config)
        lateral = self.lateral_demand(error, vx, vx_limit)
        vy_limit = self.vertical_limit(error, height, vx, vy)
        lift = 1.0 if vy < vy_limit else 0.0

        demand = ThrustDemand(lift=lift, lateral=lateral)
        allocation = allocate(
            demand,
            health,
            estimate.angle,
            height,
            self.config,
            self.vehicle,
        )

        if health.ok(Actuator.ROTATION) and not is_aligned(
            estimate.angle, allocation.attitude, self.config.alignment_tolerance
        ):
            rotation = alignment_rotation(estimate.angle, allocation.attitude)
            return GuidanceCommand(
                command=ActuatorCommand(rotation=rotation),
                mode=GuidanceMode.ROTATING,
                vx_limit=vx_limit,
                vy_limit=vy_limit,
                attitude=allocation.attitude,
                demand=demand,
            )

        mode = GuidanceMode.IDLE
        if lateral != 0.0:
            mode |= GuidanceMode.TRANSLATING
        if vy_limit < 0.0:
            mode |= GuidanceMode.DESCENDING

        return GuidanceCommand(
            command=allocation.command,
            mode=mode,
            vx_limit=vx_limit,
            vy_limit=vy_limit,
            attitude=allocation.attitude,
            demand=demand,
        )
