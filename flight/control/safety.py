"""Safety override: keep the vehicle off the terrain.

Runs after primary guidance every tick and may replace any of its commands.
It looks at the sonar beams in the direction of motion and, if a surface is
closer than a speed-dependent distance limit, brakes toward it:

    DistLimit = max(75, vx^2 + vy^2)

Horizontal braking urgency is scaled down at low horizontal speed. Vertical
scanning looks upward while ascending faster than 5 and downward otherwise.
Close to the platform the override stands down and guidance lands the craft.
Brakes are thrust demands allocated the same way as guidance's, so thrusters
inferred failed are never fired.

Stateless: every decision is recomputed from the current tick.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import IntFlag
from typing import NamedTuple

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from flight.config import GuidanceConfig, SafetyConfig, VehicleConfig
from flight.control.allocation import ActuatorHealth, ThrustDemand, allocate
from flight.control.attitude import alignment_rotation, is_aligned
from flight.interfaces import SONAR_INVALID, ActuatorCommand, Actuator, Target
from flight.navigation.estimates import NavigationEstimate

# =============================================================================
# Sonar Quadrants
# =============================================================================

# Beam i points 10*i degrees clockwise from world up
BEAMS_TOWARD_POSITIVE_X: tuple[int, ...] = tuple(range(5, 14))    # 50..130 deg
BEAMS_TOWARD_NEGATIVE_X: tuple[int, ...] = tuple(range(22, 32))   # 220..310 deg
BEAMS_UPWARD: tuple[int, ...] = tuple(range(0, 5)) + tuple(range(32, 36))
BEAMS_DOWNWARD: tuple[int, ...] = tuple(range(14, 22))            # 140..210 deg


@beartype
def nearest_obstacle(sonar: NDArray[np.float64], beams: Sequence[int]) -> float:
    """Smallest valid reading among the given beams; inf if none is valid."""
    readings = sonar[list(beams)]
    valid = readings[readings > SONAR_INVALID]
    if valid.size == 0:
        return math.inf
    return float(valid.min())


# =============================================================================
# Override
# =============================================================================


class OverrideAction(IntFlag):
    """What the override did this tick."""
    NONE = 0
    REALIGN = 1
    HORIZONTAL_BRAKE = 2
    VERTICAL_BRAKE = 4


class SafetyDecision(NamedTuple):
    """Command after the override, plus what it saw."""
    command: ActuatorCommand
    action: OverrideAction
    distance_limit: float
    horizontal_clearance: float
    vertical_clearance: float


@beartype
@dataclass
class SafetyOverride:
    """Collision-avoidance loop with authority over guidance.

    Attributes:
        config: Distance limit and scan tuning
        guidance: Alignment, tilt and flare settings shared with guidance
        vehicle: Thruster constants for allocating a brake
    """
    config: SafetyConfig = field(default_factory=SafetyConfig)
    guidance: GuidanceConfig = field(default_factory=GuidanceConfig)
    vehicle: VehicleConfig = field(default_factory=VehicleConfig)

    def distance_limit(self, estimate: NavigationEstimate) -> float:
        """Clearance needed at the current speed."""
        return max(self.config.min_clearance, estimate.speed_squared)

    def near_platform(self, estimate: NavigationEstimate, target: Target) -> bool:
        radius = self.config.platform_radius
        return (
            abs(target.x - estimate.position_x) < radius
            and abs(target.y - estimate.position_y) < radius
        )

    def urgency(self, vx: float) -> float:
        """Horizontal braking scale, low at low closing speed."""
        cfg = self.config
        return float(np.clip(abs(vx) / cfg.reference_speed, cfg.min_urgency, 1.0))

    def apply(
        self,
        estimate: NavigationEstimate,
        sonar: NDArray[np.float64],
        target: Target,
        command: ActuatorCommand,
        health: ActuatorHealth | None = None,
        demand: ThrustDemand | None = None,
    ) -> SafetyDecision:
        """Check clearances and override the guidance command if needed.

        A brake replaces the matching component of guidance's thrust demand
        and goes through the same allocation as guidance, so failed
        thrusters are never fired and their job is handed to what is left.

        Args:
            estimate: Fused estimate for this tick
            sonar: Raw directional range readings
            target: Landing platform
            command: Guidance command for this tick
            health: Actuators still trusted (all healthy if None)
            demand: Thrust demand behind the guidance command (none if None)

        Returns:
            SafetyDecision with the final command
        """
        health = health or ActuatorHealth()
        demand = demand or ThrustDemand(lift=0.0, lateral=0.0)
        limit = self.distance_limit(estimate)

        if self.near_platform(estimate, target):
            return SafetyDecision(command, OverrideAction.NONE, limit, math.inf, math.inf)

        action = OverrideAction.NONE

        # Horizontal
        vx = estimate.velocity_x
        beams = BEAMS_TOWARD_POSITIVE_X if vx > 0.0 else BEAMS_TOWARD_NEGATIVE_X
        horizontal = nearest_obstacle(sonar, beams)
        if horizontal < limit * self.urgency(vx):
            demand = demand._replace(lateral=-1.0 if vx > 0.0 else 1.0)
            action |= OverrideAction.HORIZONTAL_BRAKE

        # Vertical
        vy = estimate.velocity_y
        beams = BEAMS_UPWARD if vy > self.config.ascent_threshold else BEAMS_DOWNWARD
        vertical = nearest_obstacle(sonar, beams)
        if vertical < limit:
            demand = demand._replace(lift=0.0 if vy > self.config.controlled_ascent else 1.0)
            action |= OverrideAction.VERTICAL_BRAKE

        if not action:
            return SafetyDecision(command, action, limit, horizontal, vertical)

        allocation = allocate(
            demand,
            health,
            estimate.angle,
            estimate.position_y - target.y,
            self.guidance,
            self.vehicle,
        )

        if health.ok(Actuator.ROTATION) and not is_aligned(
            estimate.angle, allocation.attitude, self.guidance.alignment_tolerance
        ):
            realign = ActuatorCommand(
                rotation=alignment_rotation(estimate.angle, allocation.attitude)
            )
            return SafetyDecision(
                command.overridden_by(realign), OverrideAction.REALIGN,
                limit, horizontal, vertical,
            )

        return SafetyDecision(allocation.command, action, limit, horizontal, vertical)
