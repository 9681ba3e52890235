"""Control allocation: thrust demand -> attitude setpoint and thruster powers.

Guidance asks for vertical lift (on/off) and a signed lateral push. With every
actuator healthy that maps straight onto main/left/right at zero tilt. When a
thruster has been inferred failed its job is handed to what is left:

    - Side thruster lost: tilt the vehicle so the main thruster has a lateral
      component in the needed direction (only while high enough to tilt).
    - Main thruster lost: roll to 90 or 270 degrees so a side thruster points
      down and carries the lift (above the flare height).
    - Rotation lost: no attitude changes, fly at whatever tilt we have.
"""

import math
from dataclasses import dataclass
from typing import NamedTuple

import numpy as np
from beartype import beartype

from flight.config import GuidanceConfig, VehicleConfig
from flight.interfaces import ActuatorCommand, Actuator


class ThrustDemand(NamedTuple):
    """What guidance wants this tick.

    Attributes:
        lift: Fraction of full vertical thrust wanted (0 or 1)
        lateral: Signed lateral push in [-1, 1], positive toward +x
    """
    lift: float
    lateral: float


class Allocation(NamedTuple):
    """Attitude setpoint [deg] and the thruster command to use once there."""
    attitude: float
    command: ActuatorCommand


@beartype
@dataclass(frozen=True)
class ActuatorHealth:
    """Actuators inferred failed so far."""
    failed: frozenset[Actuator] = frozenset()

    def ok(self, actuator: Actuator) -> bool:
        return actuator not in self.failed


@beartype
def hover_power(tilt: float, vehicle: VehicleConfig) -> float:
    """Main thruster power that holds altitude at a given tilt [deg]."""
    vertical = vehicle.main_accel * math.cos(math.radians(tilt))
    if vertical <= 0.0:
        return 1.0
    return float(np.clip(vehicle.gravity / vertical, 0.0, 1.0))


@beartype
def allocate(
    demand: ThrustDemand,
    health: ActuatorHealth,
    angle: float,
    height: float,
    guidance: GuidanceConfig,
    vehicle: VehicleConfig,
) -> Allocation:
    """Pick attitude and thruster powers for a thrust demand.

    Args:
        demand: Lift and lateral push wanted by guidance
        health: Actuators still trusted
        angle: Current fused tilt [deg]
        height: Height above the target platform
        guidance: Tilt and flare settings
        vehicle: Thruster accelerations and gravity

    Returns:
        Attitude setpoint and thruster command
    """
    main_ok = health.ok(Actuator.MAIN)
    left_ok = health.ok(Actuator.LEFT)
    right_ok = health.ok(Actuator.RIGHT)

    lateral = float(np.clip(demand.lateral, -1.0, 1.0))
    left = max(lateral, 0.0) if left_ok else 0.0
    right = max(-lateral, 0.0) if right_ok else 0.0
    main = demand.lift if main_ok else 0.0

    if not health.ok(Actuator.ROTATION):
        return Allocation(angle, ActuatorCommand(main=main, left=left, right=right))

    if not main_ok and height > guidance.flare_height and (left_ok or right_ok):
        # At 90 deg body -x points up, at 270 deg body +x does
        if right_ok:
            command = ActuatorCommand(main=0.0, left=0.0, right=demand.lift)
            return Allocation(90.0, command)
        command = ActuatorCommand(main=0.0, left=demand.lift, right=0.0)
        return Allocation(270.0, command)

    side_ok = left_ok if lateral > 0.0 else right_ok if lateral < 0.0 else True
    if main_ok and not side_ok and height > guidance.tilt_min_height:
        tilt = guidance.tilt_angle if lateral > 0.0 else 360.0 - guidance.tilt_angle
        power = 1.0 if demand.lift > 0.0 else hover_power(guidance.tilt_angle, vehicle)
        return Allocation(tilt, ActuatorCommand(main=power, left=0.0, right=0.0))

    return Allocation(0.0, ActuatorCommand(main=main, left=left, right=right))
