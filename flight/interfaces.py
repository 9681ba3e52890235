"""Boundary types between the flight computer and the vehicle.

The flight software never touches simulation state. Each tick it takes one
snapshot of the (noisy, possibly corrupted) sensors as a SensorFrame, and
emits one ActuatorCommand. The vehicle itself is anything that satisfies the
VehicleInterface protocol.

Conventions:
    - World x increases to the right, y increases upward.
    - Angle is tilt from vertical in degrees, clockwise, in [0, 360).
    - Sonar beam i points 10*i degrees clockwise from world up. A reading of
      SONAR_INVALID (-1) means no valid return.

Example:
    >>> frame = read_sensors(vehicle)
    >>> command = ActuatorCommand(main=1.0, left=0.0, right=0.0)
    >>> apply_command(vehicle, command)
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Protocol, runtime_checkable

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

# =============================================================================
# Constants
# =============================================================================

SONAR_BEAMS: int = 36
SONAR_RESOLUTION_DEG: float = 10.0
SONAR_INVALID: float = -1.0


# =============================================================================
# Channels
# =============================================================================


class Channel(Enum):
    """Sensed quantities that go through fusion and failure detection."""

    VELOCITY_X = auto()
    VELOCITY_Y = auto()
    POSITION_X = auto()
    POSITION_Y = auto()
    ANGLE = auto()
    RANGE = auto()

    @property
    def circular(self) -> bool:
        """True for channels that wrap around at 360 degrees."""
        return self is Channel.ANGLE


class Actuator(Enum):
    """Actuators whose health is inferred from observed motion."""

    MAIN = auto()
    LEFT = auto()
    RIGHT = auto()
    ROTATION = auto()


# =============================================================================
# Static Target
# =============================================================================


@beartype
@dataclass(frozen=True)
class Target:
    """Landing platform location. Known exactly, never fails.

    Attributes:
        x: Platform centre, horizontal
        y: Platform surface, vertical
    """
    x: float
    y: float


# =============================================================================
# Sensor Snapshot
# =============================================================================


@beartype
@dataclass
class SensorFrame:
    """Raw sensor readings for one tick.

    Attributes:
        velocity_x: Horizontal velocity
        velocity_y: Vertical velocity (negative when descending)
        position_x: Horizontal position
        position_y: Vertical position
        angle: Tilt from vertical [deg], clockwise
        range_distance: Range-finder distance along the main thruster axis
        sonar: 36 directional range readings, SONAR_INVALID where invalid
    """
    velocity_x: float
    velocity_y: float
    position_x: float
    position_y: float
    angle: float
    range_distance: float
    sonar: NDArray[np.float64]

    def __post_init__(self) -> None:
        """Validate sonar sweep."""
        self.sonar = np.asarray(self.sonar, dtype=np.float64)
        if self.sonar.shape != (SONAR_BEAMS,):
            raise ValueError(f"Sonar must be shape ({SONAR_BEAMS},), got {self.sonar.shape}")

    def reading(self, channel: Channel) -> float:
        """Raw reading for a fused channel."""
        return {
            Channel.VELOCITY_X: self.velocity_x,
            Channel.VELOCITY_Y: self.velocity_y,
            Channel.POSITION_X: self.position_x,
            Channel.POSITION_Y: self.position_y,
            Channel.ANGLE: self.angle % 360.0,
            Channel.RANGE: self.range_distance,
        }[channel]


# =============================================================================
# Actuator Commands
# =============================================================================


def _check_power(name: str, value: float | None) -> None:
    if value is not None and not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} power must be in [0, 1], got {value}")


@beartype
@dataclass(frozen=True)
class ActuatorCommand:
    """Actuator command for one tick.

    Thrusters are level-based: a field left as None is not re-commanded and
    the thruster keeps its previous power. Rotation is a one-shot relative
    delta [deg]; None means no new rotation request.

    Attributes:
        main: Main thruster power [0, 1]
        left: Left thruster power [0, 1] (pushes toward +x)
        right: Right thruster power [0, 1] (pushes toward -x)
        rotation: Relative rotation [deg], positive clockwise
    """
    main: float | None = None
    left: float | None = None
    right: float | None = None
    rotation: float | None = None

    def __post_init__(self) -> None:
        """Validate power levels."""
        _check_power("main", self.main)
        _check_power("left", self.left)
        _check_power("right", self.right)

    def overridden_by(self, other: "ActuatorCommand") -> "ActuatorCommand":
        """Return this command with every field set in `other` replaced."""
        return ActuatorCommand(
            main=self.main if other.main is None else other.main,
            left=self.left if other.left is None else other.left,
            right=self.right if other.right is None else other.right,
            rotation=self.rotation if other.rotation is None else other.rotation,
        )

    @property
    def is_empty(self) -> bool:
        """True when nothing is commanded."""
        return (
            self.main is None and self.left is None
            and self.right is None and self.rotation is None
        )


@beartype
@dataclass(frozen=True)
class ThrusterLevels:
    """Thruster powers currently in effect on the vehicle."""
    main: float = 0.0
    left: float = 0.0
    right: float = 0.0

    def apply(self, command: ActuatorCommand) -> "ThrusterLevels":
        """Levels after `command` is executed (unset fields keep their level)."""
        return ThrusterLevels(
            main=self.main if command.main is None else command.main,
            left=self.left if command.left is None else command.left,
            right=self.right if command.right is None else command.right,
        )

    def power(self, actuator: Actuator) -> float:
        """Power of a thruster actuator."""
        if actuator is Actuator.MAIN:
            return self.main
        if actuator is Actuator.LEFT:
            return self.left
        if actuator is Actuator.RIGHT:
            return self.right
        raise ValueError(f"{actuator.name} is not a thruster")


# =============================================================================
# Vehicle Boundary
# =============================================================================


@runtime_checkable
class VehicleInterface(Protocol):
    """What the flight computer can see and do.

    Readings are noisy and may be corrupted. Actuators are noisy in effect
    and may be degraded. Health flags are deliberately not part of this
    interface.
    """

    def velocity_x(self) -> float: ...

    def velocity_y(self) -> float: ...

    def position_x(self) -> float: ...

    def position_y(self) -> float: ...

    def angle(self) -> float: ...

    def range_distance(self) -> float: ...

    def sonar(self) -> NDArray[np.float64]: ...

    def main_thruster(self, power: float) -> None: ...

    def left_thruster(self, power: float) -> None: ...

    def right_thruster(self, power: float) -> None: ...

    def rotate(self, degrees: float) -> None: ...


def read_sensors(vehicle: VehicleInterface) -> SensorFrame:
    """Take one snapshot of every sensor."""
    return SensorFrame(
        velocity_x=float(vehicle.velocity_x()),
        velocity_y=float(vehicle.velocity_y()),
        position_x=float(vehicle.position_x()),
        position_y=float(vehicle.position_y()),
        angle=float(vehicle.angle()),
        range_distance=float(vehicle.range_distance()),
        sonar=np.asarray(vehicle.sonar(), dtype=np.float64),
    )


def apply_command(vehicle: VehicleInterface, command: ActuatorCommand) -> None:
    """Send the set fields of a command to the vehicle."""
    if command.main is not None:
        vehicle.main_thruster(command.main)
    if command.left is not None:
        vehicle.left_thruster(command.left)
    if command.right is not None:
        vehicle.right_thruster(command.right)
    if command.rotation is not None:
        vehicle.rotate(command.rotation)
