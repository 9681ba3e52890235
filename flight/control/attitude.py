"""Attitude helpers for a planar lander.

Tilt is measured in degrees clockwise from vertical. The attitude actuator
takes relative rotation requests and is rate-limited by the vehicle, so a
request has to be repeated every tick until the tilt has converged.

Example:
    >>> is_aligned(359.5)
    True
    >>> alignment_rotation(350.0)
    10.0
"""

import math

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from flight.interfaces import Actuator
from flight.navigation.history import angle_difference


@beartype
def is_aligned(angle: float, setpoint: float = 0.0, tolerance: float = 1.0) -> bool:
    """True when the tilt is within tolerance of the setpoint [deg].

    For setpoint 0 and tolerance 1 this is [0, 1] or [359, 360).
    """
    return abs(angle_difference(angle, setpoint)) <= tolerance


@beartype
def alignment_rotation(angle: float, setpoint: float = 0.0) -> float:
    """Relative rotation taking the shorter arc to the setpoint [deg].

    For setpoint 0: -angle below 180, 360 - angle from 180 up.
    """
    return angle_difference(setpoint, angle)


@beartype
def thrust_directions(angle: float) -> dict[Actuator, NDArray[np.float64]]:
    """World-frame unit push of each thruster at a given tilt [deg].

    Body up maps to (sin, cos) and body +x to (cos, -sin).
    """
    theta = math.radians(angle)
    up = np.array([math.sin(theta), math.cos(theta)])
    body_x = np.array([math.cos(theta), -math.sin(theta)])
    return {
        Actuator.MAIN: up,
        Actuator.LEFT: body_x,
        Actuator.RIGHT: -body_x,
    }
