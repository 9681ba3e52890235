"""Control: allocation, actuator health and the safety override.

Guidance (flight.guidance) says what motion it wants; this package decides
which actuators can deliver it and when the safety override must step in.
"""

from flight.control.allocation import (
    ActuatorHealth,
    Allocation,
    ThrustDemand,
    allocate,
    hover_power,
)
from flight.control.attitude import (
    alignment_rotation,
    is_aligned,
    thrust_directions,
)
from flight.control.health import (
    ActuatorHealthMonitor,
    new_effectiveness_window,
)
from flight.control.safety import (
    OverrideAction,
    SafetyDecision,
    SafetyOverride,
    nearest_obstacle,
)

__all__ = [
    "ActuatorHealth",
    "ActuatorHealthMonitor",
    "Allocation",
    "OverrideAction",
    "SafetyDecision",
    "SafetyOverride",
    "ThrustDemand",
    "alignment_rotation",
    "allocate",
    "hover_power",
    "is_aligned",
    "nearest_obstacle",
    "new_effectiveness_window",
    "thrust_directions",
]
