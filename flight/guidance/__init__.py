"""Guidance for the lander.

Guidance turns the fused navigation estimate into the motion we want:
rotate upright, close the horizontal gap, descend within rate limits.

Available algorithms:
    DescentGuidance: Banded rotate/translate/descend loop
"""

from flight.guidance.descent import (
    DescentGuidance,
    GuidanceCommand,
    GuidanceMode,
    descent_rate_limit,
    horizontal_speed_limit,
    time_to_go,
)

__all__ = [
    "DescentGuidance",
    "GuidanceCommand",
    "GuidanceMode",
    "descent_rate_limit",
    "horizontal_speed_limit",
    "time_to_go",
]
