"""Environment models for lander simulation.

Example:
    >>> from lander.environment import Terrain
    >>>
    >>> terrain = Terrain.flat(platform_x=0.0)
    >>> sweep = terrain.cast_beams(0.0, 100.0)
"""

from lander.environment.terrain import (
    BEAM_COUNT,
    BEAM_RESOLUTION,
    NO_RETURN,
    Terrain,
)

__all__ = [
    "BEAM_COUNT",
    "BEAM_RESOLUTION",
    "NO_RETURN",
    "Terrain",
]
