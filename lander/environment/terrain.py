"""Heightmap terrain with a landing platform.

Terrain is a 1D heightmap sampled on a regular grid and linearly
interpolated between samples. Ray casting (for the sonar sweep and the
range finder) marches along the ray in fixed steps and is numba-compiled,
since a full sweep is 36 rays per sonar update.

Example:
    >>> from lander.environment import Terrain
    >>>
    >>> terrain = Terrain.flat(platform_x=0.0, platform_width=60.0)
    >>> terrain.height_at(10.0)
    0.0
    >>> sweep = terrain.cast_beams(0.0, 100.0)  # 36 ranges, -1 for no return
"""

import math
from dataclasses import dataclass

import numpy as np
from beartype import beartype
from numba import njit
from numpy.typing import NDArray

# =============================================================================
# Constants
# =============================================================================

NO_RETURN: float = -1.0
BEAM_COUNT: int = 36
BEAM_RESOLUTION: float = 10.0  # [deg] between beams, beam 0 points up


# =============================================================================
# Numba-Optimized Core Functions
# =============================================================================


@njit(cache=True, fastmath=True)
def _height(heights: NDArray[np.float64], x0: float, spacing: float, x: float) -> float:
    """Linearly interpolated height, clamped at the ends of the map."""
    u = (x - x0) / spacing
    n = heights.shape[0]
    if u <= 0.0:
        return heights[0]
    if u >= n - 1:
        return heights[n - 1]
    i = int(u)
    f = u - i
    return heights[i] * (1.0 - f) + heights[i + 1] * f


@njit(cache=True, fastmath=True)
def _raycast(
    heights: NDArray[np.float64],
    x0: float, spacing: float,
    px: float, py: float,
    dx: float, dy: float,
    max_range: float, step: float,
) -> float:
    """Distance along (dx, dy) to the first terrain crossing, -1 if none."""
    d = 0.0
    while d <= max_range:
        if py + dy * d <= _height(heights, x0, spacing, px + dx * d):
            return d
        d += step
    return -1.0


@njit(cache=True, fastmath=True)
def _sweep(
    heights: NDArray[np.float64],
    x0: float, spacing: float,
    px: float, py: float,
    beams: int, resolution: float,
    max_range: float, step: float,
) -> NDArray[np.float64]:
    """Ranges for beams at resolution*i degrees clockwise from up."""
    out = np.empty(beams)
    for i in range(beams):
        a = np.radians(i * resolution)
        out[i] = _raycast(
            heights, x0, spacing, px, py, np.sin(a), np.cos(a), max_range, step
        )
    return out


# =============================================================================
# Terrain
# =============================================================================


@beartype
@dataclass
class Terrain:
    """Ground profile and landing platform.

    Attributes:
        heights: Ground height at each grid sample
        x0: Horizontal position of the first sample
        spacing: Distance between samples
        platform_left: Left edge of the landing platform
        platform_right: Right edge of the landing platform
        step: Ray-march step
    """
    heights: NDArray[np.float64]
    x0: float
    spacing: float
    platform_left: float
    platform_right: float
    step: float = 0.5

    def __post_init__(self) -> None:
        """Validate inputs."""
        self.heights = np.asarray(self.heights, dtype=np.float64)
        if self.heights.ndim != 1 or self.heights.size < 2:
            raise ValueError("heights must be a 1D array with at least 2 samples")
        if self.spacing <= 0.0:
            raise ValueError(f"spacing must be positive, got {self.spacing}")
        if self.platform_right <= self.platform_left:
            raise ValueError("platform_right must be greater than platform_left")
        if self.step <= 0.0:
            raise ValueError("step must be positive")

    @classmethod
    def flat(
        cls,
        platform_x: float = 0.0,
        platform_width: float = 60.0,
        ground: float = 0.0,
        extent: float = 2000.0,
        spacing: float = 5.0,
    ) -> "Terrain":
        """Level ground with a platform centred at platform_x."""
        n = int(round(2.0 * extent / spacing)) + 1
        return cls(
            heights=np.full(n, ground, dtype=np.float64),
            x0=platform_x - extent,
            spacing=spacing,
            platform_left=platform_x - platform_width / 2.0,
            platform_right=platform_x + platform_width / 2.0,
        )

    @classmethod
    def from_profile(
        cls,
        xs: NDArray[np.float64],
        ys: NDArray[np.float64],
        platform_x: float,
        platform_width: float = 60.0,
        spacing: float = 5.0,
    ) -> "Terrain":
        """Resample an arbitrary (x, y) profile and level the platform on it."""
        xs = np.asarray(xs, dtype=np.float64)
        ys = np.asarray(ys, dtype=np.float64)
        grid = np.arange(xs[0], xs[-1] + spacing, spacing)
        heights = np.interp(grid, xs, ys)

        left = platform_x - platform_width / 2.0
        right = platform_x + platform_width / 2.0
        on_platform = (grid >= left - spacing) & (grid <= right + spacing)
        heights[on_platform] = float(np.interp(platform_x, xs, ys))

        return cls(
            heights=heights,
            x0=float(grid[0]),
            spacing=spacing,
            platform_left=left,
            platform_right=right,
        )

    @property
    def platform_x(self) -> float:
        return (self.platform_left + self.platform_right) / 2.0

    @property
    def platform_y(self) -> float:
        return self.height_at(self.platform_x)

    def height_at(self, x: float) -> float:
        """Ground height below x."""
        return float(_height(self.heights, self.x0, self.spacing, x))

    def on_platform(self, x: float) -> bool:
        return self.platform_left <= x <= self.platform_right

    def cast_beams(
        self,
        x: float,
        y: float,
        max_range: float = 350.0,
        beams: int = BEAM_COUNT,
        resolution: float = BEAM_RESOLUTION,
    ) -> NDArray[np.float64]:
        """Sonar sweep from (x, y); NO_RETURN where nothing is within range."""
        return _sweep(
            self.heights, self.x0, self.spacing, x, y,
            beams, resolution, max_range, self.step,
        )

    def range_along(
        self,
        x: float,
        y: float,
        angle: float,
        max_range: float = 1000.0,
    ) -> float:
        """Distance to ground along a direction [deg clockwise from up].

        Returns max_range when the ray finds no ground.
        """
        theta = math.radians(angle)
        d = _raycast(
            self.heights, self.x0, self.spacing, x, y,
            math.sin(theta), math.cos(theta), max_range, self.step,
        )
        return max_range if d < 0.0 else float(d)
