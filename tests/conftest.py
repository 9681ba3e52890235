"""Shared fixtures for flight software tests."""

import numpy as np
import pytest

from flight.interfaces import SONAR_BEAMS, SONAR_INVALID, SensorFrame
from flight.navigation.estimates import NavigationEstimate


@pytest.fixture
def make_frame():
    """Factory for SensorFrames with sane defaults (hovering at 300)."""

    def _make(
        vx: float = 0.0,
        vy: float = 0.0,
        x: float = 0.0,
        y: float = 300.0,
        angle: float = 0.0,
        range_distance: float = 300.0,
        sonar=None,
    ) -> SensorFrame:
        if sonar is None:
            sonar = np.full(SONAR_BEAMS, SONAR_INVALID)
        return SensorFrame(
            velocity_x=vx,
            velocity_y=vy,
            position_x=x,
            position_y=y,
            angle=angle,
            range_distance=range_distance,
            sonar=sonar,
        )

    return _make


@pytest.fixture
def make_estimate():
    """Factory for NavigationEstimates."""

    def _make(
        vx: float = 0.0,
        vy: float = 0.0,
        x: float = 0.0,
        y: float = 300.0,
        angle: float = 0.0,
        range_distance: float = 300.0,
        failed: frozenset = frozenset(),
        degraded: frozenset = frozenset(),
    ) -> NavigationEstimate:
        return NavigationEstimate(
            velocity_x=vx,
            velocity_y=vy,
            position_x=x,
            position_y=y,
            angle=angle,
            range_distance=range_distance,
            failed=failed,
            degraded=degraded,
        )

    return _make


@pytest.fixture
def empty_sonar():
    return np.full(SONAR_BEAMS, SONAR_INVALID)
