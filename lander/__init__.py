"""Lander - simulation infrastructure for fault-tolerant descent GNC.

This package is the "plant": a 2D lander with noisy sensors, noisy
level-based actuators, heightmap terrain with a landing platform, sonar
ray casting and fault injection. The flight software in flight/ is flown
against it through the VehicleInterface protocol.

Example:
    >>> from flight import FlightComputer
    >>> from lander import LanderSimulator, run_mission
    >>>
    >>> sim = LanderSimulator.above_platform(height=300.0, seed=0)
    >>> result = run_mission(sim, FlightComputer(target=sim.target))
    >>> print(result.outcome.name, result.ticks)
"""

__version__ = "0.1.0"

from lander.environment import Terrain
from lander.simulation import (
    CampaignMode,
    Fault,
    FaultKind,
    FaultPlan,
    LanderSimulator,
    MissionResult,
    NoiseModel,
    Outcome,
    SimConfig,
    run_mission,
)

__all__ = [
    "CampaignMode",
    "Fault",
    "FaultKind",
    "FaultPlan",
    "LanderSimulator",
    "MissionResult",
    "NoiseModel",
    "Outcome",
    "SimConfig",
    "Terrain",
    "run_mission",
]
