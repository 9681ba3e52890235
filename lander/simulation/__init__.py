"""Simulation module for the planar lander.

Provides the step-driven plant the flight software is flown against, fault
injection, and a closed-loop mission runner.

Example:
    >>> from flight import FlightComputer
    >>> from lander.simulation import (
    ...     Fault, FaultKind, FaultPlan, LanderSimulator, run_mission,
    ... )
    >>>
    >>> faults = FaultPlan((Fault(FaultKind.VELOCITY_X, onset_tick=30),))
    >>> sim = LanderSimulator.above_platform(height=300.0, faults=faults, seed=1)
    >>> result = run_mission(sim, FlightComputer(target=sim.target))
    >>> result.outcome
    <Outcome.LANDED: 2>
"""

from lander.simulation.campaign import CampaignResults, FaultCampaign
from lander.simulation.faults import (
    CampaignMode,
    Fault,
    FaultKind,
    FaultPlan,
)
from lander.simulation.mission import MissionResult, run_mission
from lander.simulation.simulator import (
    LanderSimulator,
    LanderState,
    NoiseModel,
    Outcome,
    SimConfig,
    SimulationResult,
)

__all__ = [
    "CampaignMode",
    "CampaignResults",
    "Fault",
    "FaultCampaign",
    "FaultKind",
    "FaultPlan",
    "LanderSimulator",
    "LanderState",
    "MissionResult",
    "NoiseModel",
    "Outcome",
    "SimConfig",
    "SimulationResult",
    "run_mission",
]
