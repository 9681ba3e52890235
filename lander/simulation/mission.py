"""Closed-loop mission runner: flight computer against the simulator."""

import logging
from dataclasses import dataclass

from beartype import beartype

from flight.computer import FlightComputer
from flight.telemetry import FlightRecorder
from lander.simulation.simulator import LanderSimulator, Outcome, SimulationResult

logger = logging.getLogger(__name__)


@beartype
@dataclass
class MissionResult:
    """Outcome of one closed-loop flight.

    Attributes:
        outcome: LANDED, CRASHED, or FLYING if the tick limit was hit
        ticks: Ticks flown
        trajectory: Truth trajectory
        telemetry: Flight computer telemetry
    """
    outcome: Outcome
    ticks: int
    trajectory: SimulationResult
    telemetry: FlightRecorder

    @property
    def landed(self) -> bool:
        return self.outcome is Outcome.LANDED

    @property
    def touchdown_speed(self) -> float:
        return abs(self.trajectory.touchdown.vy)


@beartype
def run_mission(
    sim: LanderSimulator,
    computer: FlightComputer,
    max_ticks: int = 3000,
) -> MissionResult:
    """Fly the simulator with the flight computer until touchdown.

    Args:
        sim: Plant, positioned at the start of the descent
        computer: Flight computer targeting the platform
        max_ticks: Tick limit

    Returns:
        MissionResult with truth trajectory and telemetry
    """
    recorder = FlightRecorder()
    state = computer.start(sim)

    while sim.flying and state.tick < max_ticks:
        recorder.record(computer.tick(sim, state))
        sim.step()

    trajectory = SimulationResult.from_simulator(sim)
    if sim.flying:
        logger.warning("Mission still flying after %d ticks", state.tick)
    else:
        end = trajectory.touchdown
        logger.info(
            "Mission %s after %d ticks: x=%.1f vy=%.2f tilt=%.1f",
            sim.outcome.name, state.tick, end.x, end.vy, end.tilt,
        )

    return MissionResult(
        outcome=sim.outcome,
        ticks=state.tick,
        trajectory=trajectory,
        telemetry=recorder,
    )
