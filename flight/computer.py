"""Flight computer: one control tick from sensors to actuators.

All mutable controller state lives in a ControllerState owned by the caller
and threaded through every tick. The flight computer itself only holds
configuration and the (stateless) algorithm objects.

Tick order:
    1. Account for the rotation and thrust in effect since last tick
    2. Fuse sensors into a NavigationEstimate (failure latching included)
    3. Infer actuator health from last tick's commands vs observed motion
    4. Primary descent guidance
    5. Safety override
    6. Merge the command into the thruster levels in effect

Example:
    >>> from flight.computer import FlightComputer
    >>> from flight.interfaces import Target
    >>>
    >>> computer = FlightComputer(target=Target(x=0.0, y=0.0))
    >>> state = computer.start(vehicle)
    >>> while flying:
    ...     report = computer.tick(vehicle, state)
    ...     vehicle.step()
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import NamedTuple

import numpy as np
from beartype import beartype

from flight.config import FlightConfig, HealthConfig
from flight.control.allocation import ActuatorHealth
from flight.control.health import ActuatorHealthMonitor, new_effectiveness_window
from flight.control.safety import SafetyDecision, SafetyOverride
from flight.guidance.descent import DescentGuidance, GuidanceCommand
from flight.interfaces import (
    Actuator,
    ActuatorCommand,
    Channel,
    SensorFrame,
    Target,
    ThrusterLevels,
    VehicleInterface,
    apply_command,
    read_sensors,
)
from flight.navigation.estimates import EstimateProvider, NavigationEstimate
from flight.navigation.history import HISTORY_DEPTH, SensorHistory

logger = logging.getLogger(__name__)


# =============================================================================
# Controller State
# =============================================================================


@dataclass
class ControllerState:
    """Everything the controller remembers between ticks.

    Attributes:
        history: Per-channel sample histories
        failed_channels: Sensor channels latched failed
        failed_actuators: Actuators inferred failed
        effectiveness: Rolling effectiveness samples per actuator
        levels: Thruster powers currently in effect
        pending_rotation: Rotation still to be performed [deg]
        thrust_steps: Thrust velocity-change bound of each tick flown since
            seeding, newest first, as deep as the sensor history
        previous: Estimate from the previous tick
        tick: Ticks completed
    """
    history: SensorHistory
    failed_channels: set[Channel] = field(default_factory=set)
    failed_actuators: set[Actuator] = field(default_factory=set)
    effectiveness: dict[Actuator, deque] = field(default_factory=dict)
    levels: ThrusterLevels = field(default_factory=ThrusterLevels)
    pending_rotation: float = 0.0
    thrust_steps: deque = field(default_factory=lambda: deque(maxlen=HISTORY_DEPTH))
    previous: NavigationEstimate | None = None
    tick: int = 0

    @classmethod
    def seed(cls, frame: SensorFrame, health: HealthConfig | None = None) -> "ControllerState":
        """Fresh state seeded from the first live frame."""
        return cls(
            history=SensorHistory.seed(frame),
            effectiveness=new_effectiveness_window(health or HealthConfig()),
        )

    @property
    def health(self) -> ActuatorHealth:
        return ActuatorHealth(failed=frozenset(self.failed_actuators))


class TickReport(NamedTuple):
    """Everything decided in one tick, for logging and telemetry."""
    tick: int
    estimate: NavigationEstimate
    guidance: GuidanceCommand
    safety: SafetyDecision
    command: ActuatorCommand
    health: ActuatorHealth
    levels: ThrusterLevels


# =============================================================================
# Flight Computer
# =============================================================================


@beartype
@dataclass
class FlightComputer:
    """Runs navigation, guidance, health inference and the safety override.

    Attributes:
        target: Landing platform
        config: Flight software configuration
    """
    target: Target
    config: FlightConfig = field(default_factory=FlightConfig)

    # Internal
    _provider: EstimateProvider = field(init=False, repr=False)
    _monitor: ActuatorHealthMonitor = field(init=False, repr=False)
    _guidance: DescentGuidance = field(init=False, repr=False)
    _safety: SafetyOverride = field(init=False, repr=False)

    def __post_init__(self) -> None:
        """Build algorithm objects from the configuration."""
        cfg = self.config
        self._provider = EstimateProvider(cfg.detector, cfg.vehicle)
        self._monitor = ActuatorHealthMonitor(cfg.health, cfg.vehicle)
        self._guidance = DescentGuidance(cfg.guidance, cfg.vehicle)
        self._safety = SafetyOverride(cfg.safety, cfg.guidance, cfg.vehicle)

    def initialize(self, frame: SensorFrame) -> ControllerState:
        """Seed controller state from the first live frame."""
        logger.info(
            "Seeding navigation at x=%.1f y=%.1f angle=%.1f",
            frame.position_x, frame.position_y, frame.angle,
        )
        return ControllerState.seed(frame, self.config.health)

    def start(self, vehicle: VehicleInterface) -> ControllerState:
        """Read the first live frame from the vehicle and seed."""
        return self.initialize(read_sensors(vehicle))

    def expected_rotation(self, state: ControllerState) -> float:
        """Rotation the attitude actuator should have performed last tick."""
        max_step = self.config.vehicle.max_rotation_step
        return float(np.clip(state.pending_rotation, -max_step, max_step))

    def step(self, frame: SensorFrame, state: ControllerState) -> TickReport:
        """Run one control tick on a sensor frame.

        Args:
            frame: Raw readings for this tick
            state: Controller state (mutated)

        Returns:
            TickReport with the command to send to the vehicle
        """
        rotation_step = self.expected_rotation(state)
        state.pending_rotation -= rotation_step
        dead_reckoning = 0.0 if Actuator.ROTATION in state.failed_actuators else rotation_step
        if state.previous is not None:
            state.thrust_steps.appendleft(self.config.vehicle.thrust_step(state.levels))

        estimate = self._provider.update(
            frame, state.history, state.failed_channels, dead_reckoning,
            state.thrust_steps,
        )

        if state.previous is None:
            health = state.health
        else:
            health = self._monitor.observe(
                state.previous, estimate, state.levels, rotation_step,
                state.effectiveness, state.failed_actuators,
            )

        guidance = self._guidance.compute(estimate, self.target, health)
        safety = self._safety.apply(
            estimate, frame.sonar, self.target, guidance.command, health,
            guidance.demand,
        )
        command = safety.command

        state.levels = state.levels.apply(command)
        if command.rotation is not None:
            state.pending_rotation = command.rotation
        state.previous = estimate
        state.tick += 1

        logger.debug(
            "tick %d: mode=%s override=%s main=%.2f left=%.2f right=%.2f rot=%s",
            state.tick, guidance.mode.name, safety.action.name,
            state.levels.main, state.levels.left, state.levels.right,
            command.rotation,
        )

        return TickReport(
            tick=state.tick,
            estimate=estimate,
            guidance=guidance,
            safety=safety,
            command=command,
            health=health,
            levels=state.levels,
        )

    def tick(self, vehicle: VehicleInterface, state: ControllerState) -> TickReport:
        """Read sensors, run one step and send the command to the vehicle."""
        report = self.step(read_sensors(vehicle), state)
        apply_command(vehicle, report.command)
        return report
