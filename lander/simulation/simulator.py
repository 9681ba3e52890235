"""Step-driven 2D lander simulation.

Provides the plant the flight software is flown against. The simulator
maintains the "truth" state and propagates physics one tick at a time in
response to the actuator levels last commanded through the VehicleInterface.

Architecture:
    Flight code owns the loop and calls:
    - sim.velocity_x(), sim.sonar(), ... -> noisy (maybe corrupted) readings
    - sim.main_thruster(p), sim.rotate(deg), ... -> set actuator levels
    - sim.step() -> propagate physics by one tick

Physics per tick (semi-implicit Euler):
    angle += clip(pending, +-max_step) * rotation effectiveness
    a = sum(thruster effect * power * accel * direction) - g
    v += a * dt
    p += v * dt

Example:
    >>> from lander.simulation import LanderSimulator
    >>>
    >>> sim = LanderSimulator.above_platform(height=300.0, seed=1)
    >>> while sim.flying:
    ...     sim.main_thruster(1.0 if sim.velocity_y() < -5.0 else 0.0)
    ...     sim.step()
    >>> sim.outcome
    <Outcome.LANDED: 2>
"""

import math
from dataclasses import dataclass, field
from enum import Enum, auto

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from flight.interfaces import Target
from lander.environment.terrain import BEAM_COUNT, NO_RETURN, Terrain
from lander.simulation.faults import FaultKind, FaultPlan

# =============================================================================
# Configuration
# =============================================================================


@beartype
@dataclass
class NoiseModel:
    """Standard deviations of sensor noise and actuation spread.

    Attributes:
        position: Position noise
        velocity: Velocity noise
        angle: Tilt noise [deg]
        range_distance: Range-finder noise
        sonar: Sonar noise per beam
        actuation: Half-width of the uniform actuation error (0.05 = +-5%)
        corruption: Noise of a failed sensor
    """
    position: float = 0.05
    velocity: float = 0.1
    angle: float = 0.2
    range_distance: float = 0.5
    sonar: float = 1.0
    actuation: float = 0.05
    corruption: float = 200.0

    @classmethod
    def noiseless(cls) -> "NoiseModel":
        return cls(
            position=0.0, velocity=0.0, angle=0.0, range_distance=0.0,
            sonar=0.0, actuation=0.0,
        )


@beartype
@dataclass
class SimConfig:
    """Simulation configuration.

    Attributes:
        dt: Tick duration [s]
        gravity: Gravitational acceleration
        main_accel: Main thruster acceleration at full power
        left_accel: Left thruster acceleration at full power
        right_accel: Right thruster acceleration at full power
        max_rotation_rate: Attitude actuator cap [rad/tick]
        sonar_period: Ticks between sonar updates
        sonar_range: Sonar maximum range
        range_finder_range: Range-finder maximum range
        landing_speed: Largest vertical speed that is a landing
        landing_tilt: Largest tilt that is a landing [deg]
    """
    dt: float = 0.1
    gravity: float = 8.87
    main_accel: float = 35.0
    left_accel: float = 25.0
    right_accel: float = 25.0
    max_rotation_rate: float = 0.075
    sonar_period: int = 5
    sonar_range: float = 350.0
    range_finder_range: float = 1000.0
    landing_speed: float = 10.0
    landing_tilt: float = 15.0

    def __post_init__(self) -> None:
        """Validate inputs."""
        if self.dt <= 0.0:
            raise ValueError(f"dt must be positive, got {self.dt}")
        if self.sonar_period < 1:
            raise ValueError("sonar_period must be at least 1")

    @property
    def max_rotation_step(self) -> float:
        """Largest rotation per tick [deg]."""
        return math.degrees(self.max_rotation_rate)


# =============================================================================
# State
# =============================================================================


class Outcome(Enum):
    """How a flight ended (or that it has not)."""

    FLYING = auto()
    LANDED = auto()
    CRASHED = auto()


@beartype
@dataclass
class LanderState:
    """Truth state of the lander.

    Attributes:
        x: Horizontal position
        y: Vertical position
        vx: Horizontal velocity
        vy: Vertical velocity (negative when descending)
        angle: Tilt from vertical [deg], clockwise, in [0, 360)
        tick: Ticks elapsed
    """
    x: float
    y: float
    vx: float
    vy: float
    angle: float = 0.0
    tick: int = 0

    def copy(self) -> "LanderState":
        return LanderState(self.x, self.y, self.vx, self.vy, self.angle, self.tick)

    @property
    def tilt(self) -> float:
        """Unsigned tilt from upright [deg], in [0, 180]."""
        return min(self.angle, 360.0 - self.angle)

    @property
    def speed(self) -> float:
        return math.hypot(self.vx, self.vy)


# =============================================================================
# Simulator
# =============================================================================


@beartype
@dataclass
class LanderSimulator:
    """Step-driven lander simulator implementing the VehicleInterface.

    Example:
        >>> sim = LanderSimulator.above_platform(height=300.0, seed=3)
        >>> sim.main_thruster(1.0)
        >>> sim.step()
    """
    terrain: Terrain
    state: LanderState
    config: SimConfig = field(default_factory=SimConfig)
    noise: NoiseModel = field(default_factory=NoiseModel)
    faults: FaultPlan = field(default_factory=FaultPlan)
    seed: int | None = None

    # Internal
    _rng: np.random.Generator = field(init=False, repr=False)
    _levels: dict[FaultKind, float] = field(init=False, repr=False)
    _pending_rotation: float = field(default=0.0, init=False, repr=False)
    _sonar: NDArray[np.float64] = field(init=False, repr=False)
    _outcome: Outcome = field(default=Outcome.FLYING, init=False, repr=False)
    _history: list[LanderState] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self) -> None:
        """Initialize random generator, actuators and the first sonar sweep."""
        self._rng = np.random.default_rng(self.seed)
        self._levels = {
            FaultKind.MAIN_THRUSTER: 0.0,
            FaultKind.LEFT_THRUSTER: 0.0,
            FaultKind.RIGHT_THRUSTER: 0.0,
        }
        self.state.angle = self.state.angle % 360.0
        self._sonar = self._sweep()
        self._history = [self.state.copy()]

    @classmethod
    def above_platform(
        cls,
        height: float = 300.0,
        offset: float = 0.0,
        vx: float = 0.0,
        vy: float = 0.0,
        angle: float = 0.0,
        terrain: Terrain | None = None,
        config: SimConfig | None = None,
        noise: NoiseModel | None = None,
        faults: FaultPlan | None = None,
        seed: int | None = None,
    ) -> "LanderSimulator":
        """Create a simulator with the lander above the platform.

        Args:
            height: Height above the platform surface
            offset: Horizontal offset from the platform centre
            vx: Initial horizontal velocity
            vy: Initial vertical velocity
            angle: Initial tilt [deg]
            terrain: Ground profile (flat with a centred platform if None)
            config: Simulation configuration
            noise: Sensor and actuation noise
            faults: Faults to inject
            seed: Random seed for noise
        """
        terrain = terrain or Terrain.flat()
        state = LanderState(
            x=terrain.platform_x + offset,
            y=terrain.platform_y + height,
            vx=vx,
            vy=vy,
            angle=angle,
        )
        return cls(
            terrain=terrain,
            state=state,
            config=config or SimConfig(),
            noise=noise or NoiseModel(),
            faults=faults or FaultPlan(),
            seed=seed,
        )

    # -------------------------------------------------------------------------
    # Sensors
    # -------------------------------------------------------------------------

    def _read(self, kind: FaultKind, truth: float, sigma: float) -> float:
        if self.faults.corrupted(kind, self.state.tick):
            sigma = self.noise.corruption
        return float(truth + self._rng.normal(0.0, sigma)) if sigma > 0.0 else truth

    def velocity_x(self) -> float:
        return self._read(FaultKind.VELOCITY_X, self.state.vx, self.noise.velocity)

    def velocity_y(self) -> float:
        return self._read(FaultKind.VELOCITY_Y, self.state.vy, self.noise.velocity)

    def position_x(self) -> float:
        return self._read(FaultKind.POSITION_X, self.state.x, self.noise.position)

    def position_y(self) -> float:
        return self._read(FaultKind.POSITION_Y, self.state.y, self.noise.position)

    def angle(self) -> float:
        return self._read(FaultKind.ANGLE, self.state.angle, self.noise.angle) % 360.0

    def range_distance(self) -> float:
        """Distance to ground along the main thruster axis (body down)."""
        truth = self.terrain.range_along(
            self.state.x, self.state.y, self.state.angle + 180.0,
            self.config.range_finder_range,
        )
        return self._read(FaultKind.RANGE, truth, self.noise.range_distance)

    def sonar(self) -> NDArray[np.float64]:
        """Last sonar sweep; refreshed every sonar_period ticks."""
        if self.faults.corrupted(FaultKind.SONAR, self.state.tick):
            return np.full(BEAM_COUNT, NO_RETURN)
        return self._sonar.copy()

    def _sweep(self) -> NDArray[np.float64]:
        sweep = self.terrain.cast_beams(self.state.x, self.state.y, self.config.sonar_range)
        if self.noise.sonar > 0.0:
            valid = sweep != NO_RETURN
            sweep[valid] = np.maximum(
                sweep[valid] + self._rng.normal(0.0, self.noise.sonar, valid.sum()), 0.0
            )
        return sweep

    # -------------------------------------------------------------------------
    # Actuators
    # -------------------------------------------------------------------------

    def _set_level(self, kind: FaultKind, power: float) -> None:
        if not 0.0 <= power <= 1.0:
            raise ValueError(f"Thruster power must be in [0, 1], got {power}")
        self._levels[kind] = power

    def main_thruster(self, power: float) -> None:
        self._set_level(FaultKind.MAIN_THRUSTER, power)

    def left_thruster(self, power: float) -> None:
        self._set_level(FaultKind.LEFT_THRUSTER, power)

    def right_thruster(self, power: float) -> None:
        self._set_level(FaultKind.RIGHT_THRUSTER, power)

    def rotate(self, degrees: float) -> None:
        """Request a relative rotation; replaces any rotation still pending."""
        self._pending_rotation = degrees

    # -------------------------------------------------------------------------
    # Propagation
    # -------------------------------------------------------------------------

    def _effect(self, kind: FaultKind) -> float:
        """Effectiveness times actuation noise for this tick."""
        spread = self.noise.actuation
        jitter = self._rng.uniform(1.0 - spread, 1.0 + spread) if spread > 0.0 else 1.0
        return self.faults.effectiveness(kind, self.state.tick) * jitter

    def thrust_acceleration(self, noisy: bool = False) -> NDArray[np.float64]:
        """World-frame thrust acceleration at the current levels and attitude.

        Includes injected actuator degradation. With noisy=True each thruster
        also gets this tick's actuation error.
        """
        cfg = self.config
        theta = math.radians(self.state.angle)
        up = np.array([math.sin(theta), math.cos(theta)])
        body_x = np.array([math.cos(theta), -math.sin(theta)])

        def effect(kind: FaultKind) -> float:
            if noisy:
                return self._effect(kind)
            return self.faults.effectiveness(kind, self.state.tick)

        main = self._levels[FaultKind.MAIN_THRUSTER] * cfg.main_accel
        left = self._levels[FaultKind.LEFT_THRUSTER] * cfg.left_accel
        right = self._levels[FaultKind.RIGHT_THRUSTER] * cfg.right_accel
        return (
            main * effect(FaultKind.MAIN_THRUSTER) * up
            + left * effect(FaultKind.LEFT_THRUSTER) * body_x
            - right * effect(FaultKind.RIGHT_THRUSTER) * body_x
        )

    def step(self) -> LanderState:
        """Propagate physics by one tick.

        Returns:
            New truth state
        """
        if self._outcome is not Outcome.FLYING:
            return self.state

        cfg = self.config
        s = self.state

        # Attitude
        max_step = cfg.max_rotation_step
        executed = float(np.clip(self._pending_rotation, -max_step, max_step))
        self._pending_rotation -= executed
        s.angle = (s.angle + executed * self._effect(FaultKind.ROTATION)) % 360.0

        # Translation
        accel = self.thrust_acceleration(noisy=True) + np.array([0.0, -cfg.gravity])

        s.vx += float(accel[0]) * cfg.dt
        s.vy += float(accel[1]) * cfg.dt
        s.x += s.vx * cfg.dt
        s.y += s.vy * cfg.dt
        s.tick += 1

        ground = self.terrain.height_at(s.x)
        if s.y <= ground:
            s.y = ground
            self._outcome = self._classify_touchdown()

        if s.tick % cfg.sonar_period == 0:
            self._sonar = self._sweep()

        self._history.append(s.copy())
        return s

    def _classify_touchdown(self) -> Outcome:
        s = self.state
        if (
            self.terrain.on_platform(s.x)
            and abs(s.vy) < self.config.landing_speed
            and s.tilt < self.config.landing_tilt
        ):
            return Outcome.LANDED
        return Outcome.CRASHED

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def outcome(self) -> Outcome:
        return self._outcome

    @property
    def flying(self) -> bool:
        return self._outcome is Outcome.FLYING

    @property
    def target(self) -> Target:
        """Platform location as the flight software knows it."""
        return Target(x=self.terrain.platform_x, y=self.terrain.platform_y)

    @property
    def levels(self) -> tuple[float, float, float]:
        """Commanded (main, left, right) powers."""
        return (
            self._levels[FaultKind.MAIN_THRUSTER],
            self._levels[FaultKind.LEFT_THRUSTER],
            self._levels[FaultKind.RIGHT_THRUSTER],
        )

    @property
    def pending_rotation(self) -> float:
        return self._pending_rotation

    def get_state(self) -> LanderState:
        """Current truth state. Returns a copy."""
        return self.state.copy()

    def get_history(self) -> list[LanderState]:
        return self._history.copy()


# =============================================================================
# Results and Analysis
# =============================================================================


@beartype
@dataclass
class SimulationResult:
    """Truth trajectory of a completed flight."""
    states: list[LanderState]
    outcome: Outcome
    dt: float = 0.1

    @property
    def time(self) -> NDArray[np.float64]:
        return np.array([s.tick * self.dt for s in self.states])

    @property
    def position(self) -> NDArray[np.float64]:
        """Position history, shape (N, 2)."""
        return np.array([[s.x, s.y] for s in self.states])

    @property
    def velocity(self) -> NDArray[np.float64]:
        """Velocity history, shape (N, 2)."""
        return np.array([[s.vx, s.vy] for s in self.states])

    @property
    def angle(self) -> NDArray[np.float64]:
        return np.array([s.angle for s in self.states])

    @property
    def touchdown(self) -> LanderState:
        return self.states[-1]

    @classmethod
    def from_simulator(cls, sim: LanderSimulator) -> "SimulationResult":
        """Create result from simulator history."""
        return cls(states=sim.get_history(), outcome=sim.outcome, dt=sim.config.dt)

    def to_dataframe(self):
        """Convert to Polars DataFrame."""
        import polars as pl

        return pl.DataFrame({
            "tick": [s.tick for s in self.states],
            "time": self.time,
            "x": self.position[:, 0],
            "y": self.position[:, 1],
            "vx": self.velocity[:, 0],
            "vy": self.velocity[:, 1],
            "angle": self.angle,
        })
