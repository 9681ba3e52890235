"""Flight software configuration.

All tuning lives in small dataclasses with defaults that fly the reference
lander. FlightConfig aggregates them and can be persisted as JSON.

Example:
    >>> from flight.config import FlightConfig, save_flight_config
    >>>
    >>> config = FlightConfig()
    >>> config.detector.delta
    0.25
    >>> save_flight_config(config, "flight.json")
"""

import json
import math
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from beartype import beartype

from flight.interfaces import Channel, ThrusterLevels

# =============================================================================
# Sensor Fusion
# =============================================================================


def _default_noise_floor() -> dict[Channel, float]:
    return {
        Channel.VELOCITY_X: 4.0,
        Channel.VELOCITY_Y: 4.0,
        Channel.POSITION_X: 10.0,
        Channel.POSITION_Y: 10.0,
        Channel.ANGLE: 60.0,
        Channel.RANGE: 40.0,
    }


@beartype
@dataclass
class DetectorConfig:
    """Noise reduction and failure detection tuning.

    Attributes:
        delta: Relative divergence band half-width (fused vs history average)
        raw_weight: Weight of the raw reading against the history average
        noise_floor: Per-channel minimum scale for the divergence test
        thrust_margin: Multiplier on the commanded thrust allowance
    """
    delta: float = 0.25
    raw_weight: float = 3.0
    noise_floor: dict[Channel, float] = field(default_factory=_default_noise_floor)
    thrust_margin: float = 1.5

    def __post_init__(self) -> None:
        """Validate inputs."""
        if not 0.0 < self.delta < 1.0:
            raise ValueError(f"delta must be in (0, 1), got {self.delta}")
        if self.raw_weight < 0.0:
            raise ValueError("raw_weight must be non-negative")
        if self.thrust_margin < 1.0:
            raise ValueError(f"thrust_margin must be at least 1, got {self.thrust_margin}")
        missing = set(Channel) - set(self.noise_floor)
        if missing:
            names = sorted(c.name for c in missing)
            raise ValueError(f"noise_floor missing channels: {names}")

    def threshold(self, channel: Channel, average: float) -> float:
        """Largest fused-vs-average deviation still considered healthy."""
        floor = self.noise_floor[channel]
        if channel.circular:
            return self.delta * floor
        return self.delta * max(abs(average), floor)


# =============================================================================
# Vehicle Model
# =============================================================================


@beartype
@dataclass
class VehicleConfig:
    """Nominal vehicle constants known to the flight computer.

    These are design values, not truth: the actual vehicle may be degraded.

    Attributes:
        dt: Tick duration [s]
        gravity: Gravitational acceleration
        main_accel: Main thruster acceleration at full power
        left_accel: Left thruster acceleration at full power
        right_accel: Right thruster acceleration at full power
        max_rotation_rate: Attitude actuator cap [rad/tick]
    """
    dt: float = 0.1
    gravity: float = 8.87
    main_accel: float = 35.0
    left_accel: float = 25.0
    right_accel: float = 25.0
    max_rotation_rate: float = 0.075

    def __post_init__(self) -> None:
        """Validate inputs."""
        if self.dt <= 0.0:
            raise ValueError(f"dt must be positive, got {self.dt}")
        if self.max_rotation_rate <= 0.0:
            raise ValueError("max_rotation_rate must be positive")

    @property
    def max_rotation_step(self) -> float:
        """Largest rotation per tick [deg]."""
        return math.degrees(self.max_rotation_rate)

    def thrust_step(self, levels: ThrusterLevels) -> float:
        """Largest velocity change the thrusters can add in one tick."""
        side = levels.left * self.left_accel + levels.right * self.right_accel
        return math.hypot(levels.main * self.main_accel, side) * self.dt


# =============================================================================
# Guidance
# =============================================================================


@beartype
@dataclass
class GuidanceConfig:
    """Primary descent guidance tuning.

    Bands are (distance_above, limit) pairs checked in order; the first band
    whose distance is exceeded wins, otherwise the final limit applies.

    Attributes:
        alignment_tolerance: Angle considered aligned with the setpoint [deg]
        horizontal_bands: Horizontal distance bands -> speed limit
        horizontal_final: Speed limit near the target
        vertical_bands: Height bands -> descent-rate limit (negative)
        vertical_final: Descent-rate limit near the target
        lead_ratio: Suspend descent while horizontal time-to-go exceeds
            lead_ratio times the vertical time-to-go
        station_radius: Horizontal distance treated as over the target
        station_speed: Drift tolerated while over the target
        tilt_angle: Tilt used to borrow the main thruster for lateral thrust [deg]
        tilt_min_height: Lowest height at which tilting is allowed
        flare_height: Height below which the vehicle stays upright even with
            a failed main thruster
    """
    alignment_tolerance: float = 1.0
    horizontal_bands: tuple[tuple[float, float], ...] = ((200.0, 25.0), (100.0, 15.0))
    horizontal_final: float = 5.0
    vertical_bands: tuple[tuple[float, float], ...] = ((200.0, -20.0), (100.0, -10.0))
    vertical_final: float = -4.0
    lead_ratio: float = 1.25
    station_radius: float = 2.0
    station_speed: float = 0.5
    tilt_angle: float = 20.0
    tilt_min_height: float = 60.0
    flare_height: float = 15.0

    def __post_init__(self) -> None:
        """Validate band tables."""
        for name, bands in (("horizontal", self.horizontal_bands),
                            ("vertical", self.vertical_bands)):
            distances = [d for d, _ in bands]
            if distances != sorted(distances, reverse=True):
                raise ValueError(f"{name} bands must be ordered by decreasing distance")
        if self.horizontal_final <= 0.0:
            raise ValueError("horizontal_final must be positive")
        if any(limit <= 0.0 for _, limit in self.horizontal_bands):
            raise ValueError("horizontal limits must be positive")
        if any(limit > 0.0 for _, limit in self.vertical_bands) or self.vertical_final > 0.0:
            raise ValueError("vertical limits must be descent rates (<= 0)")
        if not 0.0 < self.tilt_angle < 90.0:
            raise ValueError("tilt_angle must be in (0, 90)")


# =============================================================================
# Safety Override
# =============================================================================


@beartype
@dataclass
class SafetyConfig:
    """Collision-avoidance override tuning.

    Attributes:
        min_clearance: Smallest distance limit
        platform_radius: Half-width of the box around the target where the
            override stands down
        reference_speed: Horizontal speed at which braking urgency is full
        min_urgency: Urgency floor at low horizontal speed
        ascent_threshold: Vertical speed above which the scan looks upward
        controlled_ascent: Vertical speed above which main thrust is cut
    """
    min_clearance: float = 75.0
    platform_radius: float = 150.0
    reference_speed: float = 5.0
    min_urgency: float = 0.25
    ascent_threshold: float = 5.0
    controlled_ascent: float = 2.0

    def __post_init__(self) -> None:
        """Validate inputs."""
        if self.reference_speed <= 0.0:
            raise ValueError("reference_speed must be positive")
        if not 0.0 < self.min_urgency <= 1.0:
            raise ValueError("min_urgency must be in (0, 1]")


# =============================================================================
# Actuator Health
# =============================================================================


@beartype
@dataclass
class HealthConfig:
    """Actuator-health inference tuning.

    Attributes:
        window: Effectiveness samples kept per actuator
        min_samples: Samples needed before a verdict
        threshold: Median effectiveness below which an actuator is failed
        min_power: Smallest thruster power that is assessed
        min_rotation: Smallest expected rotation step that is assessed [deg]
    """
    window: int = 10
    min_samples: int = 5
    threshold: float = 0.4
    min_power: float = 0.25
    min_rotation: float = 2.0

    def __post_init__(self) -> None:
        """Validate inputs."""
        if self.min_samples > self.window:
            raise ValueError("min_samples cannot exceed window")
        if self.min_samples < 1:
            raise ValueError("min_samples must be at least 1")


# =============================================================================
# Aggregate
# =============================================================================


@beartype
@dataclass
class FlightConfig:
    """Complete flight software configuration."""
    detector: DetectorConfig = field(default_factory=DetectorConfig)
    vehicle: VehicleConfig = field(default_factory=VehicleConfig)
    guidance: GuidanceConfig = field(default_factory=GuidanceConfig)
    safety: SafetyConfig = field(default_factory=SafetyConfig)
    health: HealthConfig = field(default_factory=HealthConfig)

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible representation."""
        data = asdict(self)
        data["detector"]["noise_floor"] = {
            channel.name: value for channel, value in self.detector.noise_floor.items()
        }
        for key in ("horizontal_bands", "vertical_bands"):
            data["guidance"][key] = [list(band) for band in data["guidance"][key]]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FlightConfig":
        """Build from a (possibly partial) dictionary."""
        detector = dict(data.get("detector", {}))
        if "noise_floor" in detector:
            floors = _default_noise_floor()
            floors.update({
                Channel[name]: float(value)
                for name, value in detector["noise_floor"].items()
            })
            detector["noise_floor"] = floors
        guidance = dict(data.get("guidance", {}))
        for key in ("horizontal_bands", "vertical_bands"):
            if key in guidance:
                guidance[key] = tuple(
                    (float(d), float(v)) for d, v in guidance[key]
                )
        return cls(
            detector=DetectorConfig(**detector),
            vehicle=VehicleConfig(**data.get("vehicle", {})),
            guidance=GuidanceConfig(**guidance),
            safety=SafetyConfig(**data.get("safety", {})),
            health=HealthConfig(**data.get("health", {})),
        )


def load_flight_config(path: str | Path) -> FlightConfig:
    """Load a FlightConfig from a JSON file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Flight config not found at {path}")
    with open(path) as f:
        return FlightConfig.from_dict(json.load(f))


def save_flight_config(config: FlightConfig, path: str | Path) -> Path:
    """Write a FlightConfig to a JSON file and return the path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(config.to_dict(), f, indent=2)
    return path
