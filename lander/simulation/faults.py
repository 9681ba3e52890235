"""Fault injection for the lander simulator.

A fault is a tagged descriptor: what breaks, when it breaks, and how badly.
Sensor faults make a reading return garbage (truth plus large noise) or, for
the sonar, no returns at all. Actuator faults scale the physical effect of a
command down by the severity, without the flight software being told.

Example:
    >>> plan = FaultPlan((Fault(FaultKind.VELOCITY_X, onset_tick=30),))
    >>> plan.corrupted(FaultKind.VELOCITY_X, tick=40)
    True
    >>>
    >>> rng = np.random.default_rng(7)
    >>> plan = FaultPlan.random(rng, CampaignMode.CONTROLS_AND_SENSORS)
"""

from dataclasses import dataclass
from enum import Enum, auto

import numpy as np
from beartype import beartype

# =============================================================================
# Fault Descriptors
# =============================================================================


class FaultKind(Enum):
    """Components that can fail."""

    MAIN_THRUSTER = auto()
    LEFT_THRUSTER = auto()
    RIGHT_THRUSTER = auto()
    ROTATION = auto()
    VELOCITY_X = auto()
    VELOCITY_Y = auto()
    POSITION_X = auto()
    POSITION_Y = auto()
    ANGLE = auto()
    RANGE = auto()
    SONAR = auto()

    @property
    def is_actuator(self) -> bool:
        return self in ACTUATOR_FAULTS

    @property
    def is_sensor(self) -> bool:
        return not self.is_actuator


ACTUATOR_FAULTS: frozenset[FaultKind] = frozenset({
    FaultKind.MAIN_THRUSTER,
    FaultKind.LEFT_THRUSTER,
    FaultKind.RIGHT_THRUSTER,
    FaultKind.ROTATION,
})


class CampaignMode(Enum):
    """Which components random plans may break."""

    NOMINAL = auto()
    CONTROLS_ONLY = auto()
    CONTROLS_AND_SENSORS = auto()


@beartype
@dataclass(frozen=True)
class Fault:
    """One injected fault.

    Attributes:
        kind: Component that fails
        onset_tick: First tick on which the fault is active
        severity: Fraction of actuator effect lost (1 = dead). Sensor faults
            are all-or-nothing and ignore severity.
    """
    kind: FaultKind
    onset_tick: int = 0
    severity: float = 1.0

    def __post_init__(self) -> None:
        """Validate inputs."""
        if self.onset_tick < 0:
            raise ValueError(f"onset_tick must be non-negative, got {self.onset_tick}")
        if not 0.0 <= self.severity <= 1.0:
            raise ValueError(f"severity must be in [0, 1], got {self.severity}")

    def active(self, tick: int) -> bool:
        return tick >= self.onset_tick


# =============================================================================
# Fault Plan
# =============================================================================


@beartype
@dataclass(frozen=True)
class FaultPlan:
    """The set of faults injected over one flight."""
    faults: tuple[Fault, ...] = ()

    def __post_init__(self) -> None:
        """One fault per component."""
        kinds = [f.kind for f in self.faults]
        if len(kinds) != len(set(kinds)):
            raise ValueError("FaultPlan may hold at most one fault per component")

    def get(self, kind: FaultKind) -> Fault | None:
        for fault in self.faults:
            if fault.kind is kind:
                return fault
        return None

    def corrupted(self, kind: FaultKind, tick: int) -> bool:
        """True when a sensor is returning garbage on this tick."""
        fault = self.get(kind)
        return fault is not None and fault.active(tick)

    def effectiveness(self, kind: FaultKind, tick: int) -> float:
        """Fraction of commanded effect an actuator delivers on this tick."""
        fault = self.get(kind)
        if fault is None or not fault.active(tick):
            return 1.0
        return 1.0 - fault.severity

    def describe(self) -> str:
        if not self.faults:
            return "none"
        return ", ".join(
            f"{f.kind.name}@{f.onset_tick}"
            + (f"({f.severity:.2f})" if f.kind.is_actuator else "")
            for f in self.faults
        )

    @classmethod
    def random(
        cls,
        rng: np.random.Generator,
        mode: CampaignMode,
        probability: float = 0.3,
        max_onset: int = 300,
        min_severity: float = 0.7,
    ) -> "FaultPlan":
        """Draw a random plan for a campaign mode.

        Each eligible component fails independently with the given
        probability, at a uniform onset tick and severity.

        Args:
            rng: Random generator
            mode: Which components may fail
            probability: Per-component failure probability
            max_onset: Latest onset tick (exclusive)
            min_severity: Smallest actuator severity drawn

        Returns:
            FaultPlan for one flight
        """
        if mode is CampaignMode.NOMINAL:
            return cls()
        if mode is CampaignMode.CONTROLS_ONLY:
            eligible = [k for k in FaultKind if k.is_actuator]
        else:
            eligible = list(FaultKind)

        faults = []
        for kind in eligible:
            if rng.random() < probability:
                faults.append(Fault(
                    kind=kind,
                    onset_tick=int(rng.integers(0, max_onset)),
                    severity=float(rng.uniform(min_severity, 1.0)),
                ))
        return cls(tuple(faults))
