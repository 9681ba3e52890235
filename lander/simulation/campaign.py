"""Monte Carlo fault campaigns.

Flies many landings, each with its own random fault plan and noise seed, and
collects outcomes for analysis.

Example:
    >>> from lander.simulation.campaign import FaultCampaign
    >>> from lander.simulation.faults import CampaignMode
    >>>
    >>> campaign = FaultCampaign(mode=CampaignMode.CONTROLS_ONLY, seed=42)
    >>> results = campaign.run(n_flights=100, progress=True)
    >>> print(f"Landed: {results.success_rate:.0%}")
    >>> df = results.to_dataframe()
"""

from dataclasses import dataclass, field
from typing import Any

import numpy as np
from beartype import beartype
from tqdm import tqdm

from flight.computer import FlightComputer
from flight.config import FlightConfig
from flight.interfaces import Actuator, Channel
from lander.environment.terrain import Terrain
from lander.simulation.faults import CampaignMode, FaultPlan
from lander.simulation.mission import run_mission
from lander.simulation.simulator import LanderSimulator, NoiseModel, Outcome, SimConfig

# =============================================================================
# Results
# =============================================================================


@beartype
@dataclass
class CampaignResults:
    """Per-flight outcomes of a campaign."""
    rows: list[dict[str, Any]] = field(default_factory=list)

    @property
    def n_flights(self) -> int:
        return len(self.rows)

    @property
    def success_rate(self) -> float:
        if not self.rows:
            return 0.0
        return sum(r["outcome"] == Outcome.LANDED.name for r in self.rows) / len(self.rows)

    def to_dataframe(self):
        """Convert to Polars DataFrame."""
        import polars as pl

        return pl.DataFrame(self.rows, infer_schema_length=None)


# =============================================================================
# Campaign
# =============================================================================


@beartype
@dataclass
class FaultCampaign:
    """Random-fault landing campaign.

    Attributes:
        mode: Which components random plans may break
        seed: Seed for fault plans, start states and sensor noise
        height_range: Start height above the platform (low, high)
        offset_range: Start horizontal offset from the platform (low, high)
        probability: Per-component failure probability
        max_ticks: Tick limit per flight
        flight_config: Flight software configuration
        sim_config: Simulation configuration
        noise: Sensor and actuation noise
        terrain: Ground profile
    """
    mode: CampaignMode = CampaignMode.CONTROLS_AND_SENSORS
    seed: int | None = None
    height_range: tuple[float, float] = (250.0, 400.0)
    offset_range: tuple[float, float] = (-200.0, 200.0)
    probability: float = 0.3
    max_ticks: int = 3000
    flight_config: FlightConfig = field(default_factory=FlightConfig)
    sim_config: SimConfig = field(default_factory=SimConfig)
    noise: NoiseModel = field(default_factory=NoiseModel)
    terrain: Terrain = field(default_factory=Terrain.flat)

    def __post_init__(self) -> None:
        """Validate inputs."""
        if not 0.0 <= self.probability <= 1.0:
            raise ValueError("probability must be in [0, 1]")
        if self.height_range[0] > self.height_range[1]:
            raise ValueError("height_range must be (low, high)")
        if self.offset_range[0] > self.offset_range[1]:
            raise ValueError("offset_range must be (low, high)")

    def fly(self, rng: np.random.Generator) -> dict[str, Any]:
        """Fly one randomised landing and summarise it."""
        plan = FaultPlan.random(rng, self.mode, self.probability)
        sim = LanderSimulator.above_platform(
            height=float(rng.uniform(*self.height_range)),
            offset=float(rng.uniform(*self.offset_range)),
            terrain=self.terrain,
            config=self.sim_config,
            noise=self.noise,
            faults=plan,
            seed=int(rng.integers(0, 2**31)),
        )
        computer = FlightComputer(target=sim.target, config=self.flight_config)
        result = run_mission(sim, computer, self.max_ticks)

        end = result.trajectory.touchdown
        telemetry = result.telemetry
        latched = sorted(c.name for c in Channel if telemetry.first_latch(c) is not None)
        inferred = sorted(a.name for a in Actuator if telemetry.first_inference(a) is not None)
        return {
            "outcome": result.outcome.name,
            "ticks": result.ticks,
            "faults": plan.describe(),
            "latched": ",".join(latched),
            "inferred": ",".join(inferred),
            "touchdown_x": end.x,
            "touchdown_vy": end.vy,
            "touchdown_tilt": end.tilt,
        }

    def run(self, n_flights: int = 100, progress: bool = False) -> CampaignResults:
        """Run the campaign.

        Args:
            n_flights: Number of landings
            progress: If True, show a progress bar

        Returns:
            CampaignResults with one row per flight
        """
        rng = np.random.default_rng(self.seed)
        results = CampaignResults()

        iterator: Any = range(n_flights)
        if progress:
            iterator = tqdm(range(n_flights), desc="Flying")

        for _ in iterator:
            results.rows.append(self.fly(rng))

        return results
