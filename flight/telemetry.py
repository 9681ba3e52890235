"""Per-tick telemetry recording.

Example:
    >>> recorder = FlightRecorder()
    >>> recorder.record(computer.tick(vehicle, state))
    >>> df = recorder.to_dataframe()
"""

from dataclasses import dataclass, field
from typing import Any

from flight.computer import TickReport
from flight.interfaces import Actuator, Channel


@dataclass
class FlightRecorder:
    """Collects one row per TickReport."""
    rows: list[dict[str, Any]] = field(default_factory=list)

    def record(self, report: TickReport) -> None:
        est = report.estimate
        self.rows.append({
            "tick": report.tick,
            "x": est.position_x,
            "y": est.position_y,
            "vx": est.velocity_x,
            "vy": est.velocity_y,
            "angle": est.angle,
            "range": est.range_distance,
            "mode": int(report.guidance.mode),
            "override": int(report.safety.action),
            "vx_limit": report.guidance.vx_limit,
            "vy_limit": report.guidance.vy_limit,
            "attitude": report.guidance.attitude,
            "main": report.levels.main,
            "left": report.levels.left,
            "right": report.levels.right,
            "rotation": report.command.rotation,
            "failed_channels": ",".join(sorted(c.name for c in est.failed)),
            "failed_actuators": ",".join(sorted(a.name for a in report.health.failed)),
        })

    def __len__(self) -> int:
        return len(self.rows)

    def first_latch(self, channel: Channel) -> int | None:
        """Tick on which a sensor channel was first reported failed."""
        for row in self.rows:
            if channel.name in row["failed_channels"].split(","):
                return row["tick"]
        return None

    def first_inference(self, actuator: Actuator) -> int | None:
        """Tick on which an actuator was first inferred failed."""
        for row in self.rows:
            if actuator.name in row["failed_actuators"].split(","):
                return row["tick"]
        return None

    def to_dataframe(self):
        """Convert to Polars DataFrame."""
        import polars as pl

        return pl.DataFrame(self.rows, infer_schema_length=None)
