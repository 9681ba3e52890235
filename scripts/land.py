#!/usr/bin/env python
"""Example: Fault-tolerant landing with the flight computer in the loop.

This script demonstrates the separation between:
- Simulation infrastructure (lander/) - the "plant" / truth model
- Flight software (flight/) - navigation, guidance and control

The loop follows real flight software patterns:
1. Read sensors (noisy, possibly corrupted)
2. Fuse, detect failures, run guidance and the safety override
3. Send actuator commands
4. Step simulation (actuators move the vehicle)

Usage:
    uv run python scripts/land.py
"""

import logging

from flight import FlightComputer, FlightRecorder
from lander.simulation import Fault, FaultKind, FaultPlan, LanderSimulator, SimulationResult


def run_landing():
    """Fly one descent with a sensor fault and an actuator fault."""
    print("=" * 60)
    print("FAULT-TOLERANT LANDING")
    print("=" * 60)

    # =========================================================================
    # Mission Setup
    # =========================================================================
    START_HEIGHT = 300.0    # Above the platform
    START_OFFSET = 180.0    # Right of the platform
    SEED = 7
    MAX_TICKS = 3000

    faults = FaultPlan((
        Fault(FaultKind.VELOCITY_X, onset_tick=30),
        Fault(FaultKind.RIGHT_THRUSTER, onset_tick=60, severity=1.0),
    ))

    print("\nMission Parameters:")
    print(f"  Start: {START_OFFSET:+.0f} horizontal, {START_HEIGHT:.0f} above platform")
    print(f"  Injected faults: {faults.describe()}")

    # =========================================================================
    # Initialize Simulation (the "plant") and Flight Software
    # =========================================================================
    sim = LanderSimulator.above_platform(
        height=START_HEIGHT,
        offset=START_OFFSET,
        faults=faults,
        seed=SEED,
    )
    computer = FlightComputer(target=sim.target)
    state = computer.start(sim)
    recorder = FlightRecorder()

    # =========================================================================
    # Simulation Loop
    # =========================================================================
    print("\nRunning simulation...")
    print("-" * 60)

    while sim.flying and state.tick < MAX_TICKS:
        report = computer.tick(sim, state)
        recorder.record(report)
        sim.step()

        if state.tick % 50 == 0:
            truth = sim.get_state()
            print(
                f"  tick {state.tick:4d}: x={truth.x:7.1f} y={truth.y:6.1f} "
                f"vx={truth.vx:6.2f} vy={truth.vy:6.2f} angle={truth.angle:5.1f} "
                f"mode={report.guidance.mode!s}"
            )

    # =========================================================================
    # Results
    # =========================================================================
    result = SimulationResult.from_simulator(sim)
    end = result.touchdown
    print("-" * 60)
    print(f"\nOutcome: {result.outcome.name} after {state.tick} ticks")
    print(f"  Touchdown x: {end.x:.1f} (platform at {sim.target.x:.1f})")
    print(f"  Touchdown vy: {end.vy:.2f}")
    print(f"  Touchdown tilt: {end.tilt:.1f}°")
    print(f"  Latched sensors: {sorted(c.name for c in state.failed_channels) or 'none'}")
    print(f"  Inferred actuators: {sorted(a.name for a in state.failed_actuators) or 'none'}")

    df = recorder.to_dataframe()
    print(f"\nTelemetry: {df.height} rows x {df.width} columns")

    return result


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    run_landing()
