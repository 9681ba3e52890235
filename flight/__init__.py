"""Flight software package - fault-tolerant descent GNC for a planar lander.

This package contains the navigation, guidance and control algorithms that
would run on the flight computer. They are developed and tested against the
simulation infrastructure in lander/.

Architecture:
    The simulation (lander/) provides the "plant": truth dynamics, noisy
    sensors, noisy actuators and injected faults. Flight software (flight/)
    only sees the VehicleInterface and never the plant's health flags.

    Control loop:
        frame = read_sensors(vehicle)     # Noisy, possibly corrupted
        report = computer.step(frame, state)
        apply_command(vehicle, report.command)
        vehicle.step()                    # Plant advances one tick

Subpackages:
    navigation: Sensor fusion, failure latching, fused estimates
    guidance: Descent guidance
    control: Allocation, actuator health and the safety override

Example:
    >>> from flight import FlightComputer, Target
    >>> from lander.simulation import LanderSimulator
    >>>
    >>> sim = LanderSimulator.above_platform(height=300.0)
    >>> computer = FlightComputer(target=sim.target)
    >>> state = computer.start(sim)
    >>>
    >>> while sim.flying:
    ...     computer.tick(sim, state)
    ...     sim.step()
"""

from flight.computer import ControllerState, FlightComputer, TickReport
from flight.config import FlightConfig, load_flight_config, save_flight_config
from flight.interfaces import (
    Actuator,
    ActuatorCommand,
    Channel,
    SensorFrame,
    Target,
    VehicleInterface,
)
from flight.telemetry import FlightRecorder

__all__ = [
    "Actuator",
    "ActuatorCommand",
    "Channel",
    "ControllerState",
    "FlightComputer",
    "FlightConfig",
    "FlightRecorder",
    "SensorFrame",
    "Target",
    "TickReport",
    "VehicleInterface",
    "load_flight_config",
    "save_flight_config",
]
