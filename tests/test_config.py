"""Unit tests for flight software configuration and persistence."""

import json

import numpy as np
import pytest

from flight.config import (
    DetectorConfig,
    FlightConfig,
    GuidanceConfig,
    HealthConfig,
    SafetyConfig,
    VehicleConfig,
    load_flight_config,
    save_flight_config,
)
from flight.interfaces import ActuatorCommand, Channel, SensorFrame, ThrusterLevels

# =============================================================================
# Defaults and Validation
# =============================================================================


class TestDefaults:
    """Test reference tuning."""

    def test_detector(self):
        config = DetectorConfig()
        assert config.delta == 0.25
        assert config.raw_weight == 3.0
        assert set(config.noise_floor) == set(Channel)

    def test_vehicle(self):
        config = VehicleConfig()
        assert config.dt == 0.1
        assert config.max_rotation_step == pytest.approx(np.degrees(0.075))

    def test_thrust_step(self):
        config = VehicleConfig()
        assert config.thrust_step(ThrusterLevels()) == 0.0
        assert config.thrust_step(ThrusterLevels(main=1.0)) == pytest.approx(3.5)
        # Opposing side thrusters still bound the change if one has failed
        assert config.thrust_step(ThrusterLevels(left=1.0, right=1.0)) == pytest.approx(5.0)

    def test_health(self):
        config = HealthConfig()
        assert config.window == 10
        assert config.min_samples == 5
        assert config.threshold == 0.4


class TestValidation:
    """Invalid tuning is rejected at construction."""

    def test_delta_range(self):
        with pytest.raises(ValueError, match="delta"):
            DetectorConfig(delta=1.5)

    def test_noise_floor_complete(self):
        with pytest.raises(ValueError, match="noise_floor"):
            DetectorConfig(noise_floor={Channel.VELOCITY_X: 30.0})

    def test_thrust_margin(self):
        with pytest.raises(ValueError, match="thrust_margin"):
            DetectorConfig(thrust_margin=0.5)

    def test_vehicle_dt(self):
        with pytest.raises(ValueError, match="dt"):
            VehicleConfig(dt=0.0)

    def test_band_order(self):
        with pytest.raises(ValueError, match="bands"):
            GuidanceConfig(horizontal_bands=((100.0, 15.0), (200.0, 25.0)))

    def test_vertical_limits_are_descent_rates(self):
        with pytest.raises(ValueError, match="vertical"):
            GuidanceConfig(vertical_final=4.0)

    def test_tilt_angle(self):
        with pytest.raises(ValueError, match="tilt_angle"):
            GuidanceConfig(tilt_angle=90.0)

    def test_reference_speed(self):
        with pytest.raises(ValueError, match="reference_speed"):
            SafetyConfig(reference_speed=0.0)

    def test_min_samples(self):
        with pytest.raises(ValueError, match="min_samples"):
            HealthConfig(window=4, min_samples=5)

    def test_command_power(self):
        with pytest.raises(ValueError, match="main"):
            ActuatorCommand(main=1.5)

    def test_sonar_shape(self):
        with pytest.raises(ValueError, match="Sonar"):
            SensorFrame(0.0, 0.0, 0.0, 0.0, 0.0, 0.0, sonar=np.zeros(10))


# =============================================================================
# Persistence
# =============================================================================


class TestPersistence:
    """Test dict and JSON round trips."""

    def test_dict_round_trip(self):
        config = FlightConfig()
        config.detector.noise_floor[Channel.RANGE] = 80.0
        config.guidance.tilt_angle = 25.0
        assert FlightConfig.from_dict(config.to_dict()) == config

    def test_dict_is_json_compatible(self):
        data = FlightConfig().to_dict()
        assert json.loads(json.dumps(data)) == data
        assert data["detector"]["noise_floor"]["VELOCITY_X"] == 4.0

    def test_partial_dict(self):
        config = FlightConfig.from_dict({
            "vehicle": {"dt": 0.05},
            "detector": {"noise_floor": {"RANGE": 80.0}},
        })
        assert config.vehicle.dt == 0.05
        assert config.detector.noise_floor[Channel.RANGE] == 80.0
        assert config.detector.noise_floor[Channel.POSITION_X] == 10.0
        assert config.guidance == GuidanceConfig()

    def test_save_and_load(self, tmp_path):
        config = FlightConfig()
        config.safety.min_clearance = 100.0
        path = save_flight_config(config, tmp_path / "nested" / "flight.json")

        assert path.exists()
        assert load_flight_config(path) == config

    def test_load_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_flight_config(tmp_path / "missing.json")
