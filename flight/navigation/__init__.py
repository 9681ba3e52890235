"""Navigation: sensor fusion, failure detection and fused estimates.

Example:
    >>> from flight.navigation import EstimateProvider, SensorHistory
    >>>
    >>> history = SensorHistory.seed(first_frame)
    >>> provider = EstimateProvider(DetectorConfig(), VehicleConfig())
    >>> estimate = provider.update(frame, history, failed=set())
"""

from flight.navigation.detector import (
    Assessment,
    Drift,
    FailureDetector,
    blend,
    blend_angle,
)
from flight.navigation.estimates import (
    AXES,
    AxisPair,
    EstimateProvider,
    NavigationEstimate,
)
from flight.navigation.history import (
    HISTORY_DEPTH,
    ChannelHistory,
    SensorHistory,
    angle_difference,
    lag_offset,
    wrap_degrees,
)

__all__ = [
    "AXES",
    "Assessment",
    "AxisPair",
    "ChannelHistory",
    "Drift",
    "EstimateProvider",
    "FailureDetector",
    "HISTORY_DEPTH",
    "NavigationEstimate",
    "SensorHistory",
    "angle_difference",
    "blend",
    "blend_angle",
    "lag_offset",
    "wrap_degrees",
]
