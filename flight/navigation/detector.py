"""Noise reduction and sensor failure detection.

Every raw reading is blended with the channel's recent history:

    fused = (avg + w * raw) / (1 + w),   w = 3 by default

A channel is trusted while its fused value keeps tracking that history. When
the fused value leaves the band

    |fused - (avg + shift)| <= delta * max(|avg|, floor) + allowance

the channel is latched failed for the rest of the flight. With floor = 0 and
no drift the band is exactly fused/avg in [1 - delta, 1 + delta]. The floor
is kept at sensor-noise scale so that a channel whose true value sits near
zero does not latch on noise.

A weighted history lags a moving signal, so the caller may describe the
motion it expects as a Drift: a known shift of the expected value (gravity,
position moving with velocity) and an allowance for motion that may or may
not happen (commanded thrust from a thruster that may have failed). Angles
use wrapped differences and the floor alone, since a relative test on a
heading has no meaning.

Latched channels stay untrusted: their estimates come from a physically
related channel (see flight.navigation.estimates).
"""

import logging
from dataclasses import dataclass
from typing import NamedTuple

from beartype import beartype

from flight.config import DetectorConfig
from flight.interfaces import Channel
from flight.navigation.history import SensorHistory, angle_difference, wrap_degrees

logger = logging.getLogger(__name__)


class Assessment(NamedTuple):
    """Result of checking one raw reading against its history."""
    average: float
    fused: float
    diverged: bool


class Drift(NamedTuple):
    """Motion a channel is expected to show against its history.

    Attributes:
        shift: Known offset of the incoming value from the history average
        allowance: Extra band half-width for motion that may not happen
    """
    shift: float = 0.0
    allowance: float = 0.0


STILL = Drift()


@beartype
def blend(average: float, raw: float, raw_weight: float = 3.0) -> float:
    """Noise-reduced value: history average blended with the raw reading."""
    return (average + raw_weight * raw) / (1.0 + raw_weight)


@beartype
def blend_angle(average: float, raw: float, raw_weight: float = 3.0) -> float:
    """Circular blend of angles [deg], result in [0, 360)."""
    step = angle_difference(raw, average) * raw_weight / (1.0 + raw_weight)
    return wrap_degrees(average + step)


@beartype
@dataclass
class FailureDetector:
    """Blends raw readings and latches channels that diverge from history.

    Attributes:
        config: Detection tuning
        failed: Channels latched as untrustworthy (only ever grows)
    """
    config: DetectorConfig
    failed: set[Channel]

    def is_failed(self, channel: Channel) -> bool:
        return channel in self.failed

    def fuse(
        self,
        history: SensorHistory,
        channel: Channel,
        raw: float,
        drift: Drift = STILL,
    ) -> Assessment:
        """Blend a raw reading with history and test it for divergence.

        Does not touch history or the failure latch.
        """
        average = history.weighted_average(channel)
        expected = average + drift.shift
        if channel.circular:
            fused = blend_angle(average, raw, self.config.raw_weight)
            deviation = abs(angle_difference(fused, expected))
        else:
            fused = blend(average, raw, self.config.raw_weight)
            deviation = abs(fused - expected)
        threshold = self.config.threshold(channel, average) + drift.allowance
        diverged = bool(deviation > threshold)
        return Assessment(average=average, fused=fused, diverged=diverged)

    def assess(
        self,
        history: SensorHistory,
        channel: Channel,
        raw: float,
        drift: Drift = STILL,
    ) -> Assessment:
        """Fuse a reading and latch the channel failed if it diverged.

        Channels that are already failed are not re-tested.
        """
        result = self.fuse(history, channel, raw, drift)
        if channel not in self.failed and result.diverged:
            self.latch(channel, result)
        return result

    def latch(self, channel: Channel, result: Assessment | None = None) -> None:
        """Mark a channel permanently failed."""
        if channel in self.failed:
            return
        self.failed.add(channel)
        if result is None:
            logger.warning("%s sensor latched failed", channel.name)
        else:
            logger.warning(
                "%s sensor latched failed: fused %.3f vs history %.3f",
                channel.name, result.fused, result.average,
            )
