"""Fixed-depth sample history per sensor channel.

Each channel keeps its five most recent samples, newest first. Samples are
weighted 5, 4, 3, 2, 1 from newest to oldest when averaged, so the history
follows the signal while still smoothing single-tick noise.

A history only exists once it has been seeded from a live reading; there is
no empty state to guard against.

Example:
    >>> from flight.navigation.history import SensorHistory
    >>>
    >>> history = SensorHistory.seed(frame)
    >>> history.push(Channel.VELOCITY_X, 3.2)
    3.2
    >>> avg = history.weighted_average(Channel.VELOCITY_X)
"""

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from flight.interfaces import Channel, SensorFrame

HISTORY_DEPTH: int = 5

# Sample i (0 = newest) has weight DEPTH - i
HISTORY_WEIGHTS: NDArray[np.float64] = np.arange(HISTORY_DEPTH, 0, -1, dtype=np.float64)

# Share of the change between samples j and j + 1 (0 = the incoming value) that
# still separates the incoming value from the weighted average
LAG_WEIGHTS: NDArray[np.float64] = np.cumsum(HISTORY_WEIGHTS[::-1])[::-1] / HISTORY_WEIGHTS.sum()


# =============================================================================
# Helpers
# =============================================================================


def wrap_degrees(angle: float) -> float:
    """Wrap an angle to [0, 360)."""
    return float(angle % 360.0)


def angle_difference(a: float, b: float) -> float:
    """Signed shortest difference a - b, in (-180, 180] degrees."""
    diff = (a - b) % 360.0
    if diff > 180.0:
        diff -= 360.0
    return float(diff)


def lag_offset(steps: Sequence[float] | NDArray[np.float64]) -> float:
    """Offset between an incoming value and the history average after `steps`.

    A signal that changed by steps[j] over the j-th most recent tick arrives
    this far from the weighted average of its history. Only as many steps as
    the history has seen count; older samples are the seed.

    For a steady ramp of s per tick the offset is 35/15 * s.
    """
    steps = np.asarray(steps, dtype=np.float64)[:HISTORY_DEPTH]
    return float(np.dot(LAG_WEIGHTS[:steps.size], steps))


# =============================================================================
# Single Channel
# =============================================================================


@beartype
@dataclass
class ChannelHistory:
    """The five most recent samples of one channel (index 0 newest)."""
    samples: NDArray[np.float64]

    def __post_init__(self) -> None:
        """Validate depth."""
        self.samples = np.asarray(self.samples, dtype=np.float64)
        if self.samples.shape != (HISTORY_DEPTH,):
            raise ValueError(
                f"History must hold {HISTORY_DEPTH} samples, got {self.samples.shape}"
            )

    @classmethod
    def seeded(cls, value: float) -> "ChannelHistory":
        """History filled with one live reading."""
        return cls(samples=np.full(HISTORY_DEPTH, value, dtype=np.float64))

    def push(self, value: float) -> float:
        """Insert at the front, drop the oldest, return value unchanged."""
        self.samples[1:] = self.samples[:-1]
        self.samples[0] = value
        return value

    def weighted_average(self) -> float:
        """Descending-weight average of the stored samples."""
        return float(np.dot(HISTORY_WEIGHTS, self.samples) / HISTORY_WEIGHTS.sum())

    def circular_weighted_average(self) -> float:
        """Descending-weight average of angles [deg], in [0, 360).

        Averages unit vectors so that 359 and 1 average to 0, not 180.
        """
        radians = np.radians(self.samples)
        s = np.dot(HISTORY_WEIGHTS, np.sin(radians))
        c = np.dot(HISTORY_WEIGHTS, np.cos(radians))
        return wrap_degrees(np.degrees(np.arctan2(s, c)))

    @property
    def latest(self) -> float:
        return float(self.samples[0])

    @property
    def previous(self) -> float:
        return float(self.samples[1])


# =============================================================================
# All Channels
# =============================================================================


@beartype
@dataclass
class SensorHistory:
    """Enum-indexed histories for every fused channel."""
    channels: dict[Channel, ChannelHistory]

    def __post_init__(self) -> None:
        """Require every channel."""
        missing = set(Channel) - set(self.channels)
        if missing:
            names = sorted(c.name for c in missing)
            raise ValueError(f"History missing channels: {names}")

    @classmethod
    def seed(cls, frame: SensorFrame) -> "SensorHistory":
        """Seed every channel from the first live frame."""
        return cls(channels={
            channel: ChannelHistory.seeded(frame.reading(channel))
            for channel in Channel
        })

    def push(self, channel: Channel, value: float) -> float:
        """Shift a new sample into a channel and return it unchanged."""
        return self.channels[channel].push(value)

    def weighted_average(self, channel: Channel) -> float:
        """Weighted average of a channel, circular for angles."""
        history = self.channels[channel]
        if channel.circular:
            return history.circular_weighted_average()
        return history.weighted_average()

    def latest(self, channel: Channel) -> float:
        """Most recent sample of a channel."""
        return self.channels[channel].latest

    def previous(self, channel: Channel) -> float:
        """Second most recent sample of a channel."""
        return self.channels[channel].previous

    def samples(self, channel: Channel) -> NDArray[np.float64]:
        """Copy of a channel's samples, newest first."""
        return self.channels[channel].samples.copy()
