################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""
Heading estimation from consecutive GPS fixes.

The estimator keeps a short window of instantaneous great-circle bearings and
reports a recency-weighted circular mean. A device-reported heading, when the
position frame carries one, can be blended in with a speed-dependent policy.
"""

from __future__ import annotations

import math
import time
from collections import deque
from dataclasses import dataclass
from dataclasses import field
from typing import Callable
from typing import Optional

import numpy as np

from oasis_agbridge.localization.geo_math import angular_difference_deg
from oasis_agbridge.localization.geo_math import haversine_distance_m
from oasis_agbridge.localization.geo_math import initial_bearing_deg
from oasis_agbridge.localization.geo_math import normalize_degrees


@dataclass
class HeadingEstimatorConfig:
    """Configuration values for the heading estimator."""

    # Number of bearings kept for smoothing; oldest evicted first
    window_size: int = 5

    # Minimum time between accepted updates, in seconds
    min_update_interval_sec: float = 0.1

    # Displacement below which a fix is treated as GPS noise, in meters
    min_displacement_m: float = 0.5

    # Device headings with magnitude at or above this are garbage, in radians
    device_heading_sanity_rad: float = 10.0

    # Below this speed only the device heading is trusted, in m/s
    device_only_speed_mps: float = 1.0

    # Weight of the computed heading when blending at speed, unitless
    computed_heading_weight: float = 0.7


@dataclass(frozen=True)
class PositionSample:
    """A GPS fix and the time it was accepted.

    Attributes:
        latitude: Latitude in degrees
        longitude: Longitude in degrees
        timestamp_sec: Monotonic acceptance time in seconds
    """

    latitude: float
    longitude: float
    timestamp_sec: float


@dataclass(frozen=True)
class BearingSample:
    """An instantaneous bearing kept in the smoothing window."""

    bearing_deg: float
    timestamp_sec: float


@dataclass
class HeadingState:
    """Mutable state for the heading estimator."""

    # Smoothed heading in degrees, [0, 360)
    smoothed_heading_deg: float = 0.0

    # Last fix that moved the estimator, or None before the first fix
    last_position: Optional[PositionSample] = None

    # Time of the last update that passed the rate limit, in seconds
    last_sample_timestamp_sec: Optional[float] = None

    # Recent bearings, oldest first
    window: deque[BearingSample] = field(default_factory=deque)


class HeadingEstimator:
    """Smooths GPS bearings into a heading, optionally fused with the device."""

    def __init__(
        self,
        config: Optional[HeadingEstimatorConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config: HeadingEstimatorConfig = config or HeadingEstimatorConfig()
        self._clock: Callable[[], float] = clock
        self._state: HeadingState = self._new_state()

    @property
    def state(self) -> HeadingState:
        """Return the mutable estimator state."""

        return self._state

    @property
    def smoothed_heading_deg(self) -> float:
        return self._state.smoothed_heading_deg

    def reset(self) -> None:
        """Clear the window, last position and smoothed heading."""

        self._state = self._new_state()

    def update(
        self,
        latitude: float,
        longitude: float,
        timestamp_sec: Optional[float] = None,
    ) -> float:
        """
        Fold a new GPS fix into the heading estimate.

        :param latitude: Latitude in degrees
        :param longitude: Longitude in degrees
        :param timestamp_sec: Time of the fix in seconds, or None to read the
            estimator's clock

        :return: The smoothed heading in degrees, [0, 360)
        """
        now: float = self._clock() if timestamp_sec is None else timestamp_sec
        state: HeadingState = self._state

        # A non-finite fix would poison the window until evicted
        if not (math.isfinite(latitude) and math.isfinite(longitude)):
            return state.smoothed_heading_deg

        # A bearing needs two points
        if state.last_position is None:
            state.last_position = PositionSample(latitude, longitude, now)
            state.last_sample_timestamp_sec = now
            return 0.0

        # Rate-limit noisy high-frequency fixes
        if (
            state.last_sample_timestamp_sec is not None
            and now - state.last_sample_timestamp_sec
            < self._config.min_update_interval_sec
        ):
            return state.smoothed_heading_deg

        last: PositionSample = state.last_position
        distance_m: float = haversine_distance_m(
            last.latitude, last.longitude, latitude, longitude
        )

        # Too little movement to trust the bearing
        if distance_m < self._config.min_displacement_m:
            state.last_sample_timestamp_sec = now
            return state.smoothed_heading_deg

        bearing_deg: float = initial_bearing_deg(
            last.latitude, last.longitude, latitude, longitude
        )

        state.window.append(BearingSample(bearing_deg, now))
        while len(state.window) > self._config.window_size:
            state.window.popleft()

        state.smoothed_heading_deg = self._weighted_circular_mean(state.window)
        state.last_position = PositionSample(latitude, longitude, now)
        state.last_sample_timestamp_sec = now

        return state.smoothed_heading_deg

    def fuse_device_heading(
        self,
        computed_heading_deg: float,
        device_heading_rad: Optional[float],
        speed_mps: float,
    ) -> float:
        """
        Blend the computed heading with a device-reported heading.

        Below the device-only speed the GPS bearing is unreliable and the device
        heading is used alone. At speed the two are blended linearly. Absent or
        insane device headings leave the computed heading unmodified.

        :param computed_heading_deg: Heading from update(), in degrees
        :param device_heading_rad: Heading reported in the position frame, in
            radians, or None
        :param speed_mps: Current travel speed in m/s

        :return: The fused heading in degrees, [0, 360)
        """
        if device_heading_rad is None or not math.isfinite(device_heading_rad):
            return computed_heading_deg

        if abs(device_heading_rad) >= self._config.device_heading_sanity_rad:
            return computed_heading_deg

        device_heading_deg: float = normalize_degrees(math.degrees(device_heading_rad))

        if speed_mps < self._config.device_only_speed_mps:
            return device_heading_deg

        weight: float = self._config.computed_heading_weight
        return normalize_degrees(
            weight * computed_heading_deg + (1.0 - weight) * device_heading_deg
        )

    @staticmethod
    def _weighted_circular_mean(window: deque[BearingSample]) -> float:
        count: int = len(window)
        if count == 0:
            return 0.0

        bearings_rad: np.ndarray = np.radians(
            np.array([sample.bearing_deg for sample in window], dtype=float)
        )

        # Linear recency weights (i + 1) / N, oldest first. Sums are divided by
        # N rather than by the weight total.
        weights: np.ndarray = np.arange(1, count + 1, dtype=float) / count
        sum_sin: float = float(np.sum(np.sin(bearings_rad) * weights)) / count
        sum_cos: float = float(np.sum(np.cos(bearings_rad) * weights)) / count

        return normalize_degrees(math.degrees(math.atan2(sum_sin, sum_cos)))

    @staticmethod
    def _new_state() -> HeadingState:
        return HeadingState()


def detect_sharp_turn(
    new_heading_deg: float,
    previous_heading_deg: Optional[float],
    threshold_deg: float = 30.0,
) -> bool:
    """Return True if the heading changed by more than the threshold.

    The angular distance is the shorter way around the circle, so 350 and 10
    degrees are 20 degrees apart. Without a previous heading there is no turn.
    """
    if previous_heading_deg is None:
        return False

    return angular_difference_deg(new_heading_deg, previous_heading_deg) > threshold_deg
