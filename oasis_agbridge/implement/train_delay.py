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
Distance-triggered section delay for multi-train implements.

The trailing train crosses the ground the leading train crossed one train
offset earlier. Each section frame advances a virtual odometer by integrating
speed over time, applies the new mask to the primary train at once, and
queues a snapshot that becomes the secondary train's mask when the odometer
has advanced by the train offset. Because maturation is driven by distance,
nothing matures while the vehicle is stopped.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable
from typing import Optional

from oasis_agbridge.implement.implement_types import Train
from oasis_agbridge.implement.section_mask import SectionMask
from oasis_agbridge.localization.units import kph_to_mps


# Default bound on queued snapshots while the vehicle is stopped
DEFAULT_QUEUE_CAPACITY: int = 2000

_LOG: logging.Logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DelayQueueEntry:
    """Section snapshot waiting for the trailing train.

    Attributes:
        snapshot_mask: Section state when the snapshot was taken
        trigger_distance_m: Odometer reading at which the snapshot matures
    """

    snapshot_mask: SectionMask
    trigger_distance_m: float


@dataclass(frozen=True)
class TrainStates:
    """Section masks of both trains after an update."""

    primary: SectionMask
    secondary: SectionMask

    def mask_for(self, train: Train) -> SectionMask:
        return self.secondary if train == Train.SECONDARY else self.primary


class TrainDelayEngine:
    """Virtual odometer plus FIFO promoting section state to trailing trains."""

    def __init__(
        self,
        queue_capacity: int = DEFAULT_QUEUE_CAPACITY,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if queue_capacity <= 0:
            raise ValueError("Queue capacity must be positive")

        self._queue_capacity: int = queue_capacity
        self._clock: Callable[[], float] = clock

        self._odometer_m: float = 0.0
        self._last_timestamp_sec: float = clock()
        self._queue: deque[DelayQueueEntry] = deque()
        self._primary: SectionMask = SectionMask.empty()
        self._secondary: SectionMask = SectionMask.empty()
        self._dropped_entries: int = 0

    @property
    def odometer_m(self) -> float:
        return self._odometer_m

    @property
    def pending_entries(self) -> int:
        return len(self._queue)

    @property
    def dropped_entries(self) -> int:
        """Return how many snapshots were discarded by the queue cap."""
        return self._dropped_entries

    def states(self) -> TrainStates:
        return TrainStates(primary=self._primary, secondary=self._secondary)

    def update(
        self,
        mask: SectionMask,
        speed_kph: float,
        train_offset_m: float,
        timestamp_sec: Optional[float] = None,
    ) -> TrainStates:
        """
        Process one section frame.

        :param mask: Section state decoded from the frame
        :param speed_kph: Current travel speed in km/h
        :param train_offset_m: Distance the secondary train lags, in meters
        :param timestamp_sec: Time of the frame in seconds, or None to read the
            engine's clock

        :return: The section masks of both trains after the update
        """
        now: float = self._clock() if timestamp_sec is None else timestamp_sec
        dt_sec: float = max(0.0, now - self._last_timestamp_sec)
        self._last_timestamp_sec = now

        # Reversing does not unwind the odometer, keeping trigger distances
        # non-decreasing
        advance_m: float = max(0.0, kph_to_mps(speed_kph)) * dt_sec
        self._odometer_m += advance_m

        self._primary = mask

        self._queue.append(
            DelayQueueEntry(
                snapshot_mask=mask,
                trigger_distance_m=self._odometer_m + max(0.0, train_offset_m),
            )
        )

        while len(self._queue) > self._queue_capacity:
            self._queue.popleft()
            self._dropped_entries += 1
            _LOG.warning(
                f"Section delay queue full ({self._queue_capacity} entries), "
                f"dropped oldest snapshot ({self._dropped_entries} dropped so far)"
            )

        # Several entries can mature at once; the newest one wins
        while self._queue and self._odometer_m >= self._queue[0].trigger_distance_m:
            self._secondary = self._queue.popleft().snapshot_mask

        return self.states()
