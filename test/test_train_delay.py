################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

from __future__ import annotations

import pytest

from oasis_agbridge.implement.implement_types import Train
from oasis_agbridge.implement.section_mask import SectionMask
from oasis_agbridge.implement.train_delay import TrainDelayEngine
from oasis_agbridge.implement.train_delay import TrainStates


# 1 m/s
SPEED_KPH: float = 3.6


def _mask(*sections: int) -> SectionMask:
    states: list[bool] = [False] * 64
    for section in sections:
        states[section] = True
    return SectionMask.from_states(states)


def _engine(queue_capacity: int = 2000) -> TrainDelayEngine:
    return TrainDelayEngine(queue_capacity=queue_capacity, clock=lambda: 0.0)


def test_primary_follows_immediately() -> None:
    engine: TrainDelayEngine = _engine()

    states: TrainStates = engine.update(_mask(3), SPEED_KPH, 1.2, timestamp_sec=0.0)

    assert states.primary == _mask(3)
    assert states.secondary == SectionMask.empty()
    assert engine.pending_entries == 1


def test_secondary_follows_after_offset_distance() -> None:
    engine: TrainDelayEngine = _engine()

    engine.update(_mask(0), SPEED_KPH, 1.2, timestamp_sec=0.0)
    states: TrainStates = engine.update(_mask(1), SPEED_KPH, 1.2, timestamp_sec=1.0)

    assert engine.odometer_m == pytest.approx(1.0)
    assert states.secondary == SectionMask.empty()

    states = engine.update(_mask(1), SPEED_KPH, 1.2, timestamp_sec=1.5)

    assert engine.odometer_m == pytest.approx(1.5)
    assert states.primary == _mask(1)
    assert states.secondary == _mask(0)
    assert states.mask_for(Train.SECONDARY) == _mask(0)
    assert states.mask_for(Train.PRIMARY) == _mask(1)


def test_stationary_implement_never_promotes() -> None:
    engine: TrainDelayEngine = _engine()

    for step in range(10):
        states: TrainStates = engine.update(
            _mask(step), 0.0, 1.2, timestamp_sec=float(step)
        )

    assert engine.odometer_m == 0.0
    assert states.secondary == SectionMask.empty()
    assert engine.pending_entries == 10


def test_reverse_does_not_unwind_odometer() -> None:
    engine: TrainDelayEngine = _engine()

    engine.update(_mask(0), SPEED_KPH, 1.2, timestamp_sec=0.0)
    engine.update(_mask(0), SPEED_KPH, 1.2, timestamp_sec=1.0)
    engine.update(_mask(0), -SPEED_KPH, 1.2, timestamp_sec=2.0)

    assert engine.odometer_m == pytest.approx(1.0)


def test_newest_matured_snapshot_wins() -> None:
    engine: TrainDelayEngine = _engine()

    engine.update(_mask(0), SPEED_KPH, 1.0, timestamp_sec=0.0)
    engine.update(_mask(1), SPEED_KPH, 1.0, timestamp_sec=0.1)
    engine.update(_mask(2), SPEED_KPH, 1.0, timestamp_sec=0.2)

    states: TrainStates = engine.update(_mask(3), SPEED_KPH, 1.0, timestamp_sec=2.0)

    assert states.secondary == _mask(2)
    assert engine.pending_entries == 1


def test_zero_offset_promotes_at_once() -> None:
    engine: TrainDelayEngine = _engine()

    states: TrainStates = engine.update(_mask(5), SPEED_KPH, 0.0, timestamp_sec=0.0)

    assert states.secondary == _mask(5)
    assert engine.pending_entries == 0


def test_negative_offset_is_clamped() -> None:
    engine: TrainDelayEngine = _engine()

    states: TrainStates = engine.update(_mask(5), SPEED_KPH, -3.0, timestamp_sec=0.0)

    assert states.secondary == _mask(5)


def test_full_queue_drops_oldest() -> None:
    engine: TrainDelayEngine = _engine(queue_capacity=3)

    for step in range(5):
        engine.update(_mask(step), 0.0, 1.2, timestamp_sec=float(step))

    assert engine.pending_entries == 3
    assert engine.dropped_entries == 2


def test_clock_going_backwards_is_ignored() -> None:
    engine: TrainDelayEngine = _engine()

    engine.update(_mask(0), SPEED_KPH, 1.2, timestamp_sec=5.0)
    engine.update(_mask(0), SPEED_KPH, 1.2, timestamp_sec=4.0)

    assert engine.odometer_m == pytest.approx(5.0)


def test_capacity_must_be_positive() -> None:
    with pytest.raises(ValueError):
        TrainDelayEngine(queue_capacity=0)
