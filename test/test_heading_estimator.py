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

import math

import pytest

from oasis_agbridge.localization.geo_math import angular_difference_deg
from oasis_agbridge.localization.heading_estimator import HeadingEstimator
from oasis_agbridge.localization.heading_estimator import detect_sharp_turn


# About 11 m of latitude or equatorial longitude
STEP_DEG: float = 0.0001


def _estimator() -> HeadingEstimator:
    return HeadingEstimator(clock=lambda: 0.0)


def test_first_fix_returns_zero() -> None:
    estimator: HeadingEstimator = _estimator()

    assert estimator.update(10.0, 20.0, timestamp_sec=0.0) == 0.0
    assert estimator.state.last_position is not None
    assert len(estimator.state.window) == 0


def test_small_displacement_keeps_heading() -> None:
    estimator: HeadingEstimator = _estimator()
    estimator.update(0.0, 0.0, timestamp_sec=0.0)
    heading_deg: float = estimator.update(0.0, STEP_DEG, timestamp_sec=1.0)

    assert heading_deg == pytest.approx(90.0)

    # 0.000001 degrees is about 11 cm
    for step in range(1, 6):
        jitter_deg: float = 0.000001 * (-1) ** step
        result: float = estimator.update(
            jitter_deg, STEP_DEG + jitter_deg, timestamp_sec=1.0 + step
        )
        assert result == pytest.approx(90.0)

    assert len(estimator.state.window) == 1


def test_due_north_converges_within_window() -> None:
    estimator: HeadingEstimator = _estimator()

    # Drive east first to fill the window with a different bearing
    estimator.update(0.0, 0.0, timestamp_sec=0.0)
    for step in range(1, 6):
        estimator.update(0.0, step * STEP_DEG, timestamp_sec=float(step))

    assert estimator.smoothed_heading_deg == pytest.approx(90.0)

    heading_deg: float = 90.0
    for step in range(1, 6):
        heading_deg = estimator.update(
            step * STEP_DEG, 5 * STEP_DEG, timestamp_sec=5.0 + step
        )

    assert angular_difference_deg(heading_deg, 0.0) < 1.0e-6


def test_recent_bearings_weigh_more() -> None:
    estimator: HeadingEstimator = _estimator()
    estimator.update(0.0, 0.0, timestamp_sec=0.0)
    estimator.update(0.0, STEP_DEG, timestamp_sec=1.0)

    heading_deg: float = estimator.update(STEP_DEG, STEP_DEG, timestamp_sec=2.0)

    # East weighted 1/2, north weighted 1
    expected_deg: float = math.degrees(math.atan2(0.5, 1.0))
    assert heading_deg == pytest.approx(expected_deg, abs=1.0e-6)


def test_updates_closer_than_interval_are_ignored() -> None:
    estimator: HeadingEstimator = _estimator()
    estimator.update(0.0, 0.0, timestamp_sec=0.0)

    heading_deg: float = estimator.update(0.0, STEP_DEG, timestamp_sec=0.05)

    assert heading_deg == 0.0
    assert len(estimator.state.window) == 0


def test_rejected_noise_restarts_interval() -> None:
    estimator: HeadingEstimator = _estimator()
    estimator.update(0.0, 0.0, timestamp_sec=0.0)
    estimator.update(0.0, 0.000001, timestamp_sec=0.2)

    heading_deg: float = estimator.update(0.0, STEP_DEG, timestamp_sec=0.25)

    assert heading_deg == 0.0
    assert len(estimator.state.window) == 0


def test_short_hop_north_after_interval() -> None:
    estimator: HeadingEstimator = _estimator()
    estimator.update(0.0, 0.0, timestamp_sec=0.0)

    heading_deg: float = estimator.update(0.00001, 0.0, timestamp_sec=0.2)

    assert angular_difference_deg(heading_deg, 0.0) < 1.0e-6


def test_reset_clears_state() -> None:
    estimator: HeadingEstimator = _estimator()
    estimator.update(0.0, 0.0, timestamp_sec=0.0)
    estimator.update(0.0, STEP_DEG, timestamp_sec=1.0)

    estimator.reset()

    assert estimator.smoothed_heading_deg == 0.0
    assert estimator.state.last_position is None
    assert len(estimator.state.window) == 0


def test_update_reads_clock_without_timestamp() -> None:
    now: list[float] = [0.0]
    estimator = HeadingEstimator(clock=lambda: now[0])

    estimator.update(0.0, 0.0)
    now[0] = 1.0
    heading_deg: float = estimator.update(0.0, STEP_DEG)

    assert heading_deg == pytest.approx(90.0)


def test_fusion_ignores_missing_or_insane_device_heading() -> None:
    estimator: HeadingEstimator = _estimator()

    assert estimator.fuse_device_heading(45.0, None, 5.0) == 45.0
    assert estimator.fuse_device_heading(45.0, math.nan, 5.0) == 45.0
    assert estimator.fuse_device_heading(45.0, 12.0, 5.0) == 45.0
    assert estimator.fuse_device_heading(45.0, -10.0, 5.0) == 45.0


def test_fusion_uses_device_heading_when_slow() -> None:
    estimator: HeadingEstimator = _estimator()

    fused_deg: float = estimator.fuse_device_heading(45.0, math.pi / 2.0, 0.5)

    assert fused_deg == pytest.approx(90.0)


def test_fusion_blends_at_speed() -> None:
    estimator: HeadingEstimator = _estimator()

    fused_deg: float = estimator.fuse_device_heading(0.0, math.pi / 2.0, 2.0)

    assert fused_deg == pytest.approx(27.0)


def test_fusion_normalizes_negative_device_heading() -> None:
    estimator: HeadingEstimator = _estimator()

    fused_deg: float = estimator.fuse_device_heading(10.0, -math.pi / 2.0, 0.0)

    assert fused_deg == pytest.approx(270.0)


def test_detect_sharp_turn() -> None:
    assert detect_sharp_turn(170.0, 10.0)
    assert not detect_sharp_turn(10.0, 35.0)
    assert not detect_sharp_turn(350.0, 10.0)
    assert detect_sharp_turn(350.0, 10.0, threshold_deg=15.0)


def test_detect_sharp_turn_without_previous_heading() -> None:
    assert not detect_sharp_turn(170.0, None)


def test_non_finite_fix_is_skipped() -> None:
    estimator: HeadingEstimator = _estimator()
    estimator.update(0.0, 0.0, timestamp_sec=0.0)

    assert estimator.update(math.nan, 0.0, timestamp_sec=0.2) == 0.0
    assert estimator.update(0.0, math.inf, timestamp_sec=0.4) == 0.0
    assert len(estimator.state.window) == 0

    headings: list[float] = [
        estimator.update(step * 0.00001, 0.0, timestamp_sec=0.4 + 0.2 * step)
        for step in range(1, 6)
    ]

    assert all(math.isfinite(heading) for heading in headings)
    assert angular_difference_deg(headings[-1], 0.0) < 1.0e-6
