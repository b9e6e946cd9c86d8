################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Great-circle helpers for GPS fixes given in degrees."""

from __future__ import annotations

import math


# Mean Earth radius used for haversine distances, in meters
EARTH_RADIUS_M: float = 6_371_000.0


def normalize_degrees(angle_deg: float) -> float:
    """Wrap an angle in degrees to [0, 360)."""
    wrapped: float = math.fmod(angle_deg, 360.0)
    if wrapped < 0.0:
        wrapped += 360.0
    # fmod of a tiny negative value can round up to exactly 360
    if wrapped >= 360.0:
        wrapped = 0.0
    return wrapped


def haversine_distance_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Return the great-circle distance between two fixes, in meters."""
    lat1_rad: float = math.radians(lat1)
    lat2_rad: float = math.radians(lat2)
    d_lat: float = math.radians(lat2 - lat1)
    d_lon: float = math.radians(lon2 - lon1)

    a: float = (
        math.sin(d_lat / 2.0) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(d_lon / 2.0) ** 2
    )
    c: float = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))

    return EARTH_RADIUS_M * c


def initial_bearing_deg(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Return the initial great-circle bearing from fix 1 to fix 2.

    The result is in degrees clockwise from north, in [0, 360).
    """
    lat1_rad: float = math.radians(lat1)
    lat2_rad: float = math.radians(lat2)
    d_lon: float = math.radians(lon2 - lon1)

    y: float = math.sin(d_lon) * math.cos(lat2_rad)
    x: float = math.cos(lat1_rad) * math.sin(lat2_rad) - math.sin(lat1_rad) * math.cos(
        lat2_rad
    ) * math.cos(d_lon)

    return normalize_degrees(math.degrees(math.atan2(y, x)))


def angular_difference_deg(heading_a: float, heading_b: float) -> float:
    """Return the shorter angular distance between two headings, in [0, 180]."""
    diff: float = abs(normalize_degrees(heading_a) - normalize_degrees(heading_b))
    return min(diff, 360.0 - diff)
