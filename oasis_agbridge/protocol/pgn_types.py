################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Typed telemetry frames produced by the PGN decoder."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from oasis_agbridge.implement.section_mask import SectionMask
from oasis_agbridge.protocol.pgn_constants import PgnKind


@dataclass(frozen=True)
class TelemetryFrame:
    """Base class for one decoded datagram."""

    @property
    def kind(self) -> Optional[PgnKind]:
        return None


@dataclass(frozen=True)
class SpeedFrame(TelemetryFrame):
    """Autosteer speed.

    Attributes:
        speed_kph: Travel speed in km/h, negative when reversing
    """

    speed_kph: float

    @property
    def kind(self) -> Optional[PgnKind]:
        return PgnKind.SPEED


@dataclass(frozen=True)
class PositionFrame(TelemetryFrame):
    """GPS fix.

    Attributes:
        latitude: Latitude in degrees
        longitude: Longitude in degrees
        heading_rad: Device-reported heading in radians, if the frame carries
            one. Not validated; see the heading estimator's sanity bound.
    """

    latitude: float
    longitude: float
    heading_rad: Optional[float] = None

    @property
    def kind(self) -> Optional[PgnKind]:
        return PgnKind.POSITION


@dataclass(frozen=True)
class SectionMaskFrame(TelemetryFrame):
    """Extended 64-section state."""

    mask: SectionMask

    @property
    def kind(self) -> Optional[PgnKind]:
        return PgnKind.SECTION_MASK


@dataclass(frozen=True)
class AntennaFrame(TelemetryFrame):
    """Main antenna data.

    Attributes:
        dual_heading_deg: Dual-antenna heading in degrees
        true_heading_deg: True course in degrees
        speed_kph: GPS speed in km/h
        satellites: Number of satellites in view
        fix_quality: GPS fix quality code
    """

    dual_heading_deg: float
    true_heading_deg: float
    speed_kph: float
    satellites: int
    fix_quality: int

    @property
    def kind(self) -> Optional[PgnKind]:
        return PgnKind.ANTENNA


@dataclass(frozen=True)
class ImuHeadingFrame(TelemetryFrame):
    heading_deg: float

    @property
    def kind(self) -> Optional[PgnKind]:
        return PgnKind.IMU_HEADING


@dataclass(frozen=True)
class MachineFrame(TelemetryFrame):
    """Machine data.

    Attributes:
        speed_kph: Speed limited to one byte, in km/h
        section_byte: Sections 0..7 as a bitmask, section 0 in the LSB
    """

    speed_kph: float
    section_byte: int

    @property
    def kind(self) -> Optional[PgnKind]:
        return PgnKind.MACHINE

    def section_string(self) -> str:
        """Return the section byte as eight binary digits, MSB first."""
        return format(self.section_byte, "08b")


@dataclass(frozen=True)
class SteerDataFrame(TelemetryFrame):
    """Autosteer feedback.

    Attributes:
        imu_heading_deg: IMU heading in degrees, or None when the autosteer
            reports zero (no IMU)
    """

    imu_heading_deg: Optional[float]

    @property
    def kind(self) -> Optional[PgnKind]:
        return PgnKind.STEER_DATA


@dataclass(frozen=True)
class IgnoredFrame(TelemetryFrame):
    """Well-formed datagram of a kind the bridge does not consume."""

    pgn: int
