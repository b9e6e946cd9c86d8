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
Decoder for the guidance software's UDP telemetry datagrams.

Every datagram starts with the two header bytes 0x80 0x81, a source byte and
the PGN byte that selects the payload layout. All multi-byte fields are
little-endian and sit at fixed offsets from the start of the datagram.
"""

from __future__ import annotations

import math
import struct
from typing import Callable

from oasis_agbridge.implement.section_mask import SECTION_BYTES
from oasis_agbridge.implement.section_mask import SectionMask
from oasis_agbridge.protocol.pgn_constants import PgnConstants
from oasis_agbridge.protocol.pgn_constants import PgnKind
from oasis_agbridge.protocol.pgn_types import AntennaFrame
from oasis_agbridge.protocol.pgn_types import IgnoredFrame
from oasis_agbridge.protocol.pgn_types import ImuHeadingFrame
from oasis_agbridge.protocol.pgn_types import MachineFrame
from oasis_agbridge.protocol.pgn_types import PositionFrame
from oasis_agbridge.protocol.pgn_types import SectionMaskFrame
from oasis_agbridge.protocol.pgn_types import SpeedFrame
from oasis_agbridge.protocol.pgn_types import SteerDataFrame
from oasis_agbridge.protocol.pgn_types import TelemetryFrame


_INT16 = struct.Struct("<h")
_FLOAT32 = struct.Struct("<f")
_FLOAT64 = struct.Struct("<d")

# Antenna frame field offsets
_ANTENNA_DUAL_HEADING_OFFSET: int = 21
_ANTENNA_TRUE_HEADING_OFFSET: int = 25
_ANTENNA_SPEED_OFFSET: int = 29
_ANTENNA_SATELLITES_OFFSET: int = 41
_ANTENNA_FIX_OFFSET: int = 43

# Position frame field offsets
_POSITION_LONGITUDE_OFFSET: int = 5
_POSITION_LATITUDE_OFFSET: int = 13
_POSITION_HEADING_OFFSET: int = 21

# Machine frame field offsets
_MACHINE_SPEED_OFFSET: int = 6
_MACHINE_SECTIONS_OFFSET: int = 11

# Steer data frame field offsets
_STEER_IMU_HEADING_OFFSET: int = 7


class MalformedFrameError(Exception):
    """Raised when a datagram cannot be decoded into a usable frame."""


def decode_frame(payload: bytes) -> TelemetryFrame:
    """
    Decode one datagram into a typed telemetry frame.

    :param payload: Raw datagram bytes

    :return: The decoded frame, or an IgnoredFrame for unknown kinds

    :raises MalformedFrameError: If the datagram is shorter than the minimum
        frame length, lacks the header, is too short for its kind's layout
        or carries a non-finite position
    """
    if len(payload) < PgnConstants.MIN_FRAME_LENGTH:
        raise MalformedFrameError(
            f"Frame too short: {len(payload)} bytes "
            f"(expected at least {PgnConstants.MIN_FRAME_LENGTH})"
        )

    if payload[0] != PgnConstants.HEADER_0 or payload[1] != PgnConstants.HEADER_1:
        raise MalformedFrameError(
            f"Invalid frame header: {payload[0]:#04x} {payload[1]:#04x}"
        )

    pgn: int = payload[PgnConstants.PGN_OFFSET]

    decoder: Callable[[bytes], TelemetryFrame] | None = _DECODERS.get(pgn)
    if decoder is None:
        return IgnoredFrame(pgn=pgn)

    try:
        return decoder(payload)
    except struct.error as err:
        raise MalformedFrameError(
            f"Frame too short for PGN {pgn}: {len(payload)} bytes"
        ) from err


def _decode_speed(payload: bytes) -> TelemetryFrame:
    raw: int = _INT16.unpack_from(payload, PgnConstants.PAYLOAD_OFFSET)[0]
    return SpeedFrame(speed_kph=raw / PgnConstants.TENTHS_SCALE)


def _decode_position(payload: bytes) -> TelemetryFrame:
    longitude: float = _FLOAT64.unpack_from(payload, _POSITION_LONGITUDE_OFFSET)[0]
    latitude: float = _FLOAT64.unpack_from(payload, _POSITION_LATITUDE_OFFSET)[0]

    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        raise MalformedFrameError(
            f"Non-finite position: lat={latitude}, lon={longitude}"
        )

    # The heading float is optional and only present on longer frames
    heading_rad: float | None = None
    if len(payload) >= _POSITION_HEADING_OFFSET + _FLOAT32.size:
        heading_rad = _FLOAT32.unpack_from(payload, _POSITION_HEADING_OFFSET)[0]

    return PositionFrame(
        latitude=latitude, longitude=longitude, heading_rad=heading_rad
    )


def _decode_section_mask(payload: bytes) -> TelemetryFrame:
    start: int = PgnConstants.PAYLOAD_OFFSET
    end: int = start + SECTION_BYTES

    # Mask bytes missing from a short frame are sections that are off
    return SectionMaskFrame(mask=SectionMask.from_bytes(payload[start:end]))


def _decode_antenna(payload: bytes) -> TelemetryFrame:
    if len(payload) < PgnConstants.MIN_ANTENNA_FRAME_LENGTH:
        raise struct.error("antenna frame truncated")

    return AntennaFrame(
        dual_heading_deg=_FLOAT32.unpack_from(payload, _ANTENNA_DUAL_HEADING_OFFSET)[0],
        true_heading_deg=_FLOAT32.unpack_from(payload, _ANTENNA_TRUE_HEADING_OFFSET)[0],
        speed_kph=_FLOAT32.unpack_from(payload, _ANTENNA_SPEED_OFFSET)[0],
        satellites=_INT16.unpack_from(payload, _ANTENNA_SATELLITES_OFFSET)[0],
        fix_quality=payload[_ANTENNA_FIX_OFFSET],
    )


def _decode_imu_heading(payload: bytes) -> TelemetryFrame:
    raw: int = _INT16.unpack_from(payload, PgnConstants.PAYLOAD_OFFSET)[0]
    return ImuHeadingFrame(heading_deg=raw / PgnConstants.TENTHS_SCALE)


def _decode_machine(payload: bytes) -> TelemetryFrame:
    if len(payload) <= _MACHINE_SECTIONS_OFFSET:
        raise struct.error("machine frame truncated")

    return MachineFrame(
        speed_kph=payload[_MACHINE_SPEED_OFFSET] / PgnConstants.TENTHS_SCALE,
        section_byte=payload[_MACHINE_SECTIONS_OFFSET],
    )


def _decode_steer_data(payload: bytes) -> TelemetryFrame:
    raw: int = _INT16.unpack_from(payload, _STEER_IMU_HEADING_OFFSET)[0]

    # Zero means the autosteer has no IMU heading to report
    heading_deg: float | None = None
    if raw != 0:
        heading_deg = raw / PgnConstants.TENTHS_SCALE

    return SteerDataFrame(imu_heading_deg=heading_deg)


_DECODERS: dict[int, Callable[[bytes], TelemetryFrame]] = {
    PgnKind.SPEED: _decode_speed,
    PgnKind.POSITION: _decode_position,
    PgnKind.SECTION_MASK: _decode_section_mask,
    PgnKind.ANTENNA: _decode_antenna,
    PgnKind.IMU_HEADING: _decode_imu_heading,
    PgnKind.MACHINE: _decode_machine,
    PgnKind.STEER_DATA: _decode_steer_data,
}
