################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

import enum


class PgnConstants:
    """
    This class contains the framing constants of the guidance UDP protocol.
    """

    # Fixed header bytes at offsets 0 and 1
    HEADER_0: int = 0x80
    HEADER_1: int = 0x81

    # Offset of the message kind (PGN) byte
    PGN_OFFSET: int = 3

    # Offset where every kind-specific payload starts
    PAYLOAD_OFFSET: int = 5

    # Shortest datagram accepted by the decoder
    MIN_FRAME_LENGTH: int = 8

    # Shortest antenna frame carrying the heading/satellite block
    MIN_ANTENNA_FRAME_LENGTH: int = 50

    # Default UDP port the guidance software broadcasts on
    DEFAULT_UDP_PORT: int = 17777

    # Raw integer speeds and headings are transmitted in tenths
    TENTHS_SCALE: float = 10.0


class PgnKind(enum.IntEnum):
    """Message kinds understood by the decoder, keyed by PGN byte."""

    POSITION = 100  # Longitude/latitude doubles, optional heading float
    IMU_HEADING = 211  # IMU heading in tenths of a degree
    ANTENNA = 214  # Main antenna headings, GPS speed, satellites, fix
    SECTION_MASK = 229  # 64-section extended bitmask
    MACHINE = 239  # Limited machine speed and an 8-section byte
    STEER_DATA = 253  # From autosteer: IMU heading in tenths of a degree
    SPEED = 254  # Autosteer speed in tenths of km/h
