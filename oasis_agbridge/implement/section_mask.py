################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Fixed-size section on/off state for one implement train."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

import numpy as np


# Number of implement sections addressed by the extended section frame
SECTION_COUNT: int = 64

# Bytes needed to carry SECTION_COUNT bits
SECTION_BYTES: int = SECTION_COUNT // 8


class SectionMaskError(Exception):
    """Raised when a section mask cannot be built or indexed."""


@dataclass(frozen=True)
class SectionMask:
    """Immutable ordered sequence of section states, indexed 0..63.

    Bit b of byte k of the wire representation maps to section 8k+b, with
    bits taken LSB-first within each byte.

    Attributes:
        states: One bool per section, section 0 first
    """

    states: tuple[bool, ...]

    def __post_init__(self) -> None:
        """Validate the section count."""
        if len(self.states) != SECTION_COUNT:
            raise SectionMaskError(
                f"Section mask needs {SECTION_COUNT} states, got {len(self.states)}"
            )

    @classmethod
    def empty(cls) -> SectionMask:
        """Return a mask with every section off."""
        return cls(states=(False,) * SECTION_COUNT)

    @classmethod
    def from_states(cls, states: Iterable[object]) -> SectionMask:
        """Build a mask from any iterable of truthy/falsy values."""
        return cls(states=tuple(bool(state) for state in states))

    @classmethod
    def from_bytes(cls, payload: bytes) -> SectionMask:
        """Unpack a mask from its little-endian bit-per-section encoding.

        Payloads shorter than SECTION_BYTES leave the remaining sections off.
        """
        if len(payload) > SECTION_BYTES:
            raise SectionMaskError(
                f"Section payload too large: {len(payload)} bytes "
                f"(expected at most {SECTION_BYTES})"
            )

        padded: bytes = bytes(payload) + bytes(SECTION_BYTES - len(payload))
        bits: np.ndarray = np.unpackbits(
            np.frombuffer(padded, dtype=np.uint8), bitorder="little"
        )
        return cls(states=tuple(bool(bit) for bit in bits))

    def to_bytes(self) -> bytes:
        """Pack the mask into its wire representation."""
        bits: np.ndarray = np.array(self.states, dtype=np.uint8)
        return np.packbits(bits, bitorder="little").tobytes()

    def is_on(self, section_index: int) -> bool:
        """Return True if the section at the given index is on."""
        if not 0 <= section_index < SECTION_COUNT:
            raise SectionMaskError(f"Section index out of range: {section_index}")
        return self.states[section_index]

    def active_count(self) -> int:
        """Return the number of sections that are on."""
        return sum(1 for state in self.states if state)

    def to_list(self) -> list[int]:
        """Return the mask as a list of 0/1 integers for JSON payloads."""
        return [1 if state else 0 for state in self.states]
