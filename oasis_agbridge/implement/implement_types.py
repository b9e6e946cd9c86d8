################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Implement configuration snapshots served by the configuration service."""

from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass
from typing import Any
from typing import Mapping
from typing import Optional

from oasis_agbridge.implement.section_mask import SECTION_COUNT


# Row spacing used when the service does not provide one, in meters
DEFAULT_ROW_SPACING_M: float = 0.19

# Distance between the leading and trailing trains when not provided, in meters
DEFAULT_TRAIN_OFFSET_M: float = 1.2

# Calibration factor used when an actuator has none, unitless
DEFAULT_CALIBRATION_FACTOR: float = 1.0

_LOG: logging.Logger = logging.getLogger(__name__)


class ImplementConfigError(Exception):
    """Raised when an implement configuration payload cannot be parsed."""


class Train(enum.IntEnum):
    """Longitudinally offset groups of dosing units on the implement."""

    PRIMARY = 1  # Leading train, follows section state immediately
    SECONDARY = 2  # Trailing train, follows section state after the offset


# Train names used by the implement editor
_TRAIN_ALIASES: dict[str, Train] = {
    "delantero": Train.PRIMARY,
    "trasero": Train.SECONDARY,
}


def coerce_float(value: Any, default: float) -> float:
    """Parse a number leniently, returning the default for anything else."""
    if isinstance(value, bool):
        return default
    try:
        number: float = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    return number


def coerce_positive_float(value: Any, default: float) -> float:
    """Parse a number, treating zero and negatives as missing."""
    number: float = coerce_float(value, default)
    return number if number > 0.0 else default


def parse_train(value: Any) -> Train:
    """Map a train assignment to a Train; anything unrecognized is primary."""
    if isinstance(value, str):
        alias: Optional[Train] = _TRAIN_ALIASES.get(value.strip().lower())
        if alias is not None:
            return alias
        value = value.strip()
    if coerce_float(value, 0.0) == float(Train.SECONDARY):
        return Train.SECONDARY
    return Train.PRIMARY


@dataclass(frozen=True)
class ActuatorConfig:
    """One dosing actuator (motor controller) on the implement.

    Attributes:
        actuator_id: Identifier used in the actuator's command topic
        calibration_factor: Units of product per actuator pulse
        train: Train the actuator is mounted on
        section_index: Implement section that switches the actuator. Indexes
            outside 0..63 never switch on
    """

    actuator_id: str
    calibration_factor: float = DEFAULT_CALIBRATION_FACTOR
    train: Train = Train.PRIMARY
    section_index: int = 0

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> ActuatorConfig:
        """Build an actuator from one entry of the service's motor list."""
        raw_id: Any = payload.get("uid_esp")
        if raw_id is None:
            raw_id = payload.get("id", "")

        # Missing or non-numeric indexes default to section 0. Out-of-range
        # indexes are kept and read as an off section.
        section_index: int = int(coerce_float(payload.get("seccionAOG"), 0.0))
        if not 0 <= section_index < SECTION_COUNT:
            _LOG.warning(
                f"Actuator {raw_id} has section index {section_index} outside "
                f"0..{SECTION_COUNT - 1}, it will never dose"
            )

        return cls(
            actuator_id=str(raw_id),
            calibration_factor=coerce_positive_float(
                payload.get("cp"), DEFAULT_CALIBRATION_FACTOR
            ),
            train=parse_train(payload.get("tren")),
            section_index=section_index,
        )


@dataclass(frozen=True)
class ImplementConfig:
    """Immutable snapshot of the implement geometry and its actuators.

    Attributes:
        row_spacing_m: Distance between seed rows, in meters
        train_offset_m: Distance the trailing train lags the leading one, in
            meters
        actuators: Actuators in service order
    """

    row_spacing_m: float = DEFAULT_ROW_SPACING_M
    train_offset_m: float = DEFAULT_TRAIN_OFFSET_M
    actuators: tuple[ActuatorConfig, ...] = ()

    @classmethod
    def from_payload(
        cls,
        payload: Any,
        default_row_spacing_m: float = DEFAULT_ROW_SPACING_M,
        default_train_offset_m: float = DEFAULT_TRAIN_OFFSET_M,
    ) -> ImplementConfig:
        """
        Parse the configuration service's implement document.

        :raises ImplementConfigError: If the payload is not a JSON object
        """
        if not isinstance(payload, Mapping):
            raise ImplementConfigError(
                f"Implement config must be an object, got {type(payload).__name__}"
            )

        motors: Any = payload.get("motores")
        actuators: list[ActuatorConfig] = []
        if isinstance(motors, list):
            for motor in motors:
                if isinstance(motor, Mapping):
                    actuators.append(ActuatorConfig.from_payload(motor))

        return cls(
            row_spacing_m=coerce_positive_float(
                payload.get("distanciaSurcos"), default_row_spacing_m
            ),
            train_offset_m=coerce_positive_float(
                payload.get("distanciaEntreTrenes"), default_train_offset_m
            ),
            actuators=tuple(actuators),
        )


@dataclass(frozen=True)
class ManualDoseOverride:
    """Operator-entered dose that replaces the prescription map.

    Attributes:
        active: True if the manual dose should be used
        value: Dose rate; 0 when missing or non-numeric
    """

    active: bool = False
    value: float = 0.0

    @classmethod
    def inactive(cls) -> ManualDoseOverride:
        return cls()

    @classmethod
    def from_payload(cls, payload: Any) -> ManualDoseOverride:
        """Parse the work configuration document's manual dose block."""
        if not isinstance(payload, Mapping):
            return cls.inactive()

        manual: Any = payload.get("dosisManual")
        if not isinstance(manual, Mapping):
            return cls.inactive()

        return cls(
            active=bool(manual.get("activo", False)),
            value=coerce_float(manual.get("valor"), 0.0),
        )
