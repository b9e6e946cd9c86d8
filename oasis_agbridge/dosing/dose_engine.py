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
Dose computation: from prescription or manual dose to actuator pulse rates.

For every actuator, the target pulse rate is

    pps = normalized_rate * speed_mps / calibration_factor

when the actuator's section is on, the base rate is positive and the vehicle
is moving, and zero otherwise. Rates above the hectare threshold are taken as
per-hectare rates and converted to per-meter-of-row with the row spacing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from typing import Optional

from oasis_agbridge.dosing.prescription_map import PrescriptionMap
from oasis_agbridge.implement.implement_types import DEFAULT_CALIBRATION_FACTOR
from oasis_agbridge.implement.implement_types import ActuatorConfig
from oasis_agbridge.implement.implement_types import ImplementConfig
from oasis_agbridge.implement.implement_types import ManualDoseOverride
from oasis_agbridge.implement.implement_types import Train
from oasis_agbridge.implement.section_mask import SECTION_COUNT
from oasis_agbridge.implement.train_delay import TrainStates
from oasis_agbridge.localization.units import kph_to_mps


# Square meters per hectare
_M2_PER_HECTARE: float = 10_000.0


@dataclass(frozen=True)
class DoseEngineConfig:
    """Configuration values for the dose engine."""

    # Base rates above this are per-hectare rates, at or below per-meter
    hectare_rate_threshold: float = 500.0

    # Speeds at or below this are treated as stationary, in km/h
    speed_deadband_kph: float = 0.5


@dataclass(frozen=True)
class ActuatorTarget:
    """Setpoint for one actuator.

    Attributes:
        actuator_id: Actuator the setpoint is for
        target_pps: Target pulses per second, rounded to 2 decimals
        base_rate: Rate before normalization, from the override or map
        section_on: True if the actuator's section is on for its train
        train: Train the actuator belongs to
        speed_mps: Speed used for the computation, in m/s
    """

    actuator_id: str
    target_pps: float
    base_rate: float
    section_on: bool
    train: Train
    speed_mps: float

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON document understood by the motor controllers."""
        return {
            "pps": self.target_pps,
            "dosis_ref": self.base_rate,
            "seccion_on": self.section_on,
            "tren": int(self.train),
            "v_ms": round(self.speed_mps, 2),
        }


def normalize_rate(base_rate: float, row_spacing_m: float, threshold: float) -> float:
    """Convert a per-hectare rate to a per-meter-of-row rate.

    Rates at or below the threshold are already per meter and are returned
    unchanged.
    """
    if base_rate > threshold:
        return base_rate * row_spacing_m / _M2_PER_HECTARE
    return base_rate


class DoseEngine:
    """Stateless computation of per-actuator target rates."""

    def __init__(self, config: Optional[DoseEngineConfig] = None) -> None:
        self._config: DoseEngineConfig = config or DoseEngineConfig()

    @property
    def config(self) -> DoseEngineConfig:
        return self._config

    def speed_mps(self, speed_kph: float) -> float:
        """Convert km/h to m/s, zeroing speeds inside the dead band."""
        if speed_kph <= self._config.speed_deadband_kph:
            return 0.0
        return kph_to_mps(speed_kph)

    def base_rate(
        self,
        latitude: float,
        longitude: float,
        override: ManualDoseOverride,
        prescription: Optional[PrescriptionMap],
    ) -> float:
        """Return the manual dose if active, else the map rate at the point."""
        if override.active:
            return override.value
        if prescription is not None:
            return prescription.rate_at(latitude, longitude)
        return 0.0

    def compute(
        self,
        latitude: float,
        longitude: float,
        implement: Optional[ImplementConfig],
        override: ManualDoseOverride,
        prescription: Optional[PrescriptionMap],
        speed_kph: float,
        trains: TrainStates,
    ) -> list[ActuatorTarget]:
        """
        Compute one target per configured actuator.

        :return: Targets in actuator order, or an empty list when no implement
            or actuators are configured
        """
        if implement is None or not implement.actuators:
            return []

        speed_mps: float = self.speed_mps(speed_kph)
        base_rate: float = self.base_rate(latitude, longitude, override, prescription)

        return [
            self._target_for(actuator, implement, trains, base_rate, speed_mps)
            for actuator in implement.actuators
        ]

    def _target_for(
        self,
        actuator: ActuatorConfig,
        implement: ImplementConfig,
        trains: TrainStates,
        base_rate: float,
        speed_mps: float,
    ) -> ActuatorTarget:
        section_on: bool = False
        if 0 <= actuator.section_index < SECTION_COUNT:
            section_on = trains.mask_for(actuator.train).is_on(actuator.section_index)

        target_pps: float = 0.0
        if section_on and base_rate > 0.0 and speed_mps > 0.0:
            rate: float = normalize_rate(
                base_rate,
                implement.row_spacing_m,
                self._config.hectare_rate_threshold,
            )
            calibration: float = actuator.calibration_factor
            if calibration <= 0.0:
                calibration = DEFAULT_CALIBRATION_FACTOR
            target_pps = rate * speed_mps / calibration

        return ActuatorTarget(
            actuator_id=actuator.actuator_id,
            target_pps=round(target_pps, 2),
            base_rate=base_rate,
            section_on=section_on,
            train=actuator.train,
            speed_mps=speed_mps,
        )
