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

from oasis_agbridge.implement.implement_types import DEFAULT_ROW_SPACING_M
from oasis_agbridge.implement.implement_types import DEFAULT_TRAIN_OFFSET_M
from oasis_agbridge.implement.implement_types import ActuatorConfig
from oasis_agbridge.implement.implement_types import ImplementConfig
from oasis_agbridge.implement.implement_types import ImplementConfigError
from oasis_agbridge.implement.implement_types import ManualDoseOverride
from oasis_agbridge.implement.implement_types import Train
from oasis_agbridge.implement.implement_types import coerce_float
from oasis_agbridge.implement.implement_types import parse_train


def test_coerce_float() -> None:
    assert coerce_float("1.5", 0.0) == 1.5
    assert coerce_float(None, 2.0) == 2.0
    assert coerce_float("abc", 2.0) == 2.0
    assert coerce_float(True, 2.0) == 2.0
    assert coerce_float(float("inf"), 2.0) == 2.0


def test_parse_train() -> None:
    assert parse_train(2) == Train.SECONDARY
    assert parse_train("2") == Train.SECONDARY
    assert parse_train(1) == Train.PRIMARY
    assert parse_train(None) == Train.PRIMARY
    assert parse_train(7) == Train.PRIMARY
    assert parse_train("Trasero") == Train.SECONDARY
    assert parse_train("delantero") == Train.PRIMARY


def test_implement_config_from_payload() -> None:
    config: ImplementConfig = ImplementConfig.from_payload(
        {
            "distanciaSurcos": 0.52,
            "distanciaEntreTrenes": 2.5,
            "motores": [
                {"uid_esp": "A1", "cp": 0.25, "seccionAOG": 3, "tren": 2},
                {"id": 17},
                "not a motor",
            ],
        }
    )

    assert config.row_spacing_m == pytest.approx(0.52)
    assert config.train_offset_m == pytest.approx(2.5)
    assert config.actuators == (
        ActuatorConfig(
            "A1", calibration_factor=0.25, train=Train.SECONDARY, section_index=3
        ),
        ActuatorConfig(
            "17", calibration_factor=1.0, train=Train.PRIMARY, section_index=0
        ),
    )


def test_implement_config_defaults() -> None:
    config: ImplementConfig = ImplementConfig.from_payload(
        {"distanciaSurcos": 0, "distanciaEntreTrenes": "n/a"}
    )

    assert config.row_spacing_m == DEFAULT_ROW_SPACING_M
    assert config.train_offset_m == DEFAULT_TRAIN_OFFSET_M
    assert config.actuators == ()


def test_implement_config_custom_defaults() -> None:
    config: ImplementConfig = ImplementConfig.from_payload(
        {}, default_row_spacing_m=0.35, default_train_offset_m=0.8
    )

    assert config.row_spacing_m == 0.35
    assert config.train_offset_m == 0.8


def test_implement_config_must_be_object() -> None:
    with pytest.raises(ImplementConfigError):
        ImplementConfig.from_payload([1, 2, 3])


def test_manual_override_from_payload() -> None:
    override = ManualDoseOverride.from_payload(
        {"dosisManual": {"activo": True, "valor": "12.5"}}
    )

    assert override.active
    assert override.value == 12.5


def test_manual_override_defaults() -> None:
    assert not ManualDoseOverride.from_payload({}).active
    assert not ManualDoseOverride.from_payload(None).active

    override = ManualDoseOverride.from_payload(
        {"dosisManual": {"activo": True, "valor": "lots"}}
    )
    assert override.active
    assert override.value == 0.0


def _section_index(value: object) -> int:
    payload: dict[str, object] = {"uid_esp": "m9"}
    if value is not None:
        payload["seccionAOG"] = value
    return ActuatorConfig.from_payload(payload).section_index


def test_out_of_range_section_index_is_kept() -> None:
    assert _section_index(70) == 70
    assert _section_index(-1) == -1


def test_missing_section_index_defaults_to_zero() -> None:
    assert _section_index(None) == 0
    assert _section_index("n/a") == 0
    assert _section_index("12") == 12


def test_negative_geometry_and_calibration_use_defaults() -> None:
    config: ImplementConfig = ImplementConfig.from_payload(
        {
            "distanciaSurcos": -0.5,
            "distanciaEntreTrenes": -1.0,
            "motores": [{"uid_esp": "m1", "cp": -2.0}],
        }
    )

    assert config.row_spacing_m == DEFAULT_ROW_SPACING_M
    assert config.train_offset_m == DEFAULT_TRAIN_OFFSET_M
    assert config.actuators[0].calibration_factor == 1.0
