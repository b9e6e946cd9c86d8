################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Bridge settings with defaults, optionally overridden from a YAML file."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from typing import Optional

import yaml

from oasis_agbridge.dosing.dose_engine import DoseEngineConfig
from oasis_agbridge.implement.implement_types import DEFAULT_ROW_SPACING_M
from oasis_agbridge.implement.implement_types import DEFAULT_TRAIN_OFFSET_M
from oasis_agbridge.implement.train_delay import DEFAULT_QUEUE_CAPACITY
from oasis_agbridge.protocol.pgn_constants import PgnConstants


class BridgeConfigError(Exception):
    """Raised when the bridge settings are invalid."""


@dataclass(frozen=True)
class BridgeConfig:
    """Settings for one bridge process."""

    # Address and port the guidance telemetry is received on
    udp_host: str = "0.0.0.0"
    udp_port: int = PgnConstants.DEFAULT_UDP_PORT

    # MQTT broker the commands are published to
    mqtt_host: str = "127.0.0.1"
    mqtt_port: int = 1883

    # Configuration service endpoints
    implement_config_url: str = "http://localhost:8080/api/gis/config-implemento"
    work_config_url: str = "http://localhost:8080/api/gis/config-trabajo"

    # Interval between implement config refreshes, in seconds
    config_refresh_sec: float = 30.0

    # Timeout of the implement config fetch, in seconds
    http_timeout_sec: float = 2.0

    # Timeout of the per-computation manual dose fetch, in seconds
    override_timeout_sec: float = 0.5

    # GeoJSON prescription map, reloaded when it changes
    prescription_path: str = "data/ultimo_mapa.json"

    # Fallbacks when the implement config omits geometry, in meters
    default_row_spacing_m: float = DEFAULT_ROW_SPACING_M
    default_train_offset_m: float = DEFAULT_TRAIN_OFFSET_M

    # Bound on section snapshots waiting for the trailing train
    delay_queue_capacity: int = DEFAULT_QUEUE_CAPACITY

    # Base rates above this are per hectare
    hectare_rate_threshold: float = 500.0

    # Speeds at or below this produce no dose, in km/h
    speed_deadband_kph: float = 0.5

    # Root logger level name
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Validate value ranges."""
        for name in ("udp_port", "mqtt_port"):
            port: int = getattr(self, name)
            if not 0 < port < 65536:
                raise BridgeConfigError(f"{name} must be a valid port, got {port}")

        for name in (
            "config_refresh_sec",
            "http_timeout_sec",
            "override_timeout_sec",
            "default_row_spacing_m",
        ):
            if getattr(self, name) <= 0.0:
                raise BridgeConfigError(f"{name} must be positive")

        if self.default_train_offset_m < 0.0:
            raise BridgeConfigError("default_train_offset_m must be non-negative")

        if self.delay_queue_capacity <= 0:
            raise BridgeConfigError("delay_queue_capacity must be positive")

        if self.speed_deadband_kph < 0.0:
            raise BridgeConfigError("speed_deadband_kph must be non-negative")

        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise BridgeConfigError(f"Unknown log_level: {self.log_level}")

    def dose_engine_config(self) -> DoseEngineConfig:
        return DoseEngineConfig(
            hectare_rate_threshold=self.hectare_rate_threshold,
            speed_deadband_kph=self.speed_deadband_kph,
        )


def load_bridge_config(path: Optional[Path] = None) -> BridgeConfig:
    """
    Load bridge settings, falling back to defaults for missing keys.

    :param path: YAML file with a mapping of setting names, or None for the
        defaults

    :raises BridgeConfigError: If the file cannot be read, holds unknown keys
        or values of the wrong type
    """
    if path is None:
        return BridgeConfig()

    try:
        with open(path, "r", encoding="utf-8") as file:
            document: Any = yaml.safe_load(file)
    except (OSError, yaml.YAMLError) as err:
        raise BridgeConfigError(f"Failed to read bridge config {path}: {err}") from err

    if document is None:
        return BridgeConfig()

    if not isinstance(document, dict):
        raise BridgeConfigError("Bridge config must be a mapping")

    fields: dict[str, dataclasses.Field] = {
        field.name: field for field in dataclasses.fields(BridgeConfig)
    }

    unknown: list[str] = sorted(str(key) for key in document if key not in fields)
    if unknown:
        raise BridgeConfigError(f"Unknown bridge config keys: {', '.join(unknown)}")

    values: dict[str, Any] = {}
    for key, value in document.items():
        values[key] = _coerce_field(key, fields[key].type, value)

    return BridgeConfig(**values)


def _coerce_field(name: str, field_type: Any, value: Any) -> Any:
    # With postponed annotations, field types are strings
    type_name: str = field_type if isinstance(field_type, str) else field_type.__name__

    if type_name == "int":
        if isinstance(value, bool) or not isinstance(value, int):
            raise BridgeConfigError(f"{name} must be an integer")
        return value

    if type_name == "float":
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise BridgeConfigError(f"{name} must be a number")
        return float(value)

    if not isinstance(value, str):
        raise BridgeConfigError(f"{name} must be a string")
    return value
