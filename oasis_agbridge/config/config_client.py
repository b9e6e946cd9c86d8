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
Client for the configuration service and the cached implement snapshot.

The implement configuration is refreshed periodically and swapped whole into
the cache; a failed refresh keeps the previous snapshot. The manual dose is
fetched on every dose computation with a short timeout and degrades to
inactive on any failure.
"""

from __future__ import annotations

import logging
import threading
from typing import Any
from typing import Optional
from typing import Protocol

import requests

from oasis_agbridge.implement.implement_types import DEFAULT_ROW_SPACING_M
from oasis_agbridge.implement.implement_types import DEFAULT_TRAIN_OFFSET_M
from oasis_agbridge.implement.implement_types import ImplementConfig
from oasis_agbridge.implement.implement_types import ImplementConfigError
from oasis_agbridge.implement.implement_types import ManualDoseOverride


class HttpSession(Protocol):
    def get(self, url: str, **kwargs: Any) -> Any: ...


class ConfigServiceClient:
    """Thin HTTP client for the implement and work configuration endpoints."""

    def __init__(
        self,
        implement_config_url: str,
        work_config_url: str,
        logger: logging.Logger,
        http_timeout_sec: float = 2.0,
        override_timeout_sec: float = 0.5,
        default_row_spacing_m: float = DEFAULT_ROW_SPACING_M,
        default_train_offset_m: float = DEFAULT_TRAIN_OFFSET_M,
        session: Optional[HttpSession] = None,
    ) -> None:
        self._implement_config_url: str = implement_config_url
        self._work_config_url: str = work_config_url
        self._log: logging.Logger = logger
        self._http_timeout_sec: float = http_timeout_sec
        self._override_timeout_sec: float = override_timeout_sec
        self._default_row_spacing_m: float = default_row_spacing_m
        self._default_train_offset_m: float = default_train_offset_m
        self._session: HttpSession = (
            session if session is not None else requests.Session()
        )

    def fetch_implement_config(self) -> Optional[ImplementConfig]:
        """
        Fetch the implement configuration.

        :return: The parsed snapshot, or None if the service could not be
            reached or returned an unusable document
        """
        try:
            payload: Any = self._get_json(
                self._implement_config_url, self._http_timeout_sec
            )
            return ImplementConfig.from_payload(
                payload,
                default_row_spacing_m=self._default_row_spacing_m,
                default_train_offset_m=self._default_train_offset_m,
            )
        except (requests.RequestException, ValueError) as err:
            self._log.error(f"Failed to fetch implement config: {err}")
        except ImplementConfigError as err:
            self._log.error(f"Invalid implement config: {err}")

        return None

    def fetch_manual_override(self) -> ManualDoseOverride:
        """
        Fetch the operator's manual dose.

        :return: The manual dose, or an inactive one on any failure
        """
        try:
            payload: Any = self._get_json(
                self._work_config_url, self._override_timeout_sec
            )
        except (requests.RequestException, ValueError) as err:
            self._log.debug(f"Manual dose unavailable, assuming inactive: {err}")
            return ManualDoseOverride.inactive()

        return ManualDoseOverride.from_payload(payload)

    def _get_json(self, url: str, timeout_sec: float) -> Any:
        response: Any = self._session.get(url, timeout=timeout_sec)
        response.raise_for_status()
        return response.json()


class ImplementConfigCache:
    """
    Last known implement configuration, replaced atomically on refresh.
    """

    def __init__(self, client: ConfigServiceClient, logger: logging.Logger) -> None:
        self._client: ConfigServiceClient = client
        self._log: logging.Logger = logger
        self._lock = threading.Lock()
        self._config: Optional[ImplementConfig] = None

    def current(self) -> Optional[ImplementConfig]:
        with self._lock:
            return self._config

    def refresh(self) -> bool:
        """
        Fetch a new snapshot from the service.

        :return: True if the cache was updated, false if the previous snapshot
            was kept
        """
        config: Optional[ImplementConfig] = self._client.fetch_implement_config()
        if config is None:
            return False

        with self._lock:
            self._config = config

        self._log.info(
            "Implement config synchronized: "
            f"{len(config.actuators)} actuators, "
            f"row spacing {config.row_spacing_m} m, "
            f"train offset {config.train_offset_m} m"
        )
        return True
