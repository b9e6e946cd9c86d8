################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

#
# Telemetry bridge (guidance UDP -> MQTT dosing commands)
#
# Every datagram is decoded and routed by kind:
#
#   position      -> heading estimate -> fused position -> dose computation
#   speed         -> current speed -> speed topic
#   section mask  -> train delay engine -> section topic -> dose computation
#
# Datagram handling is serialized behind one lock. The implement config and
# the prescription map are refreshed by background tasks that swap whole
# snapshots, so a computation always sees one complete version of each.
#

from __future__ import annotations

import logging
import socket
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable
from typing import Optional

from oasis_agbridge.config.bridge_config import BridgeConfig
from oasis_agbridge.config.config_client import ConfigServiceClient
from oasis_agbridge.config.config_client import ImplementConfigCache
from oasis_agbridge.dosing.dose_engine import ActuatorTarget
from oasis_agbridge.dosing.dose_engine import DoseEngine
from oasis_agbridge.dosing.prescription_map import PrescriptionStore
from oasis_agbridge.dosing.prescription_watcher import PrescriptionWatcher
from oasis_agbridge.implement.implement_types import DEFAULT_TRAIN_OFFSET_M
from oasis_agbridge.implement.implement_types import ImplementConfig
from oasis_agbridge.implement.implement_types import ManualDoseOverride
from oasis_agbridge.implement.train_delay import TrainDelayEngine
from oasis_agbridge.implement.train_delay import TrainStates
from oasis_agbridge.localization.heading_estimator import HeadingEstimator
from oasis_agbridge.localization.units import kph_to_mps
from oasis_agbridge.mqtt.command_publisher import CommandPublisher
from oasis_agbridge.mqtt.command_publisher import MqttPublisher
from oasis_agbridge.process.periodic_thread import PeriodicThread
from oasis_agbridge.protocol.pgn_decoder import MalformedFrameError
from oasis_agbridge.protocol.pgn_decoder import decode_frame
from oasis_agbridge.protocol.pgn_types import PositionFrame
from oasis_agbridge.protocol.pgn_types import SectionMaskFrame
from oasis_agbridge.protocol.pgn_types import SpeedFrame
from oasis_agbridge.protocol.pgn_types import TelemetryFrame


################################################################################
# Bridge parameters
################################################################################

NODE_NAME: str = "agbridge"

# Largest datagram read from the socket
MAX_DATAGRAM_SIZE: int = 1024

# Socket timeout so the receive loop notices stop requests, in seconds
RECEIVE_TIMEOUT_SEC: float = 0.5


@dataclass(frozen=True)
class GeoPosition:
    latitude: float
    longitude: float


################################################################################
# Bridge node
################################################################################


class TelemetryBridgeNode:
    def __init__(
        self,
        publisher: CommandPublisher,
        config_client: ConfigServiceClient,
        implement_cache: ImplementConfigCache,
        prescriptions: PrescriptionStore,
        dose_engine: DoseEngine,
        logger: logging.Logger,
        delay_queue_capacity: int,
        default_train_offset_m: float = DEFAULT_TRAIN_OFFSET_M,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize resources.
        """
        self._publisher: CommandPublisher = publisher
        self._config_client: ConfigServiceClient = config_client
        self._implement_cache: ImplementConfigCache = implement_cache
        self._prescriptions: PrescriptionStore = prescriptions
        self._dose_engine: DoseEngine = dose_engine
        self._log: logging.Logger = logger
        self._default_train_offset_m: float = default_train_offset_m
        self._clock: Callable[[], float] = clock

        #
        # Telemetry state, guarded by _lock
        #

        self._lock = threading.Lock()
        self._heading = HeadingEstimator(clock=clock)
        self._trains = TrainDelayEngine(
            queue_capacity=delay_queue_capacity, clock=clock
        )
        self._speed_kph: float = 0.0
        self._last_position: Optional[GeoPosition] = None

        #
        # Background tasks
        #

        self._refresh_thread: Optional[PeriodicThread] = None
        self._watcher: Optional[PrescriptionWatcher] = None
        self._stop_event = threading.Event()

    @property
    def speed_kph(self) -> float:
        return self._speed_kph

    @property
    def heading_estimator(self) -> HeadingEstimator:
        return self._heading

    @property
    def train_engine(self) -> TrainDelayEngine:
        return self._trains

    def handle_datagram(self, payload: bytes, now_sec: Optional[float] = None) -> None:
        """
        Decode one datagram and run it through the pipeline.

        Malformed datagrams are dropped.
        """
        try:
            frame: TelemetryFrame = decode_frame(payload)
        except MalformedFrameError as err:
            self._log.debug(f"Dropping datagram: {err}")
            return

        with self._lock:
            self._dispatch(frame, now_sec)

    def _dispatch(self, frame: TelemetryFrame, now_sec: Optional[float]) -> None:
        if isinstance(frame, SpeedFrame):
            self._on_speed(frame)
        elif isinstance(frame, PositionFrame):
            self._on_position(frame, now_sec)
        elif isinstance(frame, SectionMaskFrame):
            self._on_section_mask(frame, now_sec)

    def _on_speed(self, frame: SpeedFrame) -> None:
        self._speed_kph = frame.speed_kph
        self._publisher.publish_speed(frame.speed_kph)

    def _on_position(self, frame: PositionFrame, now_sec: Optional[float]) -> None:
        computed_deg: float = self._heading.update(
            frame.latitude, frame.longitude, timestamp_sec=now_sec
        )
        heading_deg: float = self._heading.fuse_device_heading(
            computed_deg, frame.heading_rad, kph_to_mps(self._speed_kph)
        )

        self._last_position = GeoPosition(frame.latitude, frame.longitude)
        self._publisher.publish_position(frame.latitude, frame.longitude, heading_deg)

        self._compute_dose(frame.latitude, frame.longitude)

    def _on_section_mask(
        self, frame: SectionMaskFrame, now_sec: Optional[float]
    ) -> None:
        implement: Optional[ImplementConfig] = self._implement_cache.current()
        train_offset_m: float = (
            implement.train_offset_m
            if implement is not None
            else self._default_train_offset_m
        )

        states: TrainStates = self._trains.update(
            frame.mask, self._speed_kph, train_offset_m, timestamp_sec=now_sec
        )
        self._publisher.publish_sections(states.primary)

        # No dose until the first GPS fix
        if self._last_position is not None:
            self._compute_dose(
                self._last_position.latitude, self._last_position.longitude
            )

    def _compute_dose(self, latitude: float, longitude: float) -> list[ActuatorTarget]:
        implement: Optional[ImplementConfig] = self._implement_cache.current()
        if implement is None or not implement.actuators:
            return []

        override: ManualDoseOverride = self._config_client.fetch_manual_override()

        targets: list[ActuatorTarget] = self._dose_engine.compute(
            latitude,
            longitude,
            implement,
            override,
            self._prescriptions.current(),
            self._speed_kph,
            self._trains.states(),
        )
        for target in targets:
            self._publisher.publish_target(target)

        return targets

    ############################################################################
    # Lifecycle
    ############################################################################

    def start_background_tasks(self, refresh_interval_sec: float) -> None:
        """Start the config refresh timer and the prescription file watcher."""
        self._refresh_thread = PeriodicThread(
            name="config_refresh",
            interval_sec=refresh_interval_sec,
            task=self._implement_cache.refresh,
            logger=self._log,
        )
        self._refresh_thread.start()

        self._watcher = PrescriptionWatcher(self._prescriptions, self._log)
        self._watcher.start()

    def serve(self, host: str, port: int) -> None:
        """Receive datagrams until stop() is called."""
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((host, port))
            sock.settimeout(RECEIVE_TIMEOUT_SEC)

            self._log.info(f"Telemetry bridge listening on UDP {host}:{port}")

            while not self._stop_event.is_set():
                try:
                    payload, _ = sock.recvfrom(MAX_DATAGRAM_SIZE)
                except socket.timeout:
                    continue

                self.handle_datagram(payload)

    def stop(self) -> None:
        self._stop_event.set()

        if self._refresh_thread is not None:
            self._refresh_thread.stop()
            self._refresh_thread.join()
            self._refresh_thread = None

        if self._watcher is not None:
            self._watcher.stop()
            self._watcher = None

    @classmethod
    def from_config(
        cls,
        config: BridgeConfig,
        mqtt_client: MqttPublisher,
        logger: logging.Logger,
    ) -> TelemetryBridgeNode:
        """
        Wire the bridge to its HTTP, file and MQTT collaborators.
        """
        config_client = ConfigServiceClient(
            implement_config_url=config.implement_config_url,
            work_config_url=config.work_config_url,
            logger=logger,
            http_timeout_sec=config.http_timeout_sec,
            override_timeout_sec=config.override_timeout_sec,
            default_row_spacing_m=config.default_row_spacing_m,
            default_train_offset_m=config.default_train_offset_m,
        )

        return cls(
            publisher=CommandPublisher(mqtt_client, logger),
            config_client=config_client,
            implement_cache=ImplementConfigCache(config_client, logger),
            prescriptions=PrescriptionStore(Path(config.prescription_path), logger),
            dose_engine=DoseEngine(config.dose_engine_config()),
            logger=logger,
            delay_queue_capacity=config.delay_queue_capacity,
            default_train_offset_m=config.default_train_offset_m,
        )
