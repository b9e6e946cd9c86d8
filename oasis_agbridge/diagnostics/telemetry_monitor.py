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
Diagnostic view of the raw telemetry stream.

Folds every decoded frame into one snapshot so an operator can check that the
guidance software is broadcasting: position, the three speed sources, the
three heading sources, satellite fix and the machine section byte.
"""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import replace
from typing import Optional

from oasis_agbridge.protocol.pgn_types import AntennaFrame
from oasis_agbridge.protocol.pgn_types import ImuHeadingFrame
from oasis_agbridge.protocol.pgn_types import MachineFrame
from oasis_agbridge.protocol.pgn_types import PositionFrame
from oasis_agbridge.protocol.pgn_types import SpeedFrame
from oasis_agbridge.protocol.pgn_types import SteerDataFrame
from oasis_agbridge.protocol.pgn_types import TelemetryFrame


# Seconds without a datagram before the report turns into an alert
STALE_AFTER_SEC: float = 2.0

_RULE: str = "=" * 52


@dataclass(frozen=True)
class TelemetrySnapshot:
    """Latest value seen from each telemetry source."""

    latitude: float = 0.0
    longitude: float = 0.0
    speed_gps_kph: float = 0.0
    speed_steer_kph: float = 0.0
    speed_machine_kph: float = 0.0
    heading_dual_deg: float = 0.0
    heading_true_deg: float = 0.0
    heading_imu_deg: float = 0.0
    satellites: int = 0
    fix_quality: int = 0
    sections: str = "00000000"
    last_update_sec: Optional[float] = None


class TelemetryMonitor:
    def __init__(self, udp_port: int) -> None:
        self._udp_port: int = udp_port
        self._snapshot: TelemetrySnapshot = TelemetrySnapshot()

    @property
    def snapshot(self) -> TelemetrySnapshot:
        return self._snapshot

    def observe(self, frame: TelemetryFrame, now_sec: float) -> None:
        """Record a decoded frame received at the given time."""
        snapshot: TelemetrySnapshot = replace(self._snapshot, last_update_sec=now_sec)

        if isinstance(frame, PositionFrame):
            snapshot = replace(
                snapshot, latitude=frame.latitude, longitude=frame.longitude
            )
        elif isinstance(frame, SpeedFrame):
            snapshot = replace(snapshot, speed_steer_kph=frame.speed_kph)
        elif isinstance(frame, AntennaFrame):
            snapshot = replace(
                snapshot,
                heading_dual_deg=frame.dual_heading_deg,
                heading_true_deg=frame.true_heading_deg,
                speed_gps_kph=frame.speed_kph,
                satellites=frame.satellites,
                fix_quality=frame.fix_quality,
            )
        elif isinstance(frame, ImuHeadingFrame):
            snapshot = replace(snapshot, heading_imu_deg=frame.heading_deg)
        elif isinstance(frame, MachineFrame):
            snapshot = replace(
                snapshot,
                speed_machine_kph=frame.speed_kph,
                sections=frame.section_string(),
            )
        elif isinstance(frame, SteerDataFrame) and frame.imu_heading_deg is not None:
            snapshot = replace(snapshot, heading_imu_deg=frame.imu_heading_deg)

        self._snapshot = snapshot

    def is_stale(self, now_sec: float) -> bool:
        last: Optional[float] = self._snapshot.last_update_sec
        return last is None or now_sec - last > STALE_AFTER_SEC

    def report(self, now_sec: float) -> list[str]:
        """Render the snapshot as report lines."""
        snapshot: TelemetrySnapshot = self._snapshot

        lines: list[str] = [_RULE, "TELEMETRY DIAGNOSTICS"]
        if snapshot.last_update_sec is None:
            lines.append("Last datagram: never")
        else:
            age_sec: float = now_sec - snapshot.last_update_sec
            lines.append(f"Last datagram: {age_sec:.1f}s ago")
        lines.append(_RULE)

        if self.is_stale(now_sec):
            lines.append(f"ALERT: no UDP data received on port {self._udp_port}")
            lines.append("   Check that the guidance software has UDP output enabled.")
            return lines

        lines.extend(
            [
                "POSITION:",
                f"   Lat: {snapshot.latitude:.8f}",
                f"   Lon: {snapshot.longitude:.8f}",
                f"   Satellites: {snapshot.satellites} | Fix: {snapshot.fix_quality}",
                "",
                "HEADING:",
                f"   Dual antenna: {snapshot.heading_dual_deg:.2f}°",
                f"   True course:  {snapshot.heading_true_deg:.2f}°",
                f"   IMU sensor:   {snapshot.heading_imu_deg:.2f}°",
                "",
                "SPEED:",
                f"   Primary (steer):   {snapshot.speed_steer_kph:.2f} km/h",
                f"   Backup (GPS):      {snapshot.speed_gps_kph:.2f} km/h",
                f"   Limited (machine): {snapshot.speed_machine_kph:.2f} km/h",
                "",
                "IMPLEMENT:",
                f"   Sections: [{snapshot.sections}]",
                _RULE,
            ]
        )
        return lines
