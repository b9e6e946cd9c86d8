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

from oasis_agbridge.diagnostics.telemetry_monitor import TelemetryMonitor
from oasis_agbridge.protocol.pgn_types import AntennaFrame
from oasis_agbridge.protocol.pgn_types import MachineFrame
from oasis_agbridge.protocol.pgn_types import PositionFrame
from oasis_agbridge.protocol.pgn_types import SpeedFrame
from oasis_agbridge.protocol.pgn_types import SteerDataFrame


def test_no_data_reports_alert() -> None:
    monitor = TelemetryMonitor(udp_port=17777)

    lines: list[str] = monitor.report(now_sec=10.0)

    assert monitor.is_stale(10.0)
    assert "Last datagram: never" in lines
    assert any("ALERT: no UDP data received on port 17777" in line for line in lines)


def test_frames_update_snapshot() -> None:
    monitor = TelemetryMonitor(udp_port=17777)

    monitor.observe(PositionFrame(latitude=-34.5, longitude=-58.5), 1.0)
    monitor.observe(SpeedFrame(speed_kph=8.4), 1.1)
    monitor.observe(
        AntennaFrame(
            dual_heading_deg=12.0,
            true_heading_deg=13.0,
            speed_kph=8.1,
            satellites=15,
            fix_quality=4,
        ),
        1.2,
    )
    monitor.observe(MachineFrame(speed_kph=8.0, section_byte=0b1001), 1.3)
    monitor.observe(SteerDataFrame(imu_heading_deg=None), 1.4)

    snapshot = monitor.snapshot
    assert snapshot.latitude == -34.5
    assert snapshot.longitude == -58.5
    assert snapshot.speed_steer_kph == 8.4
    assert snapshot.speed_gps_kph == 8.1
    assert snapshot.speed_machine_kph == 8.0
    assert snapshot.heading_dual_deg == 12.0
    assert snapshot.satellites == 15
    assert snapshot.sections == "00001001"
    assert snapshot.heading_imu_deg == 0.0
    assert snapshot.last_update_sec == 1.4


def test_fresh_data_reports_sections() -> None:
    monitor = TelemetryMonitor(udp_port=17777)
    monitor.observe(MachineFrame(speed_kph=8.0, section_byte=0b11), 5.0)

    lines: list[str] = monitor.report(now_sec=5.5)

    assert not monitor.is_stale(5.5)
    assert "Last datagram: 0.5s ago" in lines
    assert "   Sections: [00000011]" in lines
    assert not any("ALERT" in line for line in lines)


def test_data_goes_stale() -> None:
    monitor = TelemetryMonitor(udp_port=17777)
    monitor.observe(SpeedFrame(speed_kph=1.0), 5.0)

    assert monitor.is_stale(7.5)
    assert any("ALERT" in line for line in monitor.report(now_sec=7.5))
