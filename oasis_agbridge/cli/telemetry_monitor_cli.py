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
Entry point for the console telemetry monitor.

Prints a live summary of the guidance datagrams seen on the UDP port.
"""

import argparse
import socket
import time

from oasis_agbridge.diagnostics.telemetry_monitor import TelemetryMonitor
from oasis_agbridge.protocol.pgn_constants import PgnConstants
from oasis_agbridge.protocol.pgn_decoder import MalformedFrameError
from oasis_agbridge.protocol.pgn_decoder import decode_frame


################################################################################
# Monitor parameters
################################################################################

# Time between screen refreshes, in seconds
REPORT_INTERVAL_SEC: float = 1.0

# Largest datagram read from the socket
MAX_DATAGRAM_SIZE: int = 1024

# ANSI sequence that clears the terminal and homes the cursor
_CLEAR_SCREEN: str = "\033[2J\033[H"


################################################################################
# Entry point
################################################################################


def _parse_args(args=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Monitor guidance telemetry")
    parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="Address to listen on",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=PgnConstants.DEFAULT_UDP_PORT,
        help="UDP port carrying the guidance datagrams",
    )
    options, _ = parser.parse_known_args(args=args)
    return options


def main(args=None) -> None:
    options = _parse_args(args=args)

    monitor = TelemetryMonitor(udp_port=options.port)

    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((options.host, options.port))
        sock.settimeout(REPORT_INTERVAL_SEC)

        next_report_sec: float = time.monotonic()

        try:
            while True:
                try:
                    payload, _ = sock.recvfrom(MAX_DATAGRAM_SIZE)
                except socket.timeout:
                    payload = b""

                now_sec: float = time.monotonic()

                if payload:
                    try:
                        monitor.observe(decode_frame(payload), now_sec)
                    except MalformedFrameError:
                        pass

                if now_sec >= next_report_sec:
                    print(_CLEAR_SCREEN + "\n".join(monitor.report(now_sec)))
                    next_report_sec = now_sec + REPORT_INTERVAL_SEC
        except KeyboardInterrupt:
            pass
