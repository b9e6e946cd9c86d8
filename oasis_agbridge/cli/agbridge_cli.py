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
Entry point for the AgOpenGPS telemetry to MQTT dosing bridge.
"""

import argparse
import logging
from pathlib import Path

from oasis_agbridge.config.bridge_config import BridgeConfig
from oasis_agbridge.config.bridge_config import load_bridge_config
from oasis_agbridge.mqtt.command_publisher import connect_mqtt
from oasis_agbridge.mqtt.command_publisher import disconnect_mqtt
from oasis_agbridge.nodes.telemetry_bridge_node import NODE_NAME
from oasis_agbridge.nodes.telemetry_bridge_node import TelemetryBridgeNode


################################################################################
# Entry point
################################################################################


def _parse_args(args=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Start the telemetry bridge")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML file with bridge settings",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override the configured log level",
    )
    options, _ = parser.parse_known_args(args=args)
    return options


def main(args=None) -> None:
    options = _parse_args(args=args)

    config: BridgeConfig = load_bridge_config(options.config)

    logging.basicConfig(
        level=(options.log_level or config.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger: logging.Logger = logging.getLogger(NODE_NAME)

    mqtt_client = connect_mqtt(config.mqtt_host, config.mqtt_port, logger)

    node = TelemetryBridgeNode.from_config(config, mqtt_client, logger)
    node.start_background_tasks(config.config_refresh_sec)

    try:
        node.serve(config.udp_host, config.udp_port)
    except KeyboardInterrupt:
        pass
    finally:
        node.stop()
        disconnect_mqtt(mqtt_client)
