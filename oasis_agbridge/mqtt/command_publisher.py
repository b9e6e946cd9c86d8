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
# MQTT command publisher
#
# Note: If you have mosquitto-clients installed, you can use the following
# command to echo everything the bridge publishes:
#
#   mosquitto_sub -h 127.0.0.1 -p 1883 -t 'aog/#' -t 'sections/#' -t 'agp/#' -v
#

from __future__ import annotations

import json
import logging
from typing import Any
from typing import Protocol

import paho.mqtt.client

from oasis_agbridge.dosing.dose_engine import ActuatorTarget
from oasis_agbridge.implement.section_mask import SectionMask


################################################################################
# MQTT parameters
################################################################################

# Immediate-train section state (JSON list of 0/1)
SECTIONS_TOPIC: str = "sections/state"

# Fused position and heading (JSON object)
POSITION_TOPIC: str = "aog/machine/position"

# Current speed in km/h (plain text, one decimal)
SPEED_TOPIC: str = "aog/machine/speed"

# Per-actuator setpoints, formatted with the actuator ID
TARGET_TOPIC_FORMAT: str = "agp/quantix/{actuator_id}/target"


class MqttPublisher(Protocol):
    def publish(self, topic: str, payload: Any = None) -> Any: ...


class CommandPublisher:
    """Formats bridge outputs and publishes them on the MQTT broker."""

    def __init__(self, client: MqttPublisher, logger: logging.Logger) -> None:
        self._client: MqttPublisher = client
        self._log: logging.Logger = logger

    def publish_sections(self, mask: SectionMask) -> None:
        self._publish(SECTIONS_TOPIC, json.dumps(mask.to_list()))

    def publish_position(
        self, latitude: float, longitude: float, heading_deg: float
    ) -> None:
        payload: dict[str, float] = {
            "lat": latitude,
            "lon": longitude,
            "heading": heading_deg,
        }
        self._publish(POSITION_TOPIC, json.dumps(payload))

    def publish_speed(self, speed_kph: float) -> None:
        self._publish(SPEED_TOPIC, f"{speed_kph:.1f}")

    def publish_target(self, target: ActuatorTarget) -> None:
        topic: str = TARGET_TOPIC_FORMAT.format(actuator_id=target.actuator_id)
        self._publish(topic, json.dumps(target.to_payload()))

    def _publish(self, topic: str, payload: str) -> None:
        # Publishing is best effort; the transport owns delivery
        self._client.publish(topic, payload)


def connect_mqtt(
    host: str, port: int, logger: logging.Logger
) -> paho.mqtt.client.Client:
    """
    Create an MQTT client and start its network loop in a background thread.

    The client reconnects on its own if the broker goes away.
    """
    client = paho.mqtt.client.Client(paho.mqtt.client.CallbackAPIVersion.VERSION2)
    client.reconnect_delay_set(min_delay=1, max_delay=30)
    client.connect_async(host, port)
    client.loop_start()

    logger.info(f"MQTT client connecting to {host}:{port}")

    return client


def disconnect_mqtt(client: paho.mqtt.client.Client) -> None:
    client.disconnect()
    client.loop_stop()
