"""Home Assistant MQTT discovery and state publishing."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt

from .bus import BusClient
from .measurements.models import MeasurementResult
from .sensors import DeviceIdentity, SensorType

LOGGER = logging.getLogger(__name__)

DEVICE_NAME = "Speedtest Sensor"
DEVICE_MANUFACTURER = "st2mqtt"
DEVICE_MODEL = "fast.com speed test"


class SensorPublisher:
    def __init__(self, bus: BusClient, identity: DeviceIdentity, min_download_mbps: float = 5.0):
        self.bus = bus
        self.identity = identity
        self.min_download_mbps = min_download_mbps

    def discovery_payload(self, sensor: SensorType) -> Dict[str, Any]:
        return {
            "name": sensor.display_name,
            "state_topic": self.identity.state_topic,
            "device_class": sensor.device_class,
            "unique_id": self.identity.unique_id(sensor),
            "value_template": f"{{{{ value_json.{sensor.value} }}}}",
            "icon": sensor.icon,
            "unit_of_measurement": sensor.unit,
            "device": {
                "name": DEVICE_NAME,
                "identifiers": [self.identity.device_id],
                "manufacturer": DEVICE_MANUFACTURER,
                "model": DEVICE_MODEL,
            },
        }

    def publish_discovery(self, sensor: SensorType) -> mqtt.MQTTMessageInfo:
        topic = self.identity.discovery_topic(sensor)
        LOGGER.info("Publishing discovery message to %s", topic)
        return self.bus.publish(topic, json.dumps(self.discovery_payload(sensor)), retain=True)

    def publish_discovery_burst(self, wait: bool = True) -> None:
        """Publish the config of every sensor, queueing all four before waiting."""
        infos = [self.publish_discovery(sensor) for sensor in SensorType]
        if wait:
            self.bus.wait_for(infos)

    def publish_state(self, result: MeasurementResult) -> Optional[mqtt.MQTTMessageInfo]:
        if result.download_speed < self.min_download_mbps:
            LOGGER.warning(
                "Download speed is less than %s Mbps (%s), skipping publishing",
                self.min_download_mbps,
                result.download_speed,
            )
            return None

        topic = self.identity.state_topic
        LOGGER.info("Publishing speed test result to topic: %s", topic)
        info = self.bus.publish(topic, json.dumps(result.to_state()))
        self.bus.wait_for([info])
        return info
