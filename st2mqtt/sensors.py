"""Home Assistant sensor descriptions and topic naming for one device."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

DISCOVERY_PREFIX = "homeassistant"
STATUS_TOPIC = f"{DISCOVERY_PREFIX}/status"


class SensorType(str, Enum):
    DOWNLOAD_SPEED = "download_speed"
    UPLOAD_SPEED = "upload_speed"
    LATENCY = "latency"
    BUFFER_BLOAT = "buffer_bloat"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def unit(self) -> str:
        return _UNITS[self]

    @property
    def icon(self) -> str:
        return _ICONS[self]

    @property
    def device_class(self) -> Optional[str]:
        return _DEVICE_CLASSES[self]


_DISPLAY_NAMES: Dict[SensorType, str] = {
    SensorType.DOWNLOAD_SPEED: "Download Speed",
    SensorType.UPLOAD_SPEED: "Upload Speed",
    SensorType.LATENCY: "Latency",
    SensorType.BUFFER_BLOAT: "Buffer Bloat",
}

_UNITS: Dict[SensorType, str] = {
    SensorType.DOWNLOAD_SPEED: "Mbps",
    SensorType.UPLOAD_SPEED: "Mbps",
    SensorType.LATENCY: "ms",
    SensorType.BUFFER_BLOAT: "ms",
}

_ICONS: Dict[SensorType, str] = {
    SensorType.DOWNLOAD_SPEED: "mdi:download",
    SensorType.UPLOAD_SPEED: "mdi:upload",
    SensorType.LATENCY: "mdi:timer",
    SensorType.BUFFER_BLOAT: "mdi:timer-sand",
}

_DEVICE_CLASSES: Dict[SensorType, Optional[str]] = {
    SensorType.DOWNLOAD_SPEED: "data_rate",
    SensorType.UPLOAD_SPEED: "data_rate",
    SensorType.LATENCY: None,
    SensorType.BUFFER_BLOAT: None,
}


@dataclass(frozen=True)
class DeviceIdentity:
    device_id: str

    @classmethod
    def from_unique_id(cls, unique_id: str) -> "DeviceIdentity":
        return cls(device_id=f"st_{unique_id}")

    @property
    def state_topic(self) -> str:
        return f"{DISCOVERY_PREFIX}/sensor/{self.device_id}/state"

    def discovery_topic(self, sensor: SensorType) -> str:
        return f"{DISCOVERY_PREFIX}/sensor/{self.device_id}/{sensor.value}/config"

    def unique_id(self, sensor: SensorType) -> str:
        return f"{self.device_id}_{sensor.value}"
