"""Configuration loading helpers for the speed test publisher."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

BROWSER_PATH_ENV = "BROWSER_EXECUTABLE_PATH"
DEFAULT_CRON = "0 * * * *"


@dataclass
class MqttConfig:
    url: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    client_id: Optional[str] = None
    keepalive: int = 60
    connect_timeout: float = 30.0
    publish_timeout: float = 10.0
    qos: int = 0


@dataclass
class DeviceConfig:
    unique_id: Optional[str] = None


@dataclass
class ScheduleConfig:
    cron: str = DEFAULT_CRON
    timezone: Optional[str] = None


@dataclass
class SpeedtestConfig:
    url: str = "https://fast.com"
    measure_upload: bool = True
    tick_interval: float = 0.1
    navigation_timeout: float = 60.0
    min_download_mbps: float = 5.0


@dataclass
class BrowserConfig:
    executable_path: Optional[str] = None
    headless: bool = True
    args: List[str] = field(default_factory=lambda: ["--no-sandbox"])


@dataclass
class LoggingConfig:
    level: str = "INFO"
    logs_dir: Optional[Path] = None


@dataclass
class AppConfig:
    root_dir: Path
    mqtt: MqttConfig
    device: DeviceConfig
    schedule: ScheduleConfig
    speedtest: SpeedtestConfig
    browser: BrowserConfig
    logging: LoggingConfig


def _merge(section: Mapping[str, Any], overrides: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    merged = dict(section or {})
    for key, value in (overrides or {}).items():
        if value is not None:
            merged[key] = value
    return merged


def _as_path(base: Path, maybe_path: Optional[str]) -> Optional[Path]:
    if not maybe_path:
        return None
    path = (base / maybe_path).resolve()
    path.mkdir(parents=True, exist_ok=True)
    return path


def load_config(
    path: Optional[str] = None,
    overrides: Optional[Mapping[str, Mapping[str, Any]]] = None,
) -> AppConfig:
    """Load configuration from an optional YAML file plus command line overrides."""

    overrides = overrides or {}
    if path:
        source_path = Path(path)
        if not source_path.exists():
            raise FileNotFoundError(f"Missing configuration file at {source_path}")
    else:
        source_path = Path.cwd() / "config.yaml"
    root_dir = source_path.resolve().parent

    data: Dict[str, Any] = {}
    if source_path.exists():
        with source_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}

    browser_data = _merge(data.get("browser", {}), overrides.get("browser"))
    if not browser_data.get("executable_path"):
        browser_data["executable_path"] = os.environ.get(BROWSER_PATH_ENV) or None

    logging_data = _merge(data.get("logging", {}), overrides.get("logging"))
    logging_data["logs_dir"] = _as_path(root_dir, logging_data.get("logs_dir"))

    config = AppConfig(
        root_dir=root_dir,
        mqtt=MqttConfig(**_merge(data.get("mqtt", {}), overrides.get("mqtt"))),
        device=DeviceConfig(**_merge(data.get("device", {}), overrides.get("device"))),
        schedule=ScheduleConfig(**_merge(data.get("schedule", {}), overrides.get("schedule"))),
        speedtest=SpeedtestConfig(**_merge(data.get("speedtest", {}), overrides.get("speedtest"))),
        browser=BrowserConfig(**browser_data),
        logging=LoggingConfig(**logging_data),
    )

    if not config.mqtt.url:
        raise ValueError("Missing required option: --mqtt_url")
    if not config.device.unique_id:
        raise ValueError("Missing required option: --unique_id")

    return config
