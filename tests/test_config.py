from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler

import pytest
import yaml

from st2mqtt.config import BROWSER_PATH_ENV, load_config
from st2mqtt.logging_setup import configure_logging

REQUIRED = {"mqtt": {"url": "mqtt://broker.local"}, "device": {"unique_id": "den"}}


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv(BROWSER_PATH_ENV, raising=False)


def _write(path, data):
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return str(path)


def test_defaults():
    config = load_config(overrides=REQUIRED)

    assert config.schedule.cron == "0 * * * *"
    assert config.schedule.timezone is None
    assert config.speedtest.url == "https://fast.com"
    assert config.speedtest.measure_upload is True
    assert config.speedtest.tick_interval == 0.1
    assert config.speedtest.min_download_mbps == 5.0
    assert config.browser.args == ["--no-sandbox"]
    assert config.browser.executable_path is None
    assert config.mqtt.username is None
    assert config.logging.logs_dir is None


def test_yaml_values_and_overrides(tmp_path):
    path = _write(
        tmp_path / "settings.yaml",
        {
            "mqtt": {"url": "mqtt://from-file", "username": "file-user", "qos": 1},
            "device": {"unique_id": "from-file"},
            "schedule": {"cron": "*/30 * * * *"},
        },
    )

    config = load_config(path, {"mqtt": {"url": "mqtt://from-cli", "username": None}})

    assert config.mqtt.url == "mqtt://from-cli"
    assert config.mqtt.username == "file-user"
    assert config.mqtt.qos == 1
    assert config.device.unique_id == "from-file"
    assert config.schedule.cron == "*/30 * * * *"


def test_config_yaml_in_working_directory_is_picked_up(tmp_path):
    _write(tmp_path / "config.yaml", {"speedtest": {"measure_upload": False}})

    config = load_config(overrides=REQUIRED)

    assert config.speedtest.measure_upload is False


def test_missing_config_file():
    with pytest.raises(FileNotFoundError):
        load_config("nope.yaml", REQUIRED)


@pytest.mark.parametrize(
    "overrides, option",
    [
        ({"device": {"unique_id": "den"}}, "--mqtt_url"),
        ({"mqtt": {"url": "mqtt://broker.local"}}, "--unique_id"),
    ],
)
def test_required_options(overrides, option):
    with pytest.raises(ValueError, match=option):
        load_config(overrides=overrides)


def test_unknown_key_is_rejected(tmp_path):
    path = _write(tmp_path / "config.yaml", {"speedtest": {"server": "nearest"}})

    with pytest.raises(TypeError):
        load_config(path, REQUIRED)


def test_browser_path_from_environment(monkeypatch):
    monkeypatch.setenv(BROWSER_PATH_ENV, "/usr/bin/chromium-browser")

    config = load_config(overrides=REQUIRED)

    assert config.browser.executable_path == "/usr/bin/chromium-browser"


def test_logs_dir_enables_file_logging(tmp_path):
    path = _write(tmp_path / "config.yaml", {"logging": {"level": "debug", "logs_dir": "logs"}})
    config = load_config(path, REQUIRED)
    root_logger = logging.getLogger()
    saved = (root_logger.level, list(root_logger.handlers))

    try:
        configure_logging(config)

        assert config.logging.logs_dir == (tmp_path / "logs").resolve()
        assert root_logger.level == logging.DEBUG
        assert any(isinstance(h, RotatingFileHandler) for h in root_logger.handlers)
    finally:
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()
        root_logger.setLevel(saved[0])
        for handler in saved[1]:
            root_logger.addHandler(handler)
