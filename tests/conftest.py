from __future__ import annotations

from typing import Callable, List, Tuple
from unittest.mock import MagicMock

import pytest

from st2mqtt.config import BROWSER_PATH_ENV, load_config


class FakeBus:
    """Stand-in for BusClient that records everything sent through it."""

    def __init__(self):
        self.calls: list = []
        self.published: List[Tuple[str, str, bool]] = []
        self.waited: list = []
        self.subscribed: List[str] = []
        self.handlers: List[Callable[[str, bytes], None]] = []

    def add_message_handler(self, handler):
        self.calls.append("add_message_handler")
        self.handlers.append(handler)

    def connect(self):
        self.calls.append("connect")

    def publish(self, topic, payload, retain=False):
        self.calls.append(("publish", topic))
        self.published.append((topic, payload, retain))
        return MagicMock(name=f"info:{topic}")

    def wait_for(self, infos):
        self.waited.append(list(infos))

    def subscribe(self, topic):
        self.calls.append(("subscribe", topic))
        self.subscribed.append(topic)

    def disconnect(self):
        self.calls.append("disconnect")

    def deliver(self, topic: str, payload: bytes):
        for handler in self.handlers:
            handler(topic, payload)


@pytest.fixture
def fake_bus():
    return FakeBus()


@pytest.fixture
def app_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv(BROWSER_PATH_ENV, raising=False)
    return load_config(
        overrides={
            "mqtt": {"url": "mqtt://broker.local:1883"},
            "device": {"unique_id": "living_room"},
        }
    )
