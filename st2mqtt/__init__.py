"""Application bootstrap helpers."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Mapping, Optional

from .bus import BusClient
from .config import AppConfig, load_config
from .logging_setup import configure_logging
from .measurements.manager import MeasurementManager
from .publisher import SensorPublisher
from .scheduler import SchedulerService
from .sensors import DeviceIdentity
from .shutdown import EXIT_BUS_FAILURE, ShutdownCoordinator

LOGGER = logging.getLogger(__name__)


class ApplicationContext:
    """Holds shared singletons for the service."""

    def __init__(
        self,
        config: AppConfig,
        bus: Optional[BusClient] = None,
        measurements: Optional[MeasurementManager] = None,
    ):
        self.config = config
        configure_logging(config)
        self.identity = DeviceIdentity.from_unique_id(str(config.device.unique_id))
        self.bus = bus if bus is not None else BusClient(config.mqtt)
        self.publisher = SensorPublisher(
            self.bus,
            self.identity,
            min_download_mbps=config.speedtest.min_download_mbps,
        )
        self.measurements = measurements if measurements is not None else MeasurementManager(config)
        self.shutdown = ShutdownCoordinator()
        self.scheduler = SchedulerService(
            config,
            self.bus,
            self.publisher,
            self.measurements,
            on_fatal=lambda exc: self.shutdown.request_exit(EXIT_BUS_FAILURE),
        )
        self.shutdown.add_callback(self.scheduler.shutdown)
        self._start_thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Install exit handlers and run the start-up sequence in the background.

        The main thread stays in :meth:`wait` so a signal during the initial
        measurement is handled straight away.
        """
        self.shutdown.install()
        self._start_thread = threading.Thread(target=self._start_scheduler, name="st2mqtt-start", daemon=True)
        self._start_thread.start()

    def _start_scheduler(self) -> None:
        try:
            self.scheduler.start()
        except Exception:  # pylint: disable=broad-except
            LOGGER.exception("Start-up failed")
            self.shutdown.request_exit(EXIT_BUS_FAILURE)

    def wait(self) -> int:
        return self.shutdown.wait()


def bootstrap(
    config_path: Optional[str] = None,
    overrides: Optional[Mapping[str, Mapping[str, Any]]] = None,
) -> ApplicationContext:
    """Load configuration and wire dependencies."""

    config_file = Path(config_path).resolve() if config_path else None
    config = load_config(str(config_file) if config_file else None, overrides)
    return ApplicationContext(config)
