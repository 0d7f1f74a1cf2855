"""Background scheduler orchestration."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from .bus import BusClient, BusError
from .config import AppConfig
from .measurements.manager import MeasurementManager
from .measurements.models import AutomationError, IncompleteResultError, MeasurementResult
from .publisher import SensorPublisher
from .sensors import STATUS_TOPIC

LOGGER = logging.getLogger(__name__)

JOB_ID = "scheduled-measurements"


class SchedulerService:
    def __init__(
        self,
        config: AppConfig,
        bus: BusClient,
        publisher: SensorPublisher,
        measurement_manager: MeasurementManager,
        on_fatal: Optional[Callable[[BaseException], None]] = None,
        scheduler: Optional[BackgroundScheduler] = None,
    ) -> None:
        self.config = config
        self.bus = bus
        self.publisher = publisher
        self.measurements = measurement_manager
        self.on_fatal = on_fatal
        if scheduler is None:
            scheduler = (
                BackgroundScheduler(timezone=config.schedule.timezone)
                if config.schedule.timezone
                else BackgroundScheduler()
            )
        self.scheduler = scheduler
        self.started = False
        self.stopped = False
        self._lock = threading.Lock()

    def start(self) -> None:
        if self.started or self.stopped:
            LOGGER.warning("Scheduler already started or stopped, ignoring start request")
            return

        trigger = CronTrigger.from_crontab(self.config.schedule.cron, timezone=self.config.schedule.timezone)

        # The handler must be in place before anything is published so a
        # reset notification arriving during start-up is not lost.
        self.bus.add_message_handler(self._handle_message)
        self.bus.connect()

        self.publisher.publish_discovery_burst()
        self.run_and_report()

        with self._lock:
            if self.stopped:
                LOGGER.info("Shutdown requested during start-up, not scheduling further tests")
                return

            self.bus.subscribe(STATUS_TOPIC)

            LOGGER.info("Setting up cron job with schedule: %s", self.config.schedule.cron)
            self.scheduler.add_job(
                self._run_cycle,
                trigger=trigger,
                id=JOB_ID,
                max_instances=1,
                coalesce=True,
            )
            self.scheduler.start()
            self.started = True
        LOGGER.info("Server started!")

    def shutdown(self) -> None:
        with self._lock:
            if self.stopped:
                return
            self.stopped = True
            if self.started:
                # An in-flight measurement keeps running on its worker thread
                # until the process exits.
                self.scheduler.shutdown(wait=False)
                self.started = False
        self.bus.disconnect()

    def run_and_report(self) -> Optional[MeasurementResult]:
        """Run one speed test and publish it. Measurement failures are logged."""
        try:
            result = self.measurements.run_speedtest()
        except (AutomationError, IncompleteResultError) as exc:
            LOGGER.exception("Speed test failed: %s", exc)
            return None

        self.publisher.publish_state(result)
        return result

    def _run_cycle(self) -> None:
        LOGGER.info("Triggered test by cron schedule")
        try:
            self.run_and_report()
        except BusError as exc:
            self._fail(exc)

    def _handle_message(self, topic: str, payload: bytes) -> None:
        if topic != STATUS_TOPIC:
            LOGGER.warning("Received message on unknown topic: %s", topic)
            return

        LOGGER.info('Received "%s" message: %s', STATUS_TOPIC, payload.decode("utf-8", errors="replace"))
        try:
            # Runs on the MQTT network thread, which must not block on acks.
            self.publisher.publish_discovery_burst(wait=False)
        except BusError as exc:
            self._fail(exc)

    def _fail(self, exc: BusError) -> None:
        LOGGER.error("MQTT failure, shutting down: %s", exc)
        if self.on_fatal is not None:
            self.on_fatal(exc)
