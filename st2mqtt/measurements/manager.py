"""Measurement orchestration: one browser session reduced to one result."""

from __future__ import annotations

import logging
from contextlib import closing
from typing import Callable, Iterable, Iterator, Optional

from ..config import AppConfig
from .models import IncompleteResultError, MeasurementResult, Reading
from .speedtest_runner import run_measurement_session

LOGGER = logging.getLogger(__name__)

SessionFactory = Callable[[bool], Iterator[Reading]]


def reduce_readings(readings: Iterable[Reading]) -> MeasurementResult:
    """Keep the last reading of a finished session and turn it into a result."""
    last: Optional[Reading] = None
    for reading in readings:
        last = reading

    if last is None:
        raise IncompleteResultError("No usable result: the session produced no readings")
    return MeasurementResult.from_reading(last)


class MeasurementManager:
    def __init__(self, config: AppConfig, session_factory: Optional[SessionFactory] = None):
        self.config = config
        self._session_factory = session_factory or self._open_session

    def _open_session(self, measure_upload: bool) -> Iterator[Reading]:
        return run_measurement_session(
            self.config.speedtest,
            self.config.browser,
            measure_upload=measure_upload,
        )

    def run_speedtest(self) -> MeasurementResult:
        LOGGER.info("Starting speed test")
        with closing(self._session_factory(self.config.speedtest.measure_upload)) as readings:
            result = reduce_readings(readings)

        LOGGER.info("Speed test complete!")
        LOGGER.info("      Download: %s Mbps", result.download_speed)
        LOGGER.info("        Upload: %s Mbps", result.upload_speed)
        LOGGER.info("       Latency: %s ms", result.latency)
        LOGGER.info("  Buffer Bloat: %s ms", result.buffer_bloat)
        return result
