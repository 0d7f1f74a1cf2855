"""Polling loop that turns live page snapshots into a stream of readings."""

from __future__ import annotations

import logging
import time
from typing import Callable, Iterator, Optional

from .models import Reading

LOGGER = logging.getLogger(__name__)

TICK_INTERVAL = 0.1


def sample_readings(
    extract: Callable[[], Reading],
    measure_upload: bool = True,
    interval: float = TICK_INTERVAL,
    sleep: Callable[[float], None] = time.sleep,
) -> Iterator[Reading]:
    """Yield each new, useful reading until the test on the page finishes.

    A reading is yielded when it carries a positive download speed and differs
    from the snapshot taken on the previous tick. The loop ends once the page
    marks both speeds as final, or as soon as an upload speed shows up when the
    upload measurement was not requested. There is no timeout.
    """
    previous: Optional[Reading] = None
    ticks = 0

    while True:
        reading = extract()
        ticks += 1

        if reading.has_download_speed and reading != previous:
            yield reading

        if reading.is_done or (not measure_upload and reading.upload_speed is not None):
            LOGGER.debug("Sampling finished after %d ticks (done=%s)", ticks, reading.is_done)
            return

        previous = reading
        sleep(interval)
