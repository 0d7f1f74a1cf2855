"""fast.com measurement sessions driven through a headless Chromium."""

from __future__ import annotations

import logging
import subprocess
import sys
import threading
import time
from typing import Any, Callable, Dict, Iterator, Optional

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page, sync_playwright

from ..config import BrowserConfig, SpeedtestConfig
from .models import AutomationError, Reading
from .sampler import sample_readings

LOGGER = logging.getLogger(__name__)

# Runs inside the page; returns raw text so number parsing happens on our side.
EXTRACT_SCRIPT = """
() => {
  const $ = document.querySelector.bind(document);
  const text = (selector) => {
    const node = $(selector);
    return node && node.textContent != null ? node.textContent.trim() : null;
  };
  return {
    downloadSpeed: text("#speed-value"),
    uploadSpeed: text("#upload-value"),
    downloadUnit: text("#speed-units"),
    downloaded: text("#down-mb-value"),
    uploadUnit: text("#upload-units"),
    uploaded: text("#up-mb-value"),
    latency: text("#latency-value"),
    bufferBloat: text("#bufferbloat-value"),
    userLocation: text("#user-location"),
    userIp: text("#user-ip"),
    isDone: Boolean($("#speed-value.succeeded") && $("#upload-value.succeeded")),
  };
}
"""

_install_lock = threading.Lock()
_browser_installed = False


def ensure_browser(config: BrowserConfig) -> Optional[str]:
    """Return the browser binary to launch, installing Chromium on first use.

    ``None`` means "use the browser Playwright installed".
    """
    global _browser_installed

    if config.executable_path:
        return config.executable_path

    with _install_lock:
        if _browser_installed:
            return None

        LOGGER.info("Downloading the browser (playwright install chromium)...")
        command = [sys.executable, "-m", "playwright", "install", "chromium"]
        completed = subprocess.run(command, capture_output=True, text=True, check=False)
        if completed.returncode != 0:
            raise AutomationError(f"Browser installation failed: {completed.stderr.strip()}")
        _browser_installed = True
    return None


def extract_reading(page: Page) -> Reading:
    payload: Dict[str, Any] = page.evaluate(EXTRACT_SCRIPT)
    return Reading.from_page(payload)


def run_measurement_session(
    speedtest: SpeedtestConfig,
    browser_config: BrowserConfig,
    measure_upload: bool = True,
    sleep: Callable[[float], None] = time.sleep,
) -> Iterator[Reading]:
    """Open fast.com in a fresh browser and yield readings until the test ends.

    Consume it inside ``contextlib.closing`` so the browser is released even
    when the consumer stops early or raises.
    """
    executable_path = ensure_browser(browser_config)

    launch_kwargs: Dict[str, Any] = {"headless": browser_config.headless, "args": list(browser_config.args)}
    if executable_path:
        launch_kwargs["executable_path"] = executable_path

    try:
        with sync_playwright() as playwright:
            browser = playwright.chromium.launch(**launch_kwargs)
            try:
                page = browser.new_page()
                LOGGER.debug("Navigating to %s", speedtest.url)
                page.goto(speedtest.url, timeout=speedtest.navigation_timeout * 1000)
                yield from sample_readings(
                    lambda: extract_reading(page),
                    measure_upload=measure_upload,
                    interval=speedtest.tick_interval,
                    sleep=sleep,
                )
            finally:
                browser.close()
    except PlaywrightError as exc:
        raise AutomationError(f"Speed test page automation failed: {exc}") from exc
