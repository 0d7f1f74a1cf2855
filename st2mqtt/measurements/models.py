"""Shared dataclasses for measurements."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional


class AutomationError(RuntimeError):
    """Browser install, launch, navigation or in-page extraction failed."""


class IncompleteResultError(RuntimeError):
    """The final reading of a session is missing a required value."""


def _to_number(value: Any) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        number = float(value)
    else:
        # The page reports empty text until a figure is shown. Empty or
        # unparseable text means "no value yet", never NaN, so two readings
        # of the same page state always compare equal.
        try:
            number = float(str(value).strip())
        except ValueError:
            return None
    return None if math.isnan(number) else number


def _to_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value).strip()


@dataclass(frozen=True)
class Reading:
    download_speed: Optional[float] = None
    upload_speed: Optional[float] = None
    download_unit: Optional[str] = None
    downloaded: Optional[float] = None
    upload_unit: Optional[str] = None
    uploaded: Optional[float] = None
    latency: Optional[float] = None
    buffer_bloat: Optional[float] = None
    user_location: Optional[str] = None
    user_ip: Optional[str] = None
    is_done: bool = False

    @classmethod
    def from_page(cls, payload: Dict[str, Any]) -> "Reading":
        """Build a reading from the raw text values scraped off the page."""
        return cls(
            download_speed=_to_number(payload.get("downloadSpeed")),
            upload_speed=_to_number(payload.get("uploadSpeed")),
            download_unit=_to_text(payload.get("downloadUnit")),
            downloaded=_to_number(payload.get("downloaded")),
            upload_unit=_to_text(payload.get("uploadUnit")),
            uploaded=_to_number(payload.get("uploaded")),
            latency=_to_number(payload.get("latency")),
            buffer_bloat=_to_number(payload.get("bufferBloat")),
            user_location=_to_text(payload.get("userLocation")),
            user_ip=_to_text(payload.get("userIp")),
            is_done=bool(payload.get("isDone")),
        )

    @property
    def has_download_speed(self) -> bool:
        return self.download_speed is not None and self.download_speed > 0

    @property
    def is_complete(self) -> bool:
        return None not in (self.download_speed, self.upload_speed, self.latency, self.buffer_bloat)


@dataclass(frozen=True)
class MeasurementResult:
    download_speed: float
    upload_speed: float
    latency: float
    buffer_bloat: float

    @classmethod
    def from_reading(cls, reading: Reading) -> "MeasurementResult":
        if not reading.is_complete:
            raise IncompleteResultError("No usable result: final reading is missing a required value")
        # fast.com reports loaded latency; keep only the increase over idle latency
        return cls(
            download_speed=reading.download_speed,
            upload_speed=reading.upload_speed,
            latency=reading.latency,
            buffer_bloat=max(reading.buffer_bloat - reading.latency, 0),
        )

    def to_state(self) -> Dict[str, float]:
        return {
            "download_speed": self.download_speed,
            "upload_speed": self.upload_speed,
            "latency": self.latency,
            "buffer_bloat": self.buffer_bloat,
        }
