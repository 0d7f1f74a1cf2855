"""Dedup and termination behaviour of the polling loop."""

from __future__ import annotations

from dataclasses import replace

from st2mqtt.measurements.models import Reading
from st2mqtt.measurements.sampler import TICK_INTERVAL, sample_readings


def scripted(*readings):
    """Return an extract() that replays the given snapshots, one per tick."""
    remaining = iter(readings)
    seen = []

    def extract():
        reading = next(remaining)
        seen.append(reading)
        return reading

    extract.seen = seen
    return extract


def test_emits_new_readings_and_completes_when_done():
    ticks = [
        Reading(download_speed=0),
        Reading(download_speed=50, latency=12),
        Reading(download_speed=50, latency=12),
        Reading(download_speed=55, latency=12, is_done=True),
    ]
    sleeps = []

    emitted = list(sample_readings(scripted(*ticks), sleep=sleeps.append))

    assert emitted == [ticks[1], ticks[3]]
    assert sleeps == [TICK_INTERVAL] * 3


def test_consecutive_equal_readings_emit_once():
    reading = Reading(download_speed=80, download_unit="Mbps", downloaded=120)
    ticks = [reading, replace(reading), reading, Reading(download_speed=81, is_done=True)]

    emitted = list(sample_readings(scripted(*ticks), sleep=lambda _: None))

    assert emitted == [reading, ticks[3]]


def test_done_reading_terminates_even_without_values():
    extract = scripted(Reading(is_done=True), Reading(download_speed=99))

    emitted = list(sample_readings(extract, sleep=lambda _: None))

    assert emitted == []
    assert len(extract.seen) == 1


def test_upload_speed_terminates_when_upload_not_requested():
    ticks = [
        Reading(download_speed=40),
        Reading(download_speed=45, upload_speed=12),
        Reading(download_speed=45, upload_speed=20, is_done=True),
    ]
    extract = scripted(*ticks)

    emitted = list(sample_readings(extract, measure_upload=False, sleep=lambda _: None))

    assert emitted == [ticks[0], ticks[1]]
    assert len(extract.seen) == 2


def test_upload_speed_does_not_terminate_when_upload_requested():
    ticks = [
        Reading(download_speed=45, upload_speed=12),
        Reading(download_speed=45, upload_speed=12, is_done=True),
    ]

    emitted = list(sample_readings(scripted(*ticks), measure_upload=True, sleep=lambda _: None))

    assert emitted == ticks


def test_baseline_is_last_observation_not_last_emission():
    high = Reading(download_speed=50)
    dip = Reading(download_speed=0)
    done = Reading(download_speed=60, is_done=True)

    emitted = list(sample_readings(scripted(high, dip, high, done), sleep=lambda _: None))

    assert emitted == [high, high, done]


def test_uses_configured_interval():
    sleeps = []
    ticks = [Reading(download_speed=1), Reading(download_speed=2, is_done=True)]

    list(sample_readings(scripted(*ticks), interval=0.5, sleep=sleeps.append))

    assert sleeps == [0.5]
