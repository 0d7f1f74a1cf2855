"""Entry point for running the speed test publisher."""

from __future__ import annotations

import argparse
import os

from st2mqtt import bootstrap
from st2mqtt.shutdown import terminate


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Publish fast.com speed tests to Home Assistant over MQTT")
    parser.add_argument("--config", default=None, help="Path to config.yaml")
    parser.add_argument("-m", "--mqtt_url", default=os.environ.get("MQTT_URL"), help="MQTT broker URL")
    parser.add_argument("-i", "--unique_id", default=os.environ.get("DEVICE_ID"), help="Unique device identifier")
    parser.add_argument("-u", "--mqtt_username", default=os.environ.get("MQTT_USERNAME"), help="MQTT username")
    parser.add_argument("-p", "--mqtt_password", default=os.environ.get("MQTT_PASSWORD"), help="MQTT password")
    parser.add_argument("--cron", default=None, help="Cron schedule for speed tests (default: hourly)")
    parser.add_argument("--log-level", default=None, help="Override the log level")
    return parser.parse_args(argv)


def build_overrides(args: argparse.Namespace) -> dict:
    return {
        "mqtt": {
            "url": args.mqtt_url,
            "username": args.mqtt_username,
            "password": args.mqtt_password,
        },
        "device": {"unique_id": args.unique_id},
        "schedule": {"cron": args.cron},
        "logging": {"level": args.log_level},
    }


def main() -> None:
    args = parse_args()
    context = bootstrap(args.config, build_overrides(args))
    context.start()
    terminate(context.wait())


if __name__ == "__main__":
    main()
