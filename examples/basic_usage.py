#!/usr/bin/env python3
"""Programmatic workflow example.

This demonstrates using the engine components directly:

* load settings from `.env`
* run the location analysis workflow
* follow the execution with an update watcher until it finishes

The workflow runs in the background so the watcher has something to observe.
"""

from __future__ import annotations

import argparse
import json
from typing import Sequence

from geo_insights.config import ServiceSettings
from geo_insights.engine.definitions import location_analysis_workflow
from geo_insights.engine.watcher import UpdateWatcher
from geo_insights.logging import configure_logging
from geo_insights.server.app import build_engine


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Analyze a location (programmatic example).")
    parser.add_argument("--ip", default=None, help="IP address to geolocate")
    parser.add_argument("--city", default=None, help="City (skips geolocation with --country)")
    parser.add_argument("--country", default=None, help="Country")
    parser.add_argument("--purpose", default="general", help="e.g. travel, relocation")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = ServiceSettings()
    configure_logging(settings.log_level)

    engine = build_engine(settings)
    execution_id = engine.start(
        location_analysis_workflow(),
        {"ip": args.ip, "city": args.city, "country": args.country, "purpose": args.purpose},
    )

    watcher = UpdateWatcher(engine, interval_seconds=settings.poll_interval_seconds)
    for snapshot in watcher.watch(execution_id):
        print(json.dumps(snapshot.model_dump(mode="json", by_alias=True), indent=2))
        return 0 if snapshot.status.value == "completed" else 1

    return 1


if __name__ == "__main__":
    raise SystemExit(main())
