#!/usr/bin/env python3
"""
METAR Logger

Fetches, decodes and prints the current METAR for one or more stations,
optionally keeping the latest decoded report per station in SQLite.

Usage:
    python metar_logger.py KSFO                     # Decode and print
    python metar_logger.py KSFO KCOS --json         # JSON output
    python metar_logger.py KCOS --source airnav     # Use AirNav instead of TG-FTP
    python metar_logger.py KCOS --store             # Also save to the latest-report store
"""

import argparse
import json
import logging
import sqlite3
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import requests

import metar_fetch
import metar_store
from metar_models import MetarError, Report, Wind

logger = logging.getLogger(__name__)


def station_code(value: str) -> str:
    """argparse type for four-character station codes."""
    code = metar_fetch.normalize_station(value)
    if len(code) != 4:
        raise argparse.ArgumentTypeError(f"{value!r} is not a 4-character station code")
    return code


def format_wind(wind: Optional[Wind]) -> str:
    """Format a wind reading for display."""
    if wind is None:
        return "N/A"
    if wind.variable:
        return f"variable at {wind.variable_speed} kt"
    if wind.direction == 0 and wind.speed == 0:
        return "calm"
    text = f"{wind.direction:03d} deg at {wind.speed} kt"
    if wind.gust:
        text += f", gusting {wind.gust_speed} kt"
    return text


def format_report(report: Report) -> str:
    """Format a decoded report as aligned text lines."""
    rows = [
        ("Raw", report.raw),
        ("Station", report.station),
        ("Observed", report.observation_time.strftime("%Y-%m-%d %H:%M UTC")),
        ("Type", report.station_type.name.lower()),
        ("Wind", format_wind(report.wind)),
    ]
    if report.wind_variation:
        rows.append(("Variable", "%03d-%03d deg" % report.wind_variation))
    rows.append(("Visibility", report.visibility or "N/A"))
    if report.runway_visual_range:
        rows.append(("RVR", report.runway_visual_range))
    rows.extend([
        ("Weather", " ".join(report.present_weather) or "none"),
        ("Clouds", " ".join(report.cloud_layers) or "none"),
        ("Temp/Dew", f"{report.temperature} / {report.dew_point} C"),
        ("Altimeter", f"{report.altimeter / 100:.2f} inHg" if report.altimeter is not None else "N/A"),
        ("Remarks", " ".join(report.remarks) or "none"),
    ])
    return "\n".join(f"{label + ':':<12}{value}" for label, value in rows)


def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Fetch and decode current METAR reports",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument('stations', nargs='+', type=station_code, metavar='STATION',
                        help='Four-character station code(s)')
    parser.add_argument('--source', choices=metar_fetch.SOURCES, default='tgftp',
                        help='Report source (default: tgftp)')
    parser.add_argument('--json', '-j', action='store_true', help='Output as JSON')
    parser.add_argument('--store', action='store_true',
                        help='Save each decoded report as the latest for its station')
    parser.add_argument('--db', type=Path, default=metar_store.DB_PATH, help='Database path')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    return parser.parse_args(argv)


def decode_stations(args: argparse.Namespace, conn: Optional[sqlite3.Connection]) -> int:
    """Fetch, decode and print each station, saving to conn when given.

    Returns:
        Number of stations that failed
    """
    fetch_time = datetime.now(timezone.utc).isoformat()
    failed = 0
    for station in args.stations:
        try:
            report = metar_fetch.get_report(station, source=args.source)
        except requests.exceptions.RequestException as e:
            logger.error("Failed to fetch METAR for %s: %s", station, e)
            failed += 1
            continue
        except MetarError as e:
            logger.error("Error decoding METAR for %s: %s", station, e)
            failed += 1
            continue

        if args.json:
            print(json.dumps(report.to_dict(), indent=2))
        else:
            print(format_report(report))
            print()

        if conn is not None:
            metar_store.save_report(conn, report, fetch_time)
    return failed


def main(argv: Optional[list] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s"
    )

    if args.store:
        with metar_store.get_db_connection(args.db) as conn:
            metar_store.init_tables(conn)
            failed = decode_stations(args, conn)
    else:
        failed = decode_stations(args, None)

    logger.info("Decoded %d/%d stations", len(args.stations) - failed, len(args.stations))
    return 0 if failed == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
