#!/usr/bin/env python3
"""
METAR Report Decoder

Assembles a Report from one report line: extract the raw fields, run each
field decoder, and build the immutable record. The first decode error
propagates unchanged; no partial report is ever returned.

Usage:
    from metar_decoder import decode_report

    report = decode_report("KSFO 160456Z 27024G33KT 10SM FEW009 SCT200 15/10 A2999 RMK AO2")
    print(report.wind.gust_speed, report.cloud_layers)

decode_report() keeps no state between calls and is safe to call from any
number of threads at once.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

import metar_fields as fields
from metar_grammar import extract_fields
from metar_models import Report

logger = logging.getLogger(__name__)


def decode_report(line: str, now: Optional[datetime] = None) -> Report:
    """Decode one METAR report line.

    Args:
        line: The isolated report line
        now: Current instant used for the year and month of the observation
            time (defaults to the current UTC time)

    Returns:
        Report

    Raises:
        UngrammaticalReportError: If the line does not match the grammar
        FieldDecodeError: If any matched field is malformed
    """
    if now is None:
        now = datetime.now(timezone.utc)

    raw = extract_fields(line)
    present_weather, cloud_layers = fields.split_weather_and_clouds(raw["weather"])

    report = Report(
        raw=line.strip(),
        station=raw["station"],
        observation_time=fields.decode_time(raw["time"], now),
        station_type=fields.decode_station_type(raw["station_type"]),
        wind=fields.decode_wind(raw["wind"]) if raw["wind"] else None,
        wind_variation=(fields.decode_wind_variation(raw["wind_variation"])
                        if raw["wind_variation"] else None),
        visibility=fields.decode_visibility(raw["visibility"]) if raw["visibility"] else None,
        runway_visual_range=fields.decode_rvr(raw["rvr"]) if raw["rvr"] else None,
        present_weather=present_weather,
        cloud_layers=cloud_layers,
        temperature=fields.decode_temperature(raw["temperature"], "temperature"),
        dew_point=fields.decode_temperature(raw["dew_point"], "dew_point"),
        altimeter=fields.decode_altimeter(raw["altimeter"]) if raw["altimeter"] else None,
        remarks=fields.decode_remarks(raw["remarks"]),
    )
    logger.debug("Decoded %s observed %s", report.station, report.observation_time.isoformat())
    return report
