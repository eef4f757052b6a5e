#!/usr/bin/env python3
"""
METAR Fetcher

Retrieves the current report for a station and isolates its report line,
ready for metar_decoder.decode_report().

Sources:
- tgftp:  NWS TG-FTP station file (plain text, timestamp line + report line)
- airnav: AirNav airport page (HTML table, station cell + report cell)

Transport failures surface as requests.exceptions.RequestException; a document
without a line for the station raises StationNotFoundError.
"""

import logging
from datetime import datetime
from typing import Optional

import requests
from bs4 import BeautifulSoup

from metar_decoder import decode_report
from metar_models import Report, StationNotFoundError

# Configuration
TGFTP_URL = "https://tgftp.nws.noaa.gov/data/observations/metar/stations/{station}.TXT"
AIRNAV_URL = "https://www.airnav.com/airport/{station}"
REQUEST_TIMEOUT_SEC = 30

HEADERS = {
    'User-Agent': 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36',
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
}

SOURCES = ("tgftp", "airnav")

logger = logging.getLogger(__name__)


def normalize_station(station: str) -> str:
    """Upper-case and strip a station code."""
    return station.strip().upper()


def parse_airnav_document(html: str) -> str:
    """Turn the METAR table of an AirNav page into plain report lines.

    AirNav splits each report into a station cell and a body cell; the
    returned document has one "STATION body" line per row.
    """
    soup = BeautifulSoup(html, 'html.parser')
    lines = []

    metar_header = soup.find('th', string='METAR')
    if metar_header:
        metar_table = metar_header.find_parent('table')
        if metar_table:
            for tr in metar_table.find_all('tr'):
                tds = tr.find_all('td')
                if len(tds) >= 2:
                    station_cell = tds[0].get_text(strip=True)
                    body = " ".join(tds[1].get_text(" ", strip=True).split())
                    if station_cell and body:
                        lines.append(f"{station_cell} {body}")

    return "\n".join(lines)


def fetch_station_document(station: str, source: str = "tgftp") -> str:
    """Download the document holding a station's current report.

    Args:
        station: Four-character station code
        source: One of SOURCES

    Returns:
        Plain-text document, one report per line

    Raises:
        ValueError: If source is unknown
        requests.exceptions.RequestException: On transport or HTTP errors
    """
    station = normalize_station(station)
    if source == "tgftp":
        url = TGFTP_URL.format(station=station)
    elif source == "airnav":
        url = AIRNAV_URL.format(station=station)
    else:
        raise ValueError(f"Unknown METAR source: {source}")

    logger.debug("Fetching %s", url)
    response = requests.get(url, headers=HEADERS, timeout=REQUEST_TIMEOUT_SEC)
    response.raise_for_status()

    if source == "airnav":
        return parse_airnav_document(response.text)
    return response.text


def select_report_line(station: str, document: str) -> str:
    """Return the first line of document whose first token is the station code.

    Raises:
        StationNotFoundError: If no line belongs to the station
    """
    station = normalize_station(station)
    for line in document.splitlines():
        tokens = line.split()
        if tokens and tokens[0] == station:
            return line.strip()
    raise StationNotFoundError(station)


def fetch_report_line(station: str, source: str = "tgftp") -> str:
    """Fetch a station's document and isolate its report line."""
    line = select_report_line(station, fetch_station_document(station, source))
    logger.info("Raw METAR [%s]: %s", normalize_station(station), line)
    return line


def get_report(station: str, source: str = "tgftp",
               now: Optional[datetime] = None) -> Report:
    """Fetch and decode the current report for a station."""
    return decode_report(fetch_report_line(station, source), now)
