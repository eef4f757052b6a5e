#!/usr/bin/env python3
"""
METAR Grammar Extractor

Splits one report line into its raw fields with a single composed pattern:

    STATION TIME [TYPE] [WIND] [VARIATION] [VIS] [RVR] WX_AND_CLOUDS TT/DD [ALT] [RMK ...]

The extractor only enforces field order and optionality. Turning the raw
substrings into values is the job of metar_fields.

Every optional segment is written as (?:(?P<name>...)\\s+)? so an absent
segment consumes nothing and cannot swallow a token that belongs to a later
segment. The weather/cloud segment is the catch-all: any run of whole tokens
up to the first temperature/dew point pair.
"""

import re
from functools import lru_cache
from typing import Optional

from metar_models import UngrammaticalReportError

# Field names, in the order they appear in a report
FIELD_NAMES = (
    "station", "time", "station_type", "wind", "wind_variation", "visibility",
    "rvr", "weather", "temperature", "dew_point", "altimeter", "remarks",
)

# Order matters: the longer fractional forms must be tried before \d{1,3}SM
VISIBILITY_PATTERN = "|".join([
    r"M\d/\d{1,2}SM",          # less than 1/4 mile
    r"\d \d/\d{1,2}SM",        # whole + fraction
    r"\d/\d{1,2}SM",           # fraction
    r"\d{1,2}\.\d{1,2}SM",     # decimal
    r"\d{1,3}SM",              # whole miles
    r"\d{4}",                  # meters
])

RVR_GROUP = r"R\d{2}[LRC]?/\S+?FT(?:/[UDN])?"

# Also takes 3-digit speeds and gusts, which decode_wind rejects
WIND_PATTERN = r"(?:VRB|\d{3})\d{2,3}(?:G\d{2,3})?KT"
WIND_START = r"(?:VRB\d|\d{5})"

_SEGMENTS = [
    r"(?P<station>[A-Z0-9]{4})\s+",
    r"(?P<time>\d{6}Z)\s+",
    rf"(?:(?P<station_type>AUTO|COR|RTD|CC[A-Z]|[A-Z]+(?=\s+{WIND_START}))\s+)?",
    rf"(?:(?P<wind>{WIND_PATTERN})\s+)?",
    r"(?:(?P<wind_variation>\d{3}V\d{3})\s+)?",
    rf"(?:(?P<visibility>{VISIBILITY_PATTERN})\s+)?",
    rf"(?:(?P<rvr>{RVR_GROUP}(?:\s+{RVR_GROUP})*)\s+)?",
    r"(?P<weather>(?:\S+\s+)*?)",
    r"(?P<temperature>M?\d{2})/(?P<dew_point>M?\d{2})",
    r"(?:\s+(?P<altimeter>A\d{4}))?",
    r"(?:\s+(?P<remarks>RMK(?:\s.*)?))?",
    r"\s*",
]


@lru_cache(maxsize=1)
def report_pattern() -> re.Pattern:
    """Return the composed report pattern, compiled on first use."""
    return re.compile("".join(_SEGMENTS))


def extract_fields(line: str) -> dict[str, Optional[str]]:
    """Split a report line into raw field substrings.

    Args:
        line: One METAR report line (already isolated from its feed)

    Returns:
        Mapping of every name in FIELD_NAMES to its raw substring, or None
        when the optional segment is absent. The weather field is the
        stripped token run, possibly empty.

    Raises:
        UngrammaticalReportError: If the line does not match the grammar
    """
    match = report_pattern().fullmatch(line.strip())
    if match is None:
        raise UngrammaticalReportError(line)

    fields = match.groupdict()
    fields["weather"] = fields["weather"].strip()
    return {name: fields[name] for name in FIELD_NAMES}
