#!/usr/bin/env python3
"""
METAR Field Decoders

One pure function per report field. Each takes the raw substring produced by
metar_grammar.extract_fields() (never the whole line) and returns a typed
value, or raises FieldDecodeError.

Fixed-width numeric subfields are read by character offset, since METAR
packs them without delimiters:

    time        DDHHMMZ      day [0:2]  hour [2:4]  minute [4:6]
    wind        dddssKT      direction [0:3]  speed [3:5]
                dddssGggKT   gust [6:8]
                VRBssKT      speed [3:5]
    variation   dddVddd      from [0:3]  to [4:7]
    temperature [M]NN        value [0:2] after the optional M
    altimeter   ANNNN        value [1:5]
"""

import logging
import re
from datetime import datetime, timezone
from typing import Optional

from metar_models import FieldDecodeError, StationType, Wind

logger = logging.getLogger(__name__)

CLOUD_LAYER_RE = re.compile(
    r"(?:FEW|SCT|BKN|OVC)\d{3}(?:CB|TCU)?"
    r"|VV\d{3}"
    r"|CLR|SKC|CAVOK"
)

# Wind, visibility and variation shapes that failed their own slots
MISPLACED_GROUP_RE = re.compile(r"\S*(?:KT|SM)|\d{3}V\d{3}")

STATION_TYPES = {
    "AUTO": StationType.AUTOMATED,
    "COR": StationType.CORRECTED,
}


def _slice_int(raw: str, start: int, end: int, field: str) -> int:
    """Parse raw[start:end] as an unsigned integer of exactly end - start digits."""
    chunk = raw[start:end]
    if len(chunk) != end - start or not (chunk.isascii() and chunk.isdigit()):
        raise FieldDecodeError(field, raw, f"expected {end - start} digits at offset {start}")
    return int(chunk)


# ============================================================================
# Scalar fields
# ============================================================================

def decode_time(raw: str, now: datetime) -> datetime:
    """Decode a DDHHMMZ group into a UTC datetime.

    The report carries no year or month, so both are taken from now.

    Args:
        raw: Time group, e.g. "160456Z"
        now: Current instant supplying year and month

    Returns:
        Timezone-aware UTC datetime

    Raises:
        FieldDecodeError: On malformed digits or an impossible calendar value
    """
    if len(raw) != 7 or raw[6] != "Z":
        raise FieldDecodeError("time", raw, "expected DDHHMMZ")

    day = _slice_int(raw, 0, 2, "time")
    hour = _slice_int(raw, 2, 4, "time")
    minute = _slice_int(raw, 4, 6, "time")

    try:
        return datetime(now.year, now.month, day, hour, minute, tzinfo=timezone.utc)
    except ValueError as e:
        raise FieldDecodeError("time", raw, str(e)) from e


def decode_station_type(raw: Optional[str]) -> StationType:
    """Map the station type slot to AUTOMATED, CORRECTED or UNSPECIFIED."""
    if raw is None:
        return StationType.UNSPECIFIED
    station_type = STATION_TYPES.get(raw)
    if station_type is None:
        logger.debug("Treating report modifier %s as unspecified station type", raw)
        return StationType.UNSPECIFIED
    return station_type


def decode_wind(raw: str) -> Wind:
    """Decode VRBssKT, dddssKT or dddssGggKT.

    Raises:
        FieldDecodeError: On malformed digits or a direction above 360
    """
    if not raw.endswith("KT"):
        raise FieldDecodeError("wind", raw, "missing KT unit")
    body = raw[:-2]

    # VRB must be checked before any positional slicing
    if body.startswith("VRB"):
        if len(body) != 5:
            raise FieldDecodeError("wind", raw, "expected VRBssKT")
        return Wind(variable=True, variable_speed=_slice_int(body, 3, 5, "wind"))

    direction = _slice_int(body, 0, 3, "wind")
    speed = _slice_int(body, 3, 5, "wind")
    if direction > 360:
        raise FieldDecodeError("wind", raw, f"direction {direction} out of range")

    if len(body) == 5:
        return Wind(direction=direction, speed=speed)

    if len(body) != 8 or body[5] != "G":
        raise FieldDecodeError("wind", raw, "expected dddssGggKT")
    return Wind(
        direction=direction,
        speed=speed,
        gust=True,
        gust_speed=_slice_int(body, 6, 8, "wind"),
    )


def decode_wind_variation(raw: str) -> tuple[int, int]:
    """Decode a dddVddd variability arc into (from, to) degrees."""
    if len(raw) != 7 or raw[3] != "V":
        raise FieldDecodeError("wind_variation", raw, "expected dddVddd")
    return _slice_int(raw, 0, 3, "wind_variation"), _slice_int(raw, 4, 7, "wind_variation")


def decode_visibility(raw: str) -> str:
    """Decode visibility into a display string in the source's own unit.

    9999 -> "9999", 10SM -> "10", 1/2SM -> "1/2", 1 1/2SM -> "1 1/2",
    M1/4SM -> "< 1/4". Meter codes and statute miles are not converted.
    """
    vis = " ".join(raw.split())

    if not vis.endswith("SM"):
        if len(vis) != 4 or not (vis.isascii() and vis.isdigit()):
            raise FieldDecodeError("visibility", raw, "expected 4-digit meter code")
        return vis

    vis = vis[:-2]
    prefix = ""
    if vis.startswith("M"):
        prefix, vis = "< ", vis[1:]

    if not vis or not all(c.isdigit() or c in " /." for c in vis):
        raise FieldDecodeError("visibility", raw, "unexpected characters")

    # "N N/N": whole miles at [0], fraction from [2], slash at [3]
    if len(vis) >= 5 and vis[1] == " " and vis[3] == "/":
        return f"{prefix}{vis[0]} {vis[2:]}"
    if " " in vis:
        raise FieldDecodeError("visibility", raw, "malformed whole + fraction")
    return prefix + vis


def decode_rvr(raw: str) -> str:
    """Runway visual range is kept opaque, whitespace-normalised."""
    return " ".join(raw.split())


def decode_temperature(raw: str, field: str = "temperature") -> int:
    """Decode [M]NN degrees Celsius; a leading M means negative."""
    negative = raw.startswith("M")
    digits = raw[1:] if negative else raw
    if len(digits) != 2:
        raise FieldDecodeError(field, raw, "expected [M]NN")
    value = _slice_int(digits, 0, 2, field)
    return -value if negative else value


def decode_altimeter(raw: str) -> int:
    """Decode ANNNN into hundredths of inches of mercury."""
    if len(raw) != 5 or raw[0] != "A":
        raise FieldDecodeError("altimeter", raw, "expected ANNNN")
    return _slice_int(raw, 1, 5, "altimeter")


def decode_remarks(raw: Optional[str]) -> tuple[str, ...]:
    """Split the remarks section into tokens, dropping the RMK marker."""
    if raw is None:
        return ()
    tokens = raw.split()
    if tokens and tokens[0] == "RMK":
        tokens = tokens[1:]
    return tuple(tokens)


# ============================================================================
# Weather / cloud splitter
# ============================================================================

def is_cloud_layer(token: str) -> bool:
    """Check whether a token is a cloud layer, vertical visibility or sky sentinel."""
    return CLOUD_LAYER_RE.fullmatch(token) is not None


def split_weather_and_clouds(blob: str) -> tuple[tuple[str, ...], tuple[str, ...]]:
    """Split the weather/cloud segment into present weather and cloud layers.

    Every token matching the cloud grammar is a cloud layer. Present weather
    is every token before the first cloud layer; the segment is always
    [weather]* [clouds]*, so anything else after the first cloud layer is
    dropped.

    A non-empty segment with no cloud token at all is returned as weather
    only, with an empty cloud sequence.

    Args:
        blob: Whitespace-separated weather and cloud tokens, in source order

    Returns:
        (present_weather, cloud_layers)

    Raises:
        FieldDecodeError: If a token is shaped like a wind, visibility or
            variation group, meaning that group was malformed
    """
    tokens = blob.split()
    if not tokens:
        return (), ()

    for token in tokens:
        if MISPLACED_GROUP_RE.fullmatch(token):
            raise FieldDecodeError("weather", blob, f"malformed wind or visibility group {token!r}")

    clouds = tuple(token for token in tokens if is_cloud_layer(token))
    if not clouds:
        logger.warning("No cloud layer in weather segment %r, treating it as weather only", blob)
        return tuple(tokens), ()

    boundary = tokens.index(clouds[0])
    dropped = [t for t in tokens[boundary:] if not is_cloud_layer(t)]
    if dropped:
        logger.debug("Dropping weather tokens after first cloud layer: %s", " ".join(dropped))

    return tuple(tokens[:boundary]), clouds
