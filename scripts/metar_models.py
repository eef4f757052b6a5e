#!/usr/bin/env python3
"""
METAR Data Model

Typed values produced by the decoder, plus the error taxonomy shared by the
grammar, the field decoders and the fetch layer.

Every value here is immutable: a Report is built once by decode_report() and
replaced, never updated, when a newer observation arrives.
"""

from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


# ============================================================================
# Errors
# ============================================================================

class MetarError(Exception):
    """Base class for every decoding and fetching failure."""


class UngrammaticalReportError(MetarError):
    """The report line does not match the METAR grammar at all."""

    def __init__(self, line: str):
        self.line = line
        super().__init__(f"Report does not match METAR grammar: {line!r}")


class FieldDecodeError(MetarError):
    """A matched field violates its encoding rules."""

    def __init__(self, field: str, raw: str, reason: str):
        self.field = field
        self.raw = raw
        self.reason = reason
        super().__init__(f"Cannot decode {field} from {raw!r}: {reason}")


class StationNotFoundError(MetarError):
    """The fetched document holds no report line for the station."""

    def __init__(self, station: str):
        self.station = station
        super().__init__(f"No METAR line found for station {station}")


# ============================================================================
# Values
# ============================================================================

class StationType(Enum):
    """Source of the observation."""
    AUTOMATED = "AUTO"
    CORRECTED = "COR"
    UNSPECIFIED = ""


@dataclass(frozen=True)
class Wind:
    """Surface wind.

    A variable wind (VRB) carries only variable_speed; direction and speed
    stay zero. Calm wind (00000KT) is all zero.
    """
    direction: int = 0
    speed: int = 0
    gust: bool = False
    gust_speed: int = 0
    variable: bool = False
    variable_speed: int = 0


@dataclass(frozen=True)
class Report:  # pylint: disable=too-many-instance-attributes
    """One decoded observation."""
    raw: str
    station: str
    observation_time: datetime
    station_type: StationType = StationType.UNSPECIFIED
    wind: Optional[Wind] = None
    wind_variation: Optional[tuple[int, int]] = None
    visibility: Optional[str] = None
    runway_visual_range: Optional[str] = None
    present_weather: tuple[str, ...] = ()
    cloud_layers: tuple[str, ...] = ()
    temperature: int = 0
    dew_point: int = 0
    altimeter: Optional[int] = None
    remarks: tuple[str, ...] = ()

    def __str__(self) -> str:
        return self.raw

    def to_dict(self) -> dict:
        """Return a JSON-friendly mapping of the report."""
        data = asdict(self)
        data['observation_time'] = self.observation_time.isoformat()
        data['station_type'] = self.station_type.name
        data['wind_variation'] = list(self.wind_variation) if self.wind_variation else None
        for key in ('present_weather', 'cloud_layers', 'remarks'):
            data[key] = list(data[key])
        return data
