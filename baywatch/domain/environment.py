"""Environmental readings from NOAA buoys and tide stations.

Each reading is independently nullable: a buoy that is offline yields
``buoy=None`` without affecting the tide reading, and individual columns
inside a reading are ``None`` when the station reports them missing.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from baywatch.domain.enums import TideState
from baywatch.foundation.clock import utc_now


class BuoyReading(BaseModel):
    """Latest NDBC observation for one buoy station."""

    station_id: str
    wave_height: Optional[float] = Field(None, description="Significant wave height (m)")
    wave_period: Optional[float] = Field(None, description="Dominant wave period (s)")
    wind_speed: Optional[float] = Field(None, description="Wind speed (m/s)")
    wind_direction: Optional[float] = Field(None, description="Wind direction (deg true)")
    water_temp: Optional[float] = Field(None, description="Sea surface temperature (°C)")
    air_temp: Optional[float] = Field(None, description="Air temperature (°C)")
    fetched_at: datetime = Field(default_factory=utc_now)

    model_config = {"frozen": True}


class TidePrediction(BaseModel):
    time: str = Field(..., description="GMT time as reported by CO-OPS (YYYY-MM-DD HH:MM)")
    level: float = Field(..., description="Predicted level (ft MLLW)")
    type: Literal["H", "L"]

    model_config = {"frozen": True}


class TideReading(BaseModel):
    """Current water level plus today's high/low predictions."""

    station_id: str
    current_level: Optional[float] = Field(None, description="Water level (ft MLLW)")
    predictions: list[TidePrediction] = Field(default_factory=list)
    tide_state: TideState = TideState.UNKNOWN
    fetched_at: datetime = Field(default_factory=utc_now)

    model_config = {"frozen": True}


class EnvironmentalData(BaseModel):
    """Snapshot replaced wholesale on every successful fetch."""

    buoy: Optional[BuoyReading] = None
    tide: Optional[TideReading] = None

    model_config = {"frozen": True}
