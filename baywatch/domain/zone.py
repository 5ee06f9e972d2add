"""Zone configuration — the static table of monitored beaches.

A zone is one physical location with its own video stream and a pairing
of NOAA stations.  Configuration is loaded once and never mutated; every
component reads it, none writes it.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class StationRef(BaseModel):
    """NOAA station identifiers used for a zone's environmental feed."""

    buoy_station_id: str = Field(..., min_length=1, description="NDBC buoy station")
    tide_station_id: str = Field(..., min_length=1, description="CO-OPS tide station")

    model_config = {"frozen": True}


class MapPosition(BaseModel):
    x: float
    y: float

    model_config = {"frozen": True}


class ZoneConfig(BaseModel):
    """Static description of one monitored zone."""

    id: str = Field(..., min_length=1, max_length=64)
    name: str
    short_name: str
    stream_url: str = Field(default="", description="Live stream locator; empty if none")
    embed_url: Optional[str] = None
    enabled: bool = False
    lat: float
    lng: float
    stations: StationRef
    map_position: MapPosition

    model_config = {"frozen": True}

    @property
    def has_stream(self) -> bool:
        return bool(self.stream_url)


class VisionConditions:
    """Natural-language conditions sent to the vision API.

    All phrased for sensitivity: a single person counts.
    """

    PRIMARY = (
        "Are there any people visible on the beach or near the water? "
        "Even a single person counts."
    )
    SWIMMERS = (
        "Is anyone in or near the ocean water? Look for any person wading, "
        "swimming, or standing in the surf."
    )


# ── Built-in zone table ─────────────────────────────────────────────────────

ZONE_CONFIGS: tuple[ZoneConfig, ...] = (
    ZoneConfig(
        id="santa-monica",
        name="Santa Monica Beach",
        short_name="Santa Monica",
        stream_url="https://www.youtube.com/watch?v=qmE7U1YZPQA",
        enabled=True,
        lat=34.008,
        lng=-118.497,
        # Santa Monica Bay waverider buoy
        stations=StationRef(buoy_station_id="46221", tide_station_id="9410840"),
        map_position=MapPosition(x=95, y=135),
    ),
    ZoneConfig(
        id="venice",
        name="Venice Beach",
        short_name="Venice",
        stream_url="https://www.youtube.com/watch?v=RGYlFjV-dtc",
        enabled=True,
        lat=33.985,
        lng=-118.472,
        stations=StationRef(buoy_station_id="46221", tide_station_id="9410840"),
        map_position=MapPosition(x=115, y=165),
    ),
    ZoneConfig(
        id="manhattan",
        name="Manhattan Beach",
        short_name="Manhattan",
        stream_url="https://www.youtube.com/watch?v=D4B4MdxLkQo",
        enabled=True,
        lat=33.884,
        lng=-118.410,
        stations=StationRef(buoy_station_id="46221", tide_station_id="9410840"),
        map_position=MapPosition(x=155, y=215),
    ),
    ZoneConfig(
        id="huntington",
        name="Huntington Beach",
        short_name="Huntington",
        lat=33.655,
        lng=-117.999,
        # San Pedro South buoy, Los Angeles tide station
        stations=StationRef(buoy_station_id="46253", tide_station_id="9410660"),
        map_position=MapPosition(x=340, y=370),
    ),
    ZoneConfig(
        id="newport",
        name="Newport Beach",
        short_name="Newport",
        lat=33.593,
        lng=-117.881,
        stations=StationRef(buoy_station_id="46222", tide_station_id="9410580"),
        map_position=MapPosition(x=390, y=405),
    ),
    ZoneConfig(
        id="laguna",
        name="Laguna Beach",
        short_name="Laguna",
        lat=33.542,
        lng=-117.783,
        stations=StationRef(buoy_station_id="46222", tide_station_id="9410580"),
        map_position=MapPosition(x=430, y=440),
    ),
)


def get_zone_config(
    zone_id: str,
    configs: tuple[ZoneConfig, ...] = ZONE_CONFIGS,
) -> ZoneConfig | None:
    for z in configs:
        if z.id == zone_id:
            return z
    return None
