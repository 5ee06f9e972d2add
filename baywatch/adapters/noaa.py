"""NoaaEnvironmentalClient — buoy and tide readings from public NOAA feeds.

Sources:
    NDBC realtime2   fixed-width text, newest observation first.
                     Columns: YY MM DD hh mm WDIR WSPD GST WVHT DPD APD MWD
                              PRES ATMP WTMP DEWP VIS PTDY TIDE
                     Missing values: "MM", or 99 / 999 / 9999 sentinels.
    CO-OPS           JSON datagetter: water_level, hi/lo predictions, wind.

Most NDBC waverider buoys carry no anemometer, so wind falls back to the
paired CO-OPS station (reported in knots, converted to m/s).

A failed source yields a None reading.  fetch_environmental() raises
EnvironmentalUnavailableError only when buoy, tide and wind all failed, so
the caller keeps whatever it had before.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from baywatch.adapters.base import EnvironmentalService, EnvironmentalUnavailableError
from baywatch.domain.enums import TideState
from baywatch.domain.environment import (
    BuoyReading,
    EnvironmentalData,
    TidePrediction,
    TideReading,
)
from baywatch.domain.zone import ZoneConfig
from baywatch.foundation.clock import utc_now

logger = logging.getLogger(__name__)

KNOTS_TO_MS = 0.514444

_NDBC_MISSING_TOKENS = frozenset({"MM", "N/A", ""})
_NDBC_MISSING_VALUES = frozenset({99.0, 999.0, 9999.0})

# 0-based column indices in the NDBC realtime2 .txt format
_COL_WDIR = 5
_COL_WSPD = 6
_COL_WVHT = 8
_COL_DPD = 9
_COL_ATMP = 13
_COL_WTMP = 14

_COOPS_TIME_FORMAT = "%Y-%m-%d %H:%M"


# ── Parsing (pure) ───────────────────────────────────────────────────────────


def parse_ndbc_value(value: str | None) -> float | None:
    """Parse one NDBC column; None for missing-data markers."""
    if value is None or value.strip() in _NDBC_MISSING_TOKENS:
        return None
    try:
        num = float(value)
    except ValueError:
        return None
    if num in _NDBC_MISSING_VALUES:
        return None
    return num


def parse_ndbc_text(station_id: str, text: str) -> BuoyReading | None:
    """Latest observation from an NDBC realtime2 text file, or None if empty."""
    rows = [ln for ln in text.splitlines() if ln.strip() and not ln.startswith("#")]
    if not rows:
        return None

    cols = rows[0].split()

    def col(i: int) -> float | None:
        return parse_ndbc_value(cols[i]) if i < len(cols) else None

    return BuoyReading(
        station_id=station_id,
        wave_height=col(_COL_WVHT),
        wave_period=col(_COL_DPD),
        wind_speed=col(_COL_WSPD),
        wind_direction=col(_COL_WDIR),
        water_temp=col(_COL_WTMP),
        air_temp=col(_COL_ATMP),
        fetched_at=utc_now(),
    )


def parse_predictions(payload: dict[str, Any]) -> list[TidePrediction]:
    predictions: list[TidePrediction] = []
    for p in payload.get("predictions", []) or []:
        try:
            level = float(p["v"])
        except (KeyError, TypeError, ValueError):
            continue
        predictions.append(TidePrediction(
            time=str(p.get("t", "")),
            level=level,
            type="H" if p.get("type") == "H" else "L",
        ))
    return predictions


def parse_latest_value(payload: dict[str, Any], key: str) -> float | None:
    """First data row's *key* as a float (CO-OPS water_level / wind products)."""
    rows = payload.get("data") or []
    if not rows:
        return None
    try:
        return float(rows[0][key])
    except (KeyError, TypeError, ValueError):
        return None


def determine_tide_state(
    predictions: list[TidePrediction],
    now: datetime | None = None,
) -> TideState:
    """Rising if the next predicted extreme is a high, falling if a low.

    Prediction times are GMT (we request ``time_zone=gmt``).
    """
    if len(predictions) < 2:
        return TideState.UNKNOWN
    now = now or utc_now()
    for p in predictions:
        try:
            at = datetime.strptime(p.time, _COOPS_TIME_FORMAT).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
        if at > now:
            return TideState.RISING if p.type == "H" else TideState.FALLING
    return TideState.UNKNOWN


# ── Client ───────────────────────────────────────────────────────────────────


class NoaaEnvironmentalClient(EnvironmentalService):
    """Fetches buoy, tide and wind readings for a zone.

    Args:
        ndbc_base_url: NDBC realtime2 root.
        coops_base_url: CO-OPS datagetter endpoint.
        application: Application name CO-OPS asks callers to send.
        timeout: Per-request timeout in seconds.
        client: Optional pre-built httpx.AsyncClient.
    """

    def __init__(
        self,
        ndbc_base_url: str = "https://www.ndbc.noaa.gov/data/realtime2",
        coops_base_url: str = "https://api.tidesandcurrents.noaa.gov/api/prod/datagetter",
        application: str = "BaywatchAI",
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._ndbc_base_url = ndbc_base_url.rstrip("/")
        self._coops_base_url = coops_base_url
        self._application = application
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_environmental(self, zone: ZoneConfig) -> EnvironmentalData:
        buoy_result, tide_result, wind_result = await asyncio.gather(
            self.fetch_buoy(zone.stations.buoy_station_id),
            self.fetch_tide(zone.stations.tide_station_id),
            self.fetch_wind(zone.stations.tide_station_id),
            return_exceptions=True,
        )

        buoy = buoy_result if isinstance(buoy_result, BuoyReading) else None
        tide = tide_result if isinstance(tide_result, TideReading) else None
        wind = wind_result if isinstance(wind_result, tuple) else (None, None)

        if buoy is None and tide is None and wind == (None, None):
            raise EnvironmentalUnavailableError(
                f"No NOAA source answered for {zone.id}"
            )

        buoy = self._merge_wind(zone.stations.buoy_station_id, buoy, wind)
        return EnvironmentalData(buoy=buoy, tide=tide)

    # ── NDBC ─────────────────────────────────────────────────────────────

    async def fetch_buoy(self, station_id: str) -> Optional[BuoyReading]:
        url = f"{self._ndbc_base_url}/{station_id}.txt"
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as exc:
            logger.warning("NDBC %s fetch error: %s", station_id, exc)
            return None
        if response.is_error:
            logger.warning("NDBC %s -> %d", station_id, response.status_code)
            return None
        reading = parse_ndbc_text(station_id, response.text)
        if reading is None:
            logger.warning("NDBC %s: no data rows", station_id)
        return reading

    # ── CO-OPS ───────────────────────────────────────────────────────────

    async def _coops(self, station_id: str, product: str, **extra: str) -> dict[str, Any]:
        params = {
            "station": station_id,
            "product": product,
            "datum": "MLLW",
            "units": "english",
            "time_zone": "gmt",
            "format": "json",
            "application": self._application,
            **extra,
        }
        response = await self._client.get(self._coops_base_url, params=params)
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict):
            raise ValueError(f"CO-OPS {product} for {station_id}: unexpected payload")
        return payload

    async def fetch_tide(self, station_id: str) -> Optional[TideReading]:
        """Current level plus today's hi/lo predictions.

        Returns None only if both products failed.
        """
        level_result, pred_result = await asyncio.gather(
            self._coops(station_id, "water_level", date="latest"),
            self._coops(station_id, "predictions", date="today", interval="hilo"),
            return_exceptions=True,
        )
        if isinstance(level_result, BaseException) and isinstance(pred_result, BaseException):
            logger.warning("CO-OPS %s tide fetch failed: %s", station_id, level_result)
            return None

        current_level = (
            parse_latest_value(level_result, "v")
            if not isinstance(level_result, BaseException) else None
        )
        predictions = (
            parse_predictions(pred_result)
            if not isinstance(pred_result, BaseException) else []
        )
        return TideReading(
            station_id=station_id,
            current_level=current_level,
            predictions=predictions,
            tide_state=determine_tide_state(predictions),
            fetched_at=utc_now(),
        )

    async def fetch_wind(self, station_id: str) -> tuple[float | None, float | None]:
        """(speed m/s, direction deg) from the CO-OPS wind product."""
        try:
            payload = await self._coops(station_id, "wind", date="latest")
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("CO-OPS %s wind fetch failed: %s", station_id, exc)
            return (None, None)
        speed_kn = parse_latest_value(payload, "s")
        direction = parse_latest_value(payload, "d")
        speed = speed_kn * KNOTS_TO_MS if speed_kn is not None else None
        return (speed, direction)

    @staticmethod
    def _merge_wind(
        station_id: str,
        buoy: BuoyReading | None,
        wind: tuple[float | None, float | None],
    ) -> BuoyReading | None:
        """Fill buoy wind columns from the tide station where the buoy has none."""
        speed, direction = wind
        if speed is None and direction is None:
            return buoy
        if buoy is None:
            return BuoyReading(
                station_id=station_id,
                wind_speed=speed,
                wind_direction=direction,
                fetched_at=utc_now(),
            )
        update: dict[str, float] = {}
        if buoy.wind_speed is None and speed is not None:
            update["wind_speed"] = speed
        if buoy.wind_direction is None and direction is not None:
            update["wind_direction"] = direction
        return buoy.model_copy(update=update) if update else buoy
