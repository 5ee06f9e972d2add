"""Tests for NOAA parsing and the environmental client."""

from __future__ import annotations

from datetime import datetime, timezone

import httpx
import pytest

from baywatch.adapters.base import EnvironmentalUnavailableError
from baywatch.adapters.noaa import (
    KNOTS_TO_MS,
    NoaaEnvironmentalClient,
    determine_tide_state,
    parse_ndbc_text,
    parse_ndbc_value,
)
from baywatch.domain.enums import TideState
from baywatch.domain.environment import TidePrediction
from baywatch.domain.zone import get_zone_config

NDBC_TEXT = """\
#YY  MM DD hh mm WDIR WSPD GST  WVHT   DPD   APD MWD   PRES  ATMP  WTMP  DEWP  VIS PTDY  TIDE
#yr  mo dy hr mn degT m/s  m/s     m   sec   sec degT   hPa  degC  degC  degC  nmi  hPa    ft
2026 07 04 14 56  MM   MM   MM   1.8    12   6.1 265     MM    MM  19.4    MM   MM   MM    MM
2026 07 04 14 26  MM   MM   MM   1.6    12   6.0 262     MM    MM  19.3    MM   MM   MM    MM
"""


def _handler(request: httpx.Request) -> httpx.Response:
    if request.url.host == "www.ndbc.noaa.gov":
        return httpx.Response(200, text=NDBC_TEXT)
    product = request.url.params["product"]
    if product == "water_level":
        return httpx.Response(200, json={"data": [{"t": "2026-07-04 14:54", "v": "4.512"}]})
    if product == "predictions":
        return httpx.Response(200, json={"predictions": [
            {"t": "2026-07-04 03:10", "v": "-0.3", "type": "L"},
            {"t": "2026-07-04 09:40", "v": "3.9", "type": "H"},
            {"t": "2026-07-04 15:20", "v": "1.1", "type": "L"},
            {"t": "2026-07-04 21:50", "v": "5.6", "type": "H"},
        ]})
    if product == "wind":
        return httpx.Response(200, json={"data": [{"t": "2026-07-04 14:54", "s": "10.0", "d": "250", "g": "14.0"}]})
    return httpx.Response(400)


def _client(handler=_handler) -> NoaaEnvironmentalClient:
    return NoaaEnvironmentalClient(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


class TestNdbcParsing:
    @pytest.mark.parametrize("raw", ["MM", "N/A", "99", "999", "9999.0", "", None, "abc"])
    def test_missing_markers(self, raw) -> None:
        assert parse_ndbc_value(raw) is None

    def test_number(self) -> None:
        assert parse_ndbc_value("1.8") == 1.8

    def test_latest_row_used(self) -> None:
        reading = parse_ndbc_text("46221", NDBC_TEXT)
        assert reading.wave_height == 1.8
        assert reading.wave_period == 12
        assert reading.water_temp == 19.4
        assert reading.wind_speed is None

    def test_no_rows(self) -> None:
        assert parse_ndbc_text("46221", "#YY MM\n#yr mo\n") is None


class TestTideState:
    _PREDS = [
        TidePrediction(time="2026-07-04 09:40", level=3.9, type="H"),
        TidePrediction(time="2026-07-04 15:20", level=1.1, type="L"),
        TidePrediction(time="2026-07-04 21:50", level=5.6, type="H"),
    ]

    def test_falling_before_low(self) -> None:
        now = datetime(2026, 7, 4, 12, 0, tzinfo=timezone.utc)
        assert determine_tide_state(self._PREDS, now) == TideState.FALLING

    def test_rising_before_high(self) -> None:
        now = datetime(2026, 7, 4, 16, 0, tzinfo=timezone.utc)
        assert determine_tide_state(self._PREDS, now) == TideState.RISING

    def test_unknown_after_last(self) -> None:
        now = datetime(2026, 7, 4, 23, 0, tzinfo=timezone.utc)
        assert determine_tide_state(self._PREDS, now) == TideState.UNKNOWN

    def test_unknown_with_fewer_than_two(self) -> None:
        assert determine_tide_state(self._PREDS[:1]) == TideState.UNKNOWN


class TestNoaaEnvironmentalClient:
    @pytest.mark.asyncio
    async def test_fetch_environmental_merges_wind(self) -> None:
        env = await _client().fetch_environmental(get_zone_config("venice"))
        assert env.buoy.wave_height == 1.8
        assert env.buoy.wind_speed == pytest.approx(10.0 * KNOTS_TO_MS)
        assert env.buoy.wind_direction == 250
        assert env.tide.current_level == 4.512
        assert len(env.tide.predictions) == 4

    @pytest.mark.asyncio
    async def test_coops_params(self) -> None:
        seen: list[httpx.QueryParams] = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host != "www.ndbc.noaa.gov":
                seen.append(request.url.params)
            return _handler(request)

        await _client(handler).fetch_environmental(get_zone_config("venice"))
        assert {p["product"] for p in seen} == {"water_level", "predictions", "wind"}
        for params in seen:
            assert params["station"] == "9410840"
            assert params["datum"] == "MLLW"
            assert params["units"] == "english"
            assert params["format"] == "json"

    @pytest.mark.asyncio
    async def test_buoy_failure_keeps_tide(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "www.ndbc.noaa.gov":
                return httpx.Response(404)
            if request.url.params["product"] == "wind":
                return httpx.Response(200, json={"error": {"message": "No data was found"}})
            return _handler(request)

        env = await _client(handler).fetch_environmental(get_zone_config("venice"))
        assert env.buoy is None
        assert env.tide.current_level == 4.512

    @pytest.mark.asyncio
    async def test_total_outage_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        with pytest.raises(EnvironmentalUnavailableError):
            await _client(handler).fetch_environmental(get_zone_config("venice"))
