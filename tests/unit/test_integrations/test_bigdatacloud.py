# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Tests for reverse geocoding."""

import httpx
import pytest
import pytest_asyncio
import respx
from httpx import Response

from timeline.exceptions import ExternalServiceError
from timeline.integrations.bigdatacloud import (
    ReverseGeocoder,
    build_place_name,
    format_coordinates,
)

GEOCODE_URL = "https://geocode.example/reverse"


@pytest_asyncio.fixture
async def geocoder():
    """Geocoder against a mocked endpoint with US as home country."""
    geocoder = ReverseGeocoder(url=GEOCODE_URL, timeout=1.0, home_country_code="US")
    yield geocoder
    await geocoder.close()


def test_format_coordinates():
    assert format_coordinates(48.8566, 2.3522) == "48.8566, 2.3522"
    assert format_coordinates(-33.86781, 151.20739) == "-33.8678, 151.2074"


class TestBuildPlaceName:
    """Tests for build_place_name."""

    def test_foreign_country_is_named(self):
        data = {
            "locality": "Paris",
            "principalSubdivision": "Île-de-France",
            "countryName": "France",
            "countryCode": "FR",
        }
        assert build_place_name(data, "US") == "Paris, Île-de-France, France"

    def test_home_country_is_omitted(self):
        data = {
            "locality": "",
            "city": "Austin",
            "principalSubdivision": "Texas",
            "countryName": "United States of America (the)",
            "countryCode": "US",
        }
        assert build_place_name(data, "us") == "Austin, Texas"

    def test_empty_answer(self):
        assert build_place_name({}, "US") is None

    def test_non_text_fields_are_skipped(self):
        data = {
            "locality": 75001,
            "city": "Paris",
            "principalSubdivision": None,
            "countryName": ["France"],
            "countryCode": 250,
        }
        assert build_place_name(data, "US") == "Paris"

    def test_only_non_text_fields(self):
        assert build_place_name({"locality": 75001}, "US") is None


class TestDescribe:
    """Tests for ReverseGeocoder.describe."""

    @respx.mock
    @pytest.mark.asyncio
    async def test_resolves_place_name(self, geocoder):
        route = respx.get(GEOCODE_URL).mock(
            return_value=Response(
                200,
                json={
                    "locality": "Kyoto",
                    "principalSubdivision": "Kyoto Prefecture",
                    "countryName": "Japan",
                    "countryCode": "JP",
                },
            )
        )

        name = await geocoder.describe(35.0116, 135.7681)

        assert name == "Kyoto, Kyoto Prefecture, Japan"
        params = route.calls.last.request.url.params
        assert params["latitude"] == "35.0116"
        assert params["longitude"] == "135.7681"
        assert params["localityLanguage"] == "en"

    @respx.mock
    @pytest.mark.asyncio
    async def test_falls_back_on_network_error(self, geocoder):
        respx.get(GEOCODE_URL).mock(side_effect=httpx.ConnectError("unreachable"))

        assert await geocoder.describe(48.8566, 2.3522) == "48.8566, 2.3522"

    @respx.mock
    @pytest.mark.asyncio
    async def test_falls_back_on_timeout(self, geocoder):
        respx.get(GEOCODE_URL).mock(side_effect=httpx.ReadTimeout("slow"))

        assert await geocoder.describe(48.8566, 2.3522) == "48.8566, 2.3522"

    @respx.mock
    @pytest.mark.asyncio
    async def test_falls_back_on_empty_answer(self, geocoder):
        respx.get(GEOCODE_URL).mock(return_value=Response(200, json={}))

        assert await geocoder.describe(0.0, 0.0) == "0.0000, 0.0000"


class TestLookup:
    """Tests for ReverseGeocoder.lookup."""

    @respx.mock
    @pytest.mark.asyncio
    async def test_raises_on_error_status(self, geocoder):
        respx.get(GEOCODE_URL).mock(return_value=Response(503))

        with pytest.raises(ExternalServiceError):
            await geocoder.lookup(48.8566, 2.3522)

    @respx.mock
    @pytest.mark.asyncio
    async def test_raises_on_invalid_json(self, geocoder):
        respx.get(GEOCODE_URL).mock(return_value=Response(200, content=b"<html>"))

        with pytest.raises(ExternalServiceError):
            await geocoder.lookup(48.8566, 2.3522)

    @respx.mock
    @pytest.mark.asyncio
    async def test_non_object_answer(self, geocoder):
        respx.get(GEOCODE_URL).mock(return_value=Response(200, json=[]))

        assert await geocoder.lookup(48.8566, 2.3522) is None


class TestMalformedAnswer:
    """Tests for answers whose fields are not text."""

    @respx.mock
    @pytest.mark.asyncio
    async def test_describe_falls_back_to_coordinates(self, geocoder):
        respx.get(GEOCODE_URL).mock(return_value=Response(200, json={"locality": 75001}))

        assert await geocoder.describe(48.8566, 2.3522) == "48.8566, 2.3522"
