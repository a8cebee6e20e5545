"""Tests for market comparables providers."""

import httpx
import pytest
from datetime import date
from unittest.mock import patch

from horizon.analytics.fundraising import RoundType
from horizon.analytics.market import (
    HttpComparablesProvider,
    NullComparablesProvider,
    SectorSentiment,
    build_provider,
)

_RealAsyncClient = httpx.AsyncClient


def client_with(handler):
    """AsyncClient factory routing every request to `handler`."""
    def factory(**kwargs):
        return _RealAsyncClient(transport=httpx.MockTransport(handler), **kwargs)
    return factory


class TestNullProvider:
    """Tests for the neutral provider."""

    @pytest.mark.asyncio
    async def test_neutral_conditions(self):
        conditions = await NullComparablesProvider().get_comparables(RoundType.SERIES_A, 5_000_000)
        assert conditions.sector_sentiment == SectorSentiment.NEUTRAL
        assert conditions.score == 0.7
        assert conditions.comparable_deals == []
        assert conditions.average_time_to_close == 150


class TestHttpProvider:
    """Tests for the HTTP provider."""

    @pytest.mark.asyncio
    async def test_parses_response(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={
                "sector_sentiment": "positive",
                "comparable_deals": [
                    {"company_name": "Acme", "round_size": 4_000_000, "deal_date": "2026-05-01T00:00:00Z"},
                ],
                "average_round_size": 4_500_000,
                "average_time_to_close": 95,
            })

        provider = HttpComparablesProvider("https://market.example.com/", api_key="k")
        with patch("horizon.analytics.market.httpx.AsyncClient", client_with(handler)):
            conditions = await provider.get_comparables(RoundType.SEED, 2_000_000)

        assert seen["url"].startswith("https://market.example.com/comparables?")
        assert "round_type=Seed" in seen["url"]
        assert seen["auth"] == "Bearer k"
        assert conditions.sector_sentiment == SectorSentiment.POSITIVE
        assert conditions.score == 0.8
        assert conditions.comparable_deals[0].deal_date == date(2026, 5, 1)
        assert conditions.average_time_to_close == 95
        assert conditions.source == "http"

    @pytest.mark.asyncio
    async def test_server_error_falls_back_to_neutral(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503)

        provider = HttpComparablesProvider("https://market.example.com")
        with patch("horizon.analytics.market.httpx.AsyncClient", client_with(handler)):
            conditions = await provider.get_comparables(RoundType.SEED, 2_000_000)

        assert conditions.sector_sentiment == SectorSentiment.NEUTRAL
        assert conditions.source == "none"

    @pytest.mark.asyncio
    async def test_malformed_body_falls_back_to_neutral(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"sector_sentiment": "euphoric"})

        provider = HttpComparablesProvider("https://market.example.com")
        with patch("horizon.analytics.market.httpx.AsyncClient", client_with(handler)):
            conditions = await provider.get_comparables(RoundType.BRIDGE, 500_000)

        assert conditions.sector_sentiment == SectorSentiment.NEUTRAL
        assert conditions.average_time_to_close == 60


class TestBuildProvider:
    """Tests for provider selection."""

    def test_empty_url_gives_null_provider(self):
        assert isinstance(build_provider(""), NullComparablesProvider)

    def test_url_gives_http_provider(self):
        assert isinstance(build_provider("https://market.example.com"), HttpComparablesProvider)
