"""Market comparables providers for fundraising predictions."""
import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

import httpx

from horizon.analytics.fundraising import BASE_TIMELINE_DAYS, RoundType

logger = logging.getLogger(__name__)


class SectorSentiment(str, Enum):
    VERY_POSITIVE = "very_positive"
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"
    VERY_NEGATIVE = "very_negative"


# Market-conditions factor score implied by each sentiment
SENTIMENT_SCORES = {
    SectorSentiment.VERY_POSITIVE: 0.9,
    SectorSentiment.POSITIVE: 0.8,
    SectorSentiment.NEUTRAL: 0.7,
    SectorSentiment.NEGATIVE: 0.5,
    SectorSentiment.VERY_NEGATIVE: 0.3,
}


@dataclass
class ComparableDeal:
    company_name: str
    round_size: float
    valuation: Optional[float] = None
    deal_date: Optional[date] = None
    similarity: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "company_name": self.company_name,
            "round_size": self.round_size,
            "valuation": self.valuation,
            "deal_date": self.deal_date.isoformat() if self.deal_date else None,
            "similarity": self.similarity,
        }


@dataclass
class MarketConditions:
    sector_sentiment: SectorSentiment = SectorSentiment.NEUTRAL
    comparable_deals: List[ComparableDeal] = field(default_factory=list)
    average_round_size: Optional[float] = None
    average_valuation: Optional[float] = None
    average_time_to_close: Optional[int] = None
    source: str = "none"

    @property
    def score(self) -> float:
        return SENTIMENT_SCORES[self.sector_sentiment]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sector_sentiment": self.sector_sentiment.value,
            "comparable_deals": [d.to_dict() for d in self.comparable_deals],
            "average_round_size": self.average_round_size,
            "average_valuation": self.average_valuation,
            "average_time_to_close": self.average_time_to_close,
            "source": self.source,
        }


def neutral_conditions(round_type: RoundType) -> MarketConditions:
    return MarketConditions(
        average_time_to_close=BASE_TIMELINE_DAYS.get(round_type, BASE_TIMELINE_DAYS[RoundType.OTHER]),
    )


class MarketComparablesProvider(Protocol):
    async def get_comparables(self, round_type: RoundType, target_size: float) -> MarketConditions:
        ...


class NullComparablesProvider:
    """Neutral sentiment and no deals. Used when no market feed is configured."""

    async def get_comparables(self, round_type: RoundType, target_size: float) -> MarketConditions:
        return neutral_conditions(round_type)


class HttpComparablesProvider:
    """
    Fetches comparables from an external market-data API.

    Expects a JSON body with `sector_sentiment`, `comparable_deals` and the
    `average_*` fields. Any transport or parsing failure is logged and the
    neutral result returned.
    """

    def __init__(self, base_url: str, api_key: str = "", timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def get_comparables(self, round_type: RoundType, target_size: float) -> MarketConditions:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    f"{self.base_url}/comparables",
                    params={"round_type": round_type.value, "target_size": target_size},
                    headers=self._headers(),
                )
                response.raise_for_status()
                return self._parse(response.json())
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Market comparables unavailable for {round_type.value}: {e}")
            return neutral_conditions(round_type)

    @staticmethod
    def _parse(data: Dict[str, Any]) -> MarketConditions:
        deals = [
            ComparableDeal(
                company_name=str(deal["company_name"]),
                round_size=float(deal["round_size"]),
                valuation=float(deal["valuation"]) if deal.get("valuation") is not None else None,
                deal_date=date.fromisoformat(deal["deal_date"][:10]) if deal.get("deal_date") else None,
                similarity=float(deal.get("similarity", 0.0)),
            )
            for deal in data.get("comparable_deals", [])
        ]
        time_to_close = data.get("average_time_to_close")
        return MarketConditions(
            sector_sentiment=SectorSentiment(data.get("sector_sentiment", "neutral")),
            comparable_deals=deals,
            average_round_size=data.get("average_round_size"),
            average_valuation=data.get("average_valuation"),
            average_time_to_close=int(time_to_close) if time_to_close is not None else None,
            source="http",
        )


def build_provider(url: str, api_key: str = "", timeout: float = 10.0) -> MarketComparablesProvider:
    if url:
        return HttpComparablesProvider(url, api_key, timeout)
    return NullComparablesProvider()
