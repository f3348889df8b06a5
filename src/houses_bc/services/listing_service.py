"""Property listing search via the Zillow API on RapidAPI.

Endpoints used:
- GET /propertyExtendedSearch: listing search by location and filters
- GET /property: details for one ZPID

Raw payloads are validated into ``ListingSummary`` records here so nothing
downstream touches the untyped API shape.
"""

import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from houses_bc.app.config import get_settings
from houses_bc.domain.schemas import ListingSummary
from houses_bc.services.errors import UpstreamServiceError

logger = logging.getLogger(__name__)

BC_NEIGHBORHOODS = [
    "Vancouver, BC",
    "Burnaby, BC",
    "Richmond, BC",
    "Surrey, BC",
    "Coquitlam, BC",
    "North Vancouver, BC",
    "West Vancouver, BC",
    "New Westminster, BC",
]


def parse_listings(payload: dict) -> list[ListingSummary]:
    """Validate the result list of a search payload, skipping malformed rows."""
    raw = payload.get("props") or payload.get("results") or []
    listings = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        try:
            listings.append(ListingSummary.model_validate(item))
        except ValidationError as exc:
            logger.warning("Skipping malformed listing %s: %s", item.get("zpid"), exc)
    return listings


def summarize_neighborhood(location: str, payload: dict, sample_size: int = 6) -> dict:
    """Listing count, average price, price range and home-type counts."""
    listings = parse_listings(payload)
    prices = [listing.price for listing in listings if listing.price and listing.price > 0]

    property_types: dict[str, int] = {}
    for listing in listings:
        key = listing.home_type or "Unknown"
        property_types[key] = property_types.get(key, 0) + 1

    return {
        "location": location,
        "totalListings": payload.get("totalResultCount") or len(listings),
        "averagePrice": round(sum(prices) / len(prices)) if prices else 0,
        "priceRange": {
            "min": min(prices) if prices else 0,
            "max": max(prices) if prices else 0,
        },
        "propertyTypes": property_types,
        "sample": [
            listing.model_dump(by_alias=False) for listing in listings[:sample_size]
        ],
    }


class ListingService:
    """Thin async client for the listing API."""

    def __init__(self):
        self.settings = get_settings()
        self.base_url = f"https://{self.settings.rapidapi_host}"

    @property
    def _headers(self) -> dict:
        return {
            "X-RapidAPI-Key": self.settings.rapidapi_key,
            "X-RapidAPI-Host": self.settings.rapidapi_host,
        }

    async def _get(self, path: str, params: dict[str, Any]) -> dict:
        if not self.settings.rapidapi_key:
            raise UpstreamServiceError("listings", "listing API key is not configured")

        clean_params = {k: v for k, v in params.items() if v is not None}
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.upstream_timeout_seconds
            ) as client:
                resp = await client.get(
                    f"{self.base_url}{path}", params=clean_params, headers=self._headers
                )
        except httpx.TimeoutException as exc:
            logger.error("Listing API timed out on %s", path)
            raise UpstreamServiceError("listings", "timed out") from exc
        except httpx.HTTPError as exc:
            logger.error("Listing API transport error on %s: %s", path, exc)
            raise UpstreamServiceError("listings", str(exc)) from exc

        if resp.status_code != 200:
            logger.error("Listing API %s failed (%d): %s", path, resp.status_code, resp.text[:300])
            raise UpstreamServiceError("listings", f"http_{resp.status_code}")
        return resp.json()

    async def search(
        self,
        location: str = "British Columbia",
        status_type: str = "ForSale",
        home_type: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        beds: Optional[int] = None,
        baths: Optional[int] = None,
        page: int = 1,
    ) -> dict:
        """Raw search payload."""
        return await self._get(
            "/propertyExtendedSearch",
            {
                "location": location,
                "status_type": status_type,
                "home_type": home_type,
                "minPrice": min_price,
                "maxPrice": max_price,
                "bedsMin": beds,
                "bathsMin": baths,
                "page": page,
            },
        )

    async def search_listings(self, **filters) -> tuple[list[ListingSummary], dict]:
        """Validated listings plus paging info."""
        payload = await self.search(**filters)
        paging = {
            "totalResultCount": payload.get("totalResultCount"),
            "totalPages": payload.get("totalPages"),
            "currentPage": payload.get("currentPage", filters.get("page", 1)),
        }
        return parse_listings(payload), paging

    async def get_details(self, zpid: str) -> tuple[ListingSummary, dict]:
        """Validated summary plus the raw detail payload."""
        payload = await self._get("/property", {"zpid": zpid})
        try:
            return ListingSummary.model_validate(payload), payload
        except ValidationError as exc:
            logger.error("Listing API returned an unexpected detail shape for %s: %s", zpid, exc)
            raise UpstreamServiceError("listings", "unexpected response") from exc

    async def neighborhood_info(self, location: str) -> dict:
        payload = await self.search(location=location, status_type="ForSale")
        return summarize_neighborhood(location, payload)
