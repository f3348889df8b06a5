"""Property search and neighborhood routes backed by the listing API."""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from houses_bc.services.listing_service import BC_NEIGHBORHOODS, ListingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/properties", tags=["properties"])
neighborhoods_router = APIRouter(prefix="/api/neighborhoods", tags=["neighborhoods"])


@router.get("/search")
async def search_properties(
    location: str = "British Columbia",
    status_type: str = Query(default="ForSale", alias="statusType"),
    home_type: Optional[str] = Query(default=None, alias="homeType"),
    min_price: Optional[float] = Query(default=None, alias="minPrice", ge=0),
    max_price: Optional[float] = Query(default=None, alias="maxPrice", ge=0),
    beds: Optional[int] = Query(default=None, ge=0),
    baths: Optional[int] = Query(default=None, ge=0),
    page: int = Query(default=1, ge=1),
):
    listings, paging = await ListingService().search_listings(
        location=location,
        status_type=status_type,
        home_type=home_type,
        min_price=min_price,
        max_price=max_price,
        beds=beds,
        baths=baths,
        page=page,
    )
    return {
        "success": True,
        "data": {"properties": [p.model_dump() for p in listings], **paging},
    }


@router.get("/{zpid}")
async def get_property(zpid: str):
    if not zpid.isdigit():
        raise HTTPException(status_code=400, detail="Invalid property id")
    summary, raw = await ListingService().get_details(zpid)
    return {"success": True, "data": {**raw, "summary": summary.model_dump()}}


@neighborhoods_router.get("")
async def list_neighborhoods():
    return {"success": True, "data": [{"location": name} for name in BC_NEIGHBORHOODS]}


@neighborhoods_router.get("/{location}")
async def get_neighborhood(location: str):
    if not location.strip():
        raise HTTPException(status_code=400, detail="Location is required")
    return {"success": True, "data": await ListingService().neighborhood_info(location)}
