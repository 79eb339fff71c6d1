"""Admin dashboard endpoints.

GET /v1/admin/partnerships                        - partnerships + resolved advertisers
GET /v1/admin/links/{link_type}                   - text / banner / rich-media creatives
GET /v1/admin/merchants/by-category/{category_id} - merchants in a category
GET /v1/admin/merchants/{mid}                     - merchant program info
GET /v1/admin/insights/products                   - per-merchant price/savings summary

These endpoints are intended for internal use.
In production, put them behind authentication (API key or admin token).
"""

import logging

from fastapi import APIRouter, Path, Query

from storefront.schemas import (
    LinkSearchResult,
    LinkType,
    MerchByCategoryResult,
    MerchInfoResult,
    OperationError,
    PartnershipSearchResult,
    PartnershipStatus,
    ProductInsights,
)
from storefront.routes.errors import http_error, upstream_error
from storefront.services.insights import summarize_merchant_pricing
from storefront.services.link_locator import search_links
from storefront.services.merchants import get_merchant_info_by_id, get_merchants_by_category
from storefront.services.partnerships import search_partnerships
from storefront.services.products import search_all_products

router = APIRouter()
logger = logging.getLogger("uvicorn.error")


@router.get("/partnerships", response_model=PartnershipSearchResult)
async def list_partnerships(
    partner_status: PartnershipStatus | None = Query(default=None),
    advertiser_name: str | None = Query(default=None),
    page: int | None = Query(default=None, ge=1),
    limit: int | None = Query(default=None, ge=1, le=200),
) -> PartnershipSearchResult:
    """Search partnerships and resolve their advertisers and offer terms."""
    result = await search_partnerships(
        {
            "partner_status": partner_status.value if partner_status else None,
            "advertiser_name": advertiser_name,
            "page": page,
            "limit": limit,
        }
    )
    if isinstance(result, OperationError):
        raise http_error(result)
    return result


@router.get("/links/{link_type}", response_model=LinkSearchResult)
async def list_links(
    link_type: LinkType,
    advertiser_id: int | None = Query(default=None, ge=1),
    category_id: int | None = Query(default=None, ge=1),
    start_date: str | None = Query(default=None, description="YYYY-MM-DD or MMddyyyy"),
    end_date: str | None = Query(default=None, description="YYYY-MM-DD or MMddyyyy"),
    campaign_id: int | None = Query(default=None, ge=1),
    page: int = Query(default=1, ge=1),
    banner_size_code: int | None = Query(default=None, ge=1, description="Banner links only"),
) -> LinkSearchResult:
    """Search creatives of one link type."""
    result = await search_links(
        link_type,
        advertiser_id=advertiser_id,
        category_id=category_id,
        start_date=start_date,
        end_date=end_date,
        campaign_id=campaign_id,
        page=page,
        banner_size_code=banner_size_code,
    )
    if isinstance(result, OperationError):
        raise http_error(result)
    return result


@router.get("/merchants/by-category/{category_id}", response_model=MerchByCategoryResult)
async def list_merchants_by_category(category_id: int = Path(ge=1)) -> MerchByCategoryResult:
    result = await get_merchants_by_category(category_id)
    if isinstance(result, OperationError):
        raise http_error(result, {"categoryId": category_id})
    return result


@router.get("/merchants/{mid}", response_model=MerchInfoResult)
async def get_merchant(mid: int = Path(ge=1)) -> MerchInfoResult:
    result = await get_merchant_info_by_id(mid)
    if isinstance(result, OperationError):
        raise http_error(result, {"mid": mid})
    return result


@router.get("/insights/products", response_model=ProductInsights)
async def product_insights(
    keyword: str | None = Query(default=None),
    mid: str | None = Query(default=None),
    cat: str | None = Query(default=None),
) -> ProductInsights:
    """Walk the matching products and summarize pricing per merchant."""
    walked = await search_all_products({"keyword": keyword, "mid": mid, "cat": cat})
    if walked.error:
        raise upstream_error(walked.error)

    insights = summarize_merchant_pricing(walked.products, walked.total_matches)
    logger.info(
        f"Product insights: {insights.total_products} products, "
        f"{len(insights.avg_price_by_merchant)} merchants priced"
    )
    return insights
