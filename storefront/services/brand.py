"""Brand page: advertiser details, one product page and coupons in one call."""

import asyncio
import logging

import httpx

from storefront.schemas.advertiser import AdvertiserDetails
from storefront.schemas.coupon import Coupon
from storefront.schemas.product import BrandPage, ProductSearchPage
from storefront.schemas.results import OperationError
from storefront.services.auth import fetch_access_token
from storefront.services.branding import brand_slug, domain_from_name, logo_url
from storefront.services.coupons import fetch_coupon_feed, sort_coupons
from storefront.services.merchants import fetch_advertiser_details
from storefront.services.normalizer import to_int
from storefront.services.outcome import failure, invalid_request
from storefront.services.products import WALK_PAGE_SIZE, fetch_product_page
from storefront.services.rakuten_client import RakutenClient, RakutenError, get_rakuten_client

logger = logging.getLogger("uvicorn.error")


def _empty_product_page() -> ProductSearchPage:
    return ProductSearchPage(total_matches=0, total_pages=0, page_number=1, items=[])


async def get_brand_page(
    advertiser_id: int | str | None,
    page: int = 1,
    *,
    client: RakutenClient | None = None,
) -> BrandPage | OperationError:
    """Everything a brand page shows, fetched concurrently.

    Each part degrades on its own: missing details -> None, failed product
    search -> an empty page, failed coupon search -> no coupons. The
    canonical ``brandSlug`` is built from the advertiser name when known.
    """
    mid = to_int(advertiser_id)
    if mid is None or mid <= 0:
        return invalid_request("Advertiser ID is required.")
    page = page if page and page > 0 else 1

    client = client or get_rakuten_client()
    try:
        token = await fetch_access_token(client)
    except (RakutenError, httpx.HTTPError) as e:
        return failure(e, "the brand page lookup")

    details_res, products_res, coupons_res = await asyncio.gather(
        fetch_advertiser_details(client, token, mid),
        fetch_product_page(client, token, {"mid": mid, "max": WALK_PAGE_SIZE, "pagenumber": page}),
        fetch_coupon_feed(client, token, {"mid": mid}),
        return_exceptions=True,
    )

    for res in (details_res, products_res, coupons_res):
        if isinstance(res, asyncio.CancelledError):
            raise res

    details: AdvertiserDetails | None = None
    if isinstance(details_res, BaseException):
        logger.warning(f"Failed to fetch advertiser details for {mid}: {details_res}")
    else:
        details = details_res

    if isinstance(products_res, BaseException):
        logger.warning(f"Error fetching products for {mid}: {products_res}")
        product_data = _empty_product_page()
    else:
        product_data = products_res

    coupons: list[Coupon] = []
    if isinstance(coupons_res, BaseException):
        logger.warning(f"Error fetching coupons for {mid}: {coupons_res}")
    else:
        coupons = sort_coupons(coupons_res.coupons)

    return BrandPage(
        advertiser_details=details,
        product_data=product_data,
        coupons=coupons,
        logo_url=_brand_logo(details),
        brand_slug=brand_slug(mid, details.name if details else None),
    )


def _brand_logo(details: AdvertiserDetails | None) -> str | None:
    # Without a site URL, fall back to a domain guessed from the name.
    if details is None:
        return None
    return logo_url(details.url or domain_from_name(details.name))
