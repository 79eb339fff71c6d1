"""Product search, enrichment and product-level helpers.

Every product page is enriched after the search:
- ``availableCoupons``: one batched coupon-feed call for all mids on the page
- ``advertiserUrl``: per-mid advertiser lookups, run concurrently

Both lookups run at the same time and degrade independently.
"""

import asyncio
import logging
from typing import Any

import httpx

from storefront.schemas.product import (
    MoreProductsResult,
    Product,
    ProductInsightResult,
    ProductLookupResult,
    ProductSearchPage,
)
from storefront.schemas.results import OperationError
from storefront.services.aggregation import fetch_by_key, unique_keys
from storefront.services.auth import fetch_access_token
from storefront.services.coupons import fetch_coupons_for_mids
from storefront.services.merchants import fetch_advertiser_details
from storefront.services.normalizer import normalize_product_search, read_xml
from storefront.services.outcome import failure, invalid_request, not_found
from storefront.services.pagination import DEFAULT_MAX_PAGES, Page, walk_pages
from storefront.services.rakuten_client import (
    RakutenClient,
    RakutenError,
    clean_params,
    get_rakuten_client,
)

logger = logging.getLogger("uvicorn.error")

PRODUCT_PATH = "productsearch/1.0"

WALK_PAGE_SIZE = 100
LOOKUP_SAMPLE_SIZE = 10
RELATED_SAMPLE_SIZE = 5
RELATED_LIMIT = 4

# Form field names that differ from the upstream query names.
_PARAM_RENAMES = {"sort": "sortby"}

# Sort key applied to the returned page here instead of upstream.
SAVINGS_SORT = "savings"


def product_params(params: dict[str, Any] | None) -> dict[str, str]:
    renamed = {_PARAM_RENAMES.get(k, k): v for k, v in (params or {}).items()}
    return clean_params(renamed)


# ============================================================
# Product helpers
# ============================================================


def sort_by_savings(products: list[Product]) -> list[Product]:
    """Largest discount first; products not on sale keep their order at the end."""

    def key(p: Product) -> tuple[int, float]:
        if not p.is_on_sale:
            return (1, 0.0)
        return (0, -(p.price.amount - p.sale_price.amount) / p.price.amount)

    return sorted(products, key=key)


# ============================================================
# Search
# ============================================================


async def enrich_products(client: RakutenClient, token: str, products: list[Product]) -> list[Product]:
    """Join coupons and advertiser URLs onto products by mid."""
    mids = unique_keys(p.mid for p in products)
    if not mids:
        return products

    coupons_by_mid, details_by_mid = await asyncio.gather(
        fetch_coupons_for_mids(client, token, mids),
        fetch_by_key(mids, lambda m: fetch_advertiser_details(client, token, m), "Advertiser details"),
    )

    enriched: list[Product] = []
    for p in products:
        update: dict[str, Any] = {}
        if p.mid in coupons_by_mid:
            update["available_coupons"] = coupons_by_mid[p.mid]
        details = details_by_mid.get(p.mid)
        if details is not None and details.url:
            update["advertiser_url"] = details.url
        enriched.append(p.model_copy(update=update) if update else p)
    return enriched


async def fetch_product_page(
    client: RakutenClient,
    token: str,
    params: dict[str, Any] | None,
    *,
    enrich: bool = True,
) -> ProductSearchPage:
    """One product-search call, normalized and (optionally) enriched.

    Raises:
        RakutenError: On failure status, empty or invalid body, or error envelope.
        httpx.HTTPError: On transport failures.
    """
    response = await client.get(PRODUCT_PATH, token=token, fmt="xml", params=product_params(params))
    parsed = read_xml(response, "Product search")
    page = normalize_product_search(parsed)
    if enrich and page.items:
        page = page.model_copy(update={"items": await enrich_products(client, token, page.items)})
    return page


async def search_products(
    params: dict[str, Any] | None = None,
    *,
    client: RakutenClient | None = None,
) -> ProductSearchPage | OperationError:
    """Search products and join coupons and advertiser URLs onto the results.

    ``params`` are upstream filters (``keyword``, ``mid``, ``cat``, ``max``,
    ``pagenumber``, ``sort``/``sorttype``, ...); ``sort`` is sent as ``sortby``.
    ``sort=savings`` is not sent: the returned page is ordered by largest
    discount instead.
    """
    params = dict(params or {})
    by_savings = params.get("sort") == SAVINGS_SORT
    if by_savings:
        params.pop("sort")
        params.pop("sorttype", None)

    client = client or get_rakuten_client()
    try:
        token = await fetch_access_token(client)
        page = await fetch_product_page(client, token, params)
    except (RakutenError, httpx.HTTPError) as e:
        return failure(e, "the product search")

    if by_savings:
        page = page.model_copy(update={"items": sort_by_savings(page.items)})
    return page


async def search_all_products(
    params: dict[str, Any] | None = None,
    *,
    client: RakutenClient | None = None,
    max_pages: int = DEFAULT_MAX_PAGES,
) -> ProductInsightResult:
    """Walk up to ``max_pages`` pages of 100 products.

    A first-page failure returns the error with no products; a later-page
    failure returns what was collected so far.
    """
    client = client or get_rakuten_client()
    base = dict(params or {})

    try:
        token = await fetch_access_token(client)

        async def fetch_page(number: int) -> Page[Product]:
            page = await fetch_product_page(
                client, token, {**base, "pagenumber": number, "max": WALK_PAGE_SIZE}
            )
            return Page(
                items=page.items,
                page_number=page.page_number,
                total_pages=page.total_pages,
                total_matches=page.total_matches,
            )

        walked = await walk_pages(fetch_page, max_pages=max_pages)
    except (RakutenError, httpx.HTTPError) as e:
        err = failure(e, "the product search")
        return ProductInsightResult(products=[], total_matches=0, error=err.error)

    logger.info(
        f"Product walk: {len(walked.items)} products over {walked.pages_fetched} pages "
        f"(total matches {walked.total_matches})"
    )
    return ProductInsightResult(products=walked.items, total_matches=walked.total_matches)


async def get_product_by_link_id(
    link_id: str,
    *,
    client: RakutenClient | None = None,
) -> ProductLookupResult | OperationError:
    """Find a product by its link id.

    The upstream has no id lookup: this runs a keyword search for the id and
    picks the exact match among the first results, so a product ranked
    outside that sample is reported as not found.
    """
    link_id = (link_id or "").strip()
    if not link_id:
        return invalid_request("Product link ID is required.")

    client = client or get_rakuten_client()
    try:
        token = await fetch_access_token(client)
        page = await fetch_product_page(client, token, {"keyword": link_id, "max": LOOKUP_SAMPLE_SIZE})
    except (RakutenError, httpx.HTTPError) as e:
        err = failure(e, "the product lookup")
        return OperationError(
            error=f"API error while searching for product with linkid {link_id}: {err.error}",
            kind=err.kind,
        )

    for product in page.items:
        if product.link_id == link_id:
            return ProductLookupResult(product=product)

    return not_found(f"Product with linkid {link_id} not found after searching.")


async def get_related_products(
    mid: int,
    current_link_id: str,
    *,
    client: RakutenClient | None = None,
) -> MoreProductsResult | OperationError:
    """Up to four other products from the same merchant."""
    client = client or get_rakuten_client()
    try:
        token = await fetch_access_token(client)
        page = await fetch_product_page(client, token, {"mid": mid, "max": RELATED_SAMPLE_SIZE})
    except (RakutenError, httpx.HTTPError) as e:
        logger.error(f"Error fetching more products for merchant {mid}: {e}")
        return failure(e, "the related product search")

    others = [p for p in page.items if p.link_id != current_link_id]
    return MoreProductsResult(products=others[:RELATED_LIMIT])
