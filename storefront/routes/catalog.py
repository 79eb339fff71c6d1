"""Public catalog endpoints consumed by the storefront pages.

GET /v1/coupons                              - coupon feed search
GET /v1/products                             - product search (with coupons, advertiser URL)
GET /v1/products/all                         - bounded all-pages product walk
GET /v1/products/{link_id}                   - product by link id
GET /v1/merchants/{mid}/related-products     - other products from the same merchant
GET /v1/brands/{brand_slug}                  - brand page (details, products, coupons)

Routers are thin: call services for business logic.
"""

from fastapi import APIRouter, Path, Query

from storefront.schemas import (
    BrandPage,
    CouponFeed,
    MoreProductsResult,
    OperationError,
    ProductInsightResult,
    ProductLookupResult,
    ProductSearchPage,
)
from storefront.routes.errors import http_error, upstream_error
from storefront.services.brand import get_brand_page
from storefront.services.branding import parse_brand_slug
from storefront.services.coupons import search_coupons
from storefront.services.outcome import invalid_request
from storefront.services.products import (
    get_product_by_link_id,
    get_related_products,
    search_all_products,
    search_products,
)

router = APIRouter()


@router.get("/coupons", response_model=CouponFeed)
async def list_coupons(
    mid: str | None = Query(default=None, description="Advertiser id(s), pipe-separated"),
    category: str | None = Query(default=None, description="Coupon category id(s)"),
    promotiontype: str | None = Query(default=None, description="Promotion type id(s)"),
    network: str | None = Query(default=None, description="Network id"),
    resultsperpage: int | None = Query(default=None, ge=1, le=500),
    pagenumber: int | None = Query(default=None, ge=1),
) -> CouponFeed:
    """Search the coupon feed."""
    result = await search_coupons(
        {
            "mid": mid,
            "category": category,
            "promotiontype": promotiontype,
            "network": network,
            "resultsperpage": resultsperpage,
            "pagenumber": pagenumber,
        }
    )
    if isinstance(result, OperationError):
        raise http_error(result)
    return result


def _product_filters(
    keyword: str | None,
    mid: str | None,
    cat: str | None,
    sort: str | None,
    sorttype: str | None,
) -> dict[str, str | None]:
    return {"keyword": keyword, "mid": mid, "cat": cat, "sort": sort, "sorttype": sorttype}


@router.get("/products", response_model=ProductSearchPage)
async def list_products(
    keyword: str | None = Query(default=None, description="Free-text keyword"),
    mid: str | None = Query(default=None, description="Advertiser id"),
    cat: str | None = Query(default=None, description="Product category"),
    sort: str | None = Query(
        default=None, description="Sort field (retailprice, productname, ...), or savings"
    ),
    sorttype: str | None = Query(default=None, pattern=r"^(asc|dsc)$"),
    page_size: int | None = Query(default=None, alias="max", ge=1, le=100),
    pagenumber: int | None = Query(default=None, ge=1),
) -> ProductSearchPage:
    """Search products; results carry their merchant's coupons and URL."""
    params = _product_filters(keyword, mid, cat, sort, sorttype)
    result = await search_products({**params, "max": page_size, "pagenumber": pagenumber})
    if isinstance(result, OperationError):
        raise http_error(result)
    return result


@router.get("/products/all", response_model=ProductInsightResult)
async def list_all_products(
    keyword: str | None = Query(default=None),
    mid: str | None = Query(default=None),
    cat: str | None = Query(default=None),
    sort: str | None = Query(default=None),
    sorttype: str | None = Query(default=None, pattern=r"^(asc|dsc)$"),
) -> ProductInsightResult:
    """Walk up to 10 pages of 100 products."""
    result = await search_all_products(_product_filters(keyword, mid, cat, sort, sorttype))
    if result.error:
        raise upstream_error(result.error)
    return result


@router.get("/products/{link_id}", response_model=ProductLookupResult)
async def get_product(
    link_id: str = Path(min_length=1, max_length=100, pattern=r"^[A-Za-z0-9_-]+$"),
) -> ProductLookupResult:
    """Product by link id (keyword search, exact match)."""
    result = await get_product_by_link_id(link_id)
    if isinstance(result, OperationError):
        raise http_error(result, {"linkId": link_id})
    return result


@router.get("/merchants/{mid}/related-products", response_model=MoreProductsResult)
async def related_products(
    mid: int = Path(ge=1),
    exclude: str = Query(default="", description="Link id of the product being viewed"),
) -> MoreProductsResult:
    """Up to four other products from the same merchant."""
    result = await get_related_products(mid, exclude)
    if isinstance(result, OperationError):
        raise http_error(result)
    return result


@router.get("/brands/{brand_slug}", response_model=BrandPage)
async def brand_page(
    brand_slug: str = Path(min_length=1, max_length=200),
    page: int = Query(default=1, ge=1),
) -> BrandPage:
    """Brand page data; the slug starts with the advertiser id ("123-acme")."""
    mid = parse_brand_slug(brand_slug)
    if mid is None:
        raise http_error(
            invalid_request(f"Brand slug {brand_slug!r} does not start with an advertiser id."),
            {"brandSlug": brand_slug},
        )
    result = await get_brand_page(mid, page)
    if isinstance(result, OperationError):
        raise http_error(result)
    return result
