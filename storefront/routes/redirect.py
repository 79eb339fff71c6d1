"""Outbound "Shop Now" redirect.

GET /r/products/{link_id} -> 302 to the product's affiliate tracking URL.

The product is resolved with the same best-effort link-id lookup as
``/v1/products/{link_id}``. Only absolute http(s) targets are followed.
"""

from urllib.parse import urlsplit

from fastapi import APIRouter, HTTPException, Path
from fastapi.responses import RedirectResponse

from storefront.schemas import OperationError
from storefront.schemas.common import ErrorResponse
from storefront.routes.errors import http_error
from storefront.services.products import get_product_by_link_id

router = APIRouter()

REDIRECT_SCHEMES = {"http", "https"}


def is_redirect_target(url: str | None) -> bool:
    """True for an absolute http(s) URL with a host (no javascript:, data:, ...)."""
    if not url:
        return False
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return False
    return parts.scheme.lower() in REDIRECT_SCHEMES and bool(parts.netloc)


@router.get("/products/{link_id}")
async def shop_now(
    link_id: str = Path(min_length=1, max_length=100, pattern=r"^[A-Za-z0-9_-]+$"),
) -> RedirectResponse:
    result = await get_product_by_link_id(link_id)
    if isinstance(result, OperationError):
        raise http_error(result, {"linkId": link_id})

    target = result.product.link_url
    if not is_redirect_target(target):
        raise HTTPException(
            status_code=502,
            detail=ErrorResponse.body(
                "INVALID_AFFILIATE_URL",
                "Product link is not safe for redirect",
                {"linkId": link_id},
            ),
        )

    return RedirectResponse(url=target, status_code=302, headers={"Cache-Control": "private, max-age=60"})
