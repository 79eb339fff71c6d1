"""Advertiser and merchant-program lookups."""

import logging
from typing import Any

import httpx

from storefront.schemas.advertiser import AdvertiserDetails
from storefront.schemas.merchant import MerchByCategoryResult, MerchDetails, MerchInfoResult
from storefront.schemas.results import OperationError
from storefront.services.auth import fetch_access_token
from storefront.services.normalizer import (
    normalize_advertiser,
    normalize_merch_by_id,
    normalize_merchants_by_category,
    read_json,
    read_xml,
    to_int,
)
from storefront.services.outcome import failure, invalid_request
from storefront.services.rakuten_client import RakutenClient, RakutenError, get_rakuten_client

logger = logging.getLogger("uvicorn.error")

LINK_LOCATOR_PATH = "linklocator/1.0"


def advertiser_path(advertiser_id: int) -> str:
    return f"v2/advertisers/{advertiser_id}"


def merch_by_id_path(advertiser_id: int) -> str:
    return f"{LINK_LOCATOR_PATH}/getMerchByID/{advertiser_id}"


def merch_by_category_path(category_id: int) -> str:
    return f"{LINK_LOCATOR_PATH}/getMerchByCategory/{category_id}"


def _positive_id(value: Any) -> int | None:
    parsed = to_int(value)
    if parsed is None or parsed <= 0:
        return None
    return parsed


async def fetch_advertiser_details(client: RakutenClient, token: str, advertiser_id: int) -> AdvertiserDetails | None:
    """Full advertiser record. None when the body carries no advertiser.

    Raises:
        RakutenError: On failure status or invalid body.
        httpx.HTTPError: On transport failures.
    """
    response = await client.get(advertiser_path(advertiser_id), token=token, fmt="json")
    data = read_json(response, f"Advertiser {advertiser_id} lookup")
    return normalize_advertiser(data)


async def fetch_merch_by_id(client: RakutenClient, token: str, advertiser_id: int) -> MerchDetails:
    """Program metadata (offers, commission terms) for one advertiser.

    Raises:
        RakutenError: On failure status, empty or invalid body, fault, or missing ``return``.
        httpx.HTTPError: On transport failures.
    """
    response = await client.get(merch_by_id_path(advertiser_id), token=token, fmt="xml")
    parsed = read_xml(response, "Merchant info")
    return normalize_merch_by_id(parsed)


async def get_merchants_by_category(
    category_id: int | str | None,
    *,
    client: RakutenClient | None = None,
) -> MerchByCategoryResult | OperationError:
    """Merchants in one category. An empty successful body means no merchants."""
    if category_id is None or not str(category_id).strip():
        return invalid_request("Category ID is required.")
    parsed_id = _positive_id(category_id)
    if parsed_id is None:
        return invalid_request(f"Category ID must be a positive integer, got {category_id!r}.")

    client = client or get_rakuten_client()
    try:
        token = await fetch_access_token(client)
        response = await client.get(merch_by_category_path(parsed_id), token=token, fmt="xml")
        parsed = read_xml(response, "Merchant category search", empty_ok=True)
        return MerchByCategoryResult(merchants=normalize_merchants_by_category(parsed))
    except (RakutenError, httpx.HTTPError) as e:
        return failure(e, "the merchant category search")


async def get_merchant_info_by_id(
    advertiser_id: int | str | None,
    *,
    client: RakutenClient | None = None,
) -> MerchInfoResult | OperationError:
    """Program metadata for one advertiser id."""
    if advertiser_id is None or not str(advertiser_id).strip():
        return invalid_request("Advertiser ID is required.")
    parsed_id = _positive_id(advertiser_id)
    if parsed_id is None:
        return invalid_request(f"Advertiser ID must be a positive integer, got {advertiser_id!r}.")

    client = client or get_rakuten_client()
    try:
        token = await fetch_access_token(client)
        return MerchInfoResult(data=await fetch_merch_by_id(client, token, parsed_id))
    except (RakutenError, httpx.HTTPError) as e:
        return failure(e, "the merchant info lookup")
