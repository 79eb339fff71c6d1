"""Partnership search joined with advertiser details and merchant offer terms.

Flow:
1. One partnerships call (JSON, filtered, paginated by ``page``/``limit``)
2. Unique advertiser ids from the page
3. Per id, concurrently: advertiser details (JSON) and merchant offers (XML)
4. Join: each partnership gets its advertiser's first offer; each advertiser
   gets the union of categories seen across its partnerships

A failed per-id lookup only drops that id's enrichment.
"""

import asyncio
import logging
from typing import Any

import httpx

from storefront.schemas.advertiser import AdvertiserOffer, Partnership, PartnershipSearchResult
from storefront.schemas.merchant import MerchDetails
from storefront.schemas.results import OperationError
from storefront.services.aggregation import fetch_by_key, merge_categories, unique_keys
from storefront.services.auth import fetch_access_token
from storefront.services.merchants import fetch_advertiser_details, fetch_merch_by_id, merch_by_id_path
from storefront.services.normalizer import normalize_partnership_page, read_json
from storefront.services.outcome import failure
from storefront.services.rakuten_client import (
    RakutenClient,
    RakutenError,
    clean_params,
    get_rakuten_client,
)

logger = logging.getLogger("uvicorn.error")

PARTNERSHIPS_PATH = "v1/partnerships"


def _first_offer(merch: MerchDetails | None) -> AdvertiserOffer | None:
    if merch is None or not merch.offers:
        return None
    offer = merch.offers[0]
    return AdvertiserOffer(
        commission_terms=offer.commission_terms,
        offer_id=offer.offer_id,
        offer_name=offer.offer_name,
    )


def attach_offer_details(partnerships: list[Partnership], merch_by_id: dict[int, MerchDetails]) -> list[Partnership]:
    out: list[Partnership] = []
    for p in partnerships:
        offer = _first_offer(merch_by_id.get(p.advertiser.id))
        out.append(p.model_copy(update={"offer_details": offer}) if offer else p)
    return out


async def search_partnerships(
    params: dict[str, Any] | None = None,
    *,
    client: RakutenClient | None = None,
) -> PartnershipSearchResult | OperationError:
    """Search partnerships and resolve the advertisers they reference.

    ``params`` are upstream filters (``partner_status``, ``advertiser_name``,
    ``page``, ``limit``, ...); blank values are dropped.
    """
    client = client or get_rakuten_client()
    try:
        token = await fetch_access_token(client)
        response = await client.get(PARTNERSHIPS_PATH, token=token, fmt="json", params=clean_params(params))
        data = read_json(response, "Partnership search")
        metadata, partnerships = normalize_partnership_page(data)
    except (RakutenError, httpx.HTTPError) as e:
        return failure(e, "the partnership search")

    if not partnerships:
        return PartnershipSearchResult(metadata=metadata, partnerships=[], advertisers=[])

    ids = unique_keys(p.advertiser.id for p in partnerships)

    details_by_id, merch_by_id = await asyncio.gather(
        fetch_by_key(ids, lambda i: fetch_advertiser_details(client, token, i), "Advertiser details"),
        fetch_by_key(ids, lambda i: fetch_merch_by_id(client, token, i), "Merchant offer"),
    )

    categories = merge_categories((p.advertiser.id, p.advertiser.categories) for p in partnerships)
    advertisers = [
        details_by_id[i].model_copy(update={"categories": categories.get(i, [])})
        for i in ids
        if i in details_by_id
    ]

    logger.info(
        f"Partnership search: {len(partnerships)} partnerships, "
        f"{len(advertisers)}/{len(ids)} advertisers resolved, {len(merch_by_id)} offer lookups"
    )

    return PartnershipSearchResult(
        metadata=metadata,
        partnerships=attach_offer_details(partnerships, merch_by_id),
        advertisers=advertisers,
        merch_request_url=client.build_url(merch_by_id_path(ids[0])),
    )
