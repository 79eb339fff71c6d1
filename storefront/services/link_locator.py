"""Link-locator creative search (text, banner and rich-media links).

The three endpoints take positional path parameters instead of a query string:

    getTextLinks/{mid}/{cat}/{start}/{end}/{campaign}/{page}
    getBannerLinks/{mid}/{cat}/{start}/{end}/{size}/{campaign}/{page}
    getDRMLinks/{mid}/{cat}/{start}/{end}/{campaign}/{page}

Unset id filters are sent as ``-1``, dates as ``MMddyyyy``, unset dates as
empty segments. A successful empty body means no links; any other body must
carry the endpoint's response envelope.
"""

from dataclasses import dataclass
from datetime import date, datetime
import logging
import re

import httpx

from storefront.schemas.link import LinkSearchResult, LinkType
from storefront.schemas.results import LinkSearchError, OperationError
from storefront.services.auth import fetch_access_token
from storefront.services.merchants import LINK_LOCATOR_PATH
from storefront.services.normalizer import normalize_link_results, read_xml
from storefront.services.outcome import failure, invalid_request
from storefront.services.rakuten_client import RakutenClient, RakutenError, get_rakuten_client

logger = logging.getLogger("uvicorn.error")

UNSET = "-1"

_LINK_DATE_RE = re.compile(r"^\d{8}$")


@dataclass(frozen=True)
class LinkEndpoint:
    command: str
    envelope: str
    has_banner_size: bool = False


LINK_ENDPOINTS: dict[LinkType, LinkEndpoint] = {
    LinkType.TEXT: LinkEndpoint("getTextLinks", "getTextLinksResponse"),
    LinkType.BANNER: LinkEndpoint("getBannerLinks", "getBannerLinksResponse", has_banner_size=True),
    LinkType.RICH_MEDIA: LinkEndpoint("getDRMLinks", "getDRMLinksResponse"),
}


def format_link_date(value: date | str | None) -> str:
    """``MMddyyyy`` token for the path; "" when unset.

    Raises:
        ValueError: If a string is neither ISO ``YYYY-MM-DD`` nor ``MMddyyyy``.
    """
    if value is None:
        return ""
    if isinstance(value, date):
        return value.strftime("%m%d%Y")

    text = str(value).strip()
    if not text:
        return ""
    if _LINK_DATE_RE.match(text):
        return text
    try:
        return datetime.fromisoformat(text).strftime("%m%d%Y")
    except ValueError:
        raise ValueError(f"Invalid link date {value!r}: expected YYYY-MM-DD or MMddyyyy.") from None


def _id_or_unset(value: int | str | None) -> str:
    if value is None:
        return UNSET
    text = str(value).strip()
    return text or UNSET


def build_link_path(
    link_type: LinkType,
    *,
    advertiser_id: int | str | None = None,
    category_id: int | str | None = None,
    start_date: date | str | None = None,
    end_date: date | str | None = None,
    campaign_id: int | str | None = None,
    page: int | None = None,
    banner_size_code: int | str | None = None,
) -> str:
    """Relative request path for one link search.

    Raises:
        ValueError: On an unparseable date.
    """
    endpoint = LINK_ENDPOINTS[link_type]
    segments = [
        _id_or_unset(advertiser_id),
        _id_or_unset(category_id),
        format_link_date(start_date),
        format_link_date(end_date),
    ]
    if endpoint.has_banner_size:
        segments.append(_id_or_unset(banner_size_code))
    segments.append(_id_or_unset(campaign_id))
    segments.append(str(page) if page else "1")
    return f"{LINK_LOCATOR_PATH}/{endpoint.command}/{'/'.join(segments)}"


async def search_links(
    link_type: LinkType | str,
    *,
    advertiser_id: int | str | None = None,
    category_id: int | str | None = None,
    start_date: date | str | None = None,
    end_date: date | str | None = None,
    campaign_id: int | str | None = None,
    page: int | None = None,
    banner_size_code: int | str | None = None,
    client: RakutenClient | None = None,
) -> LinkSearchResult | OperationError:
    """Search creatives of one link type. Results and errors carry ``requestUrl``."""
    try:
        kind = LinkType(link_type)
        path = build_link_path(
            kind,
            advertiser_id=advertiser_id,
            category_id=category_id,
            start_date=start_date,
            end_date=end_date,
            campaign_id=campaign_id,
            page=page,
            banner_size_code=banner_size_code,
        )
    except ValueError as e:
        return invalid_request(str(e), LinkSearchError)

    client = client or get_rakuten_client()
    request_url = client.build_url(path)
    try:
        token = await fetch_access_token(client)
        response = await client.get(path, token=token, fmt="xml")
        parsed = read_xml(response, "Link search", empty_ok=True)
        links = normalize_link_results(parsed, LINK_ENDPOINTS[kind].envelope)
    except (RakutenError, httpx.HTTPError) as e:
        return failure(e, "the link search", LinkSearchError, request_url=request_url)

    return LinkSearchResult(links=links, request_url=request_url)
