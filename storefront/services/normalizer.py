"""Normalization of raw upstream payloads into typed domain records.

The upstream XML is loosely shaped:
- a repeated element decodes to a list, a single one to a bare object,
  and an absent one to nothing
- numbers arrive as text
- prices carry the currency as an attribute and the amount as element text
  (``<price currency="USD">19.99</price>``)
- tag names may carry namespace prefixes (``ns2:name``)
- any endpoint may answer with a SOAP fault or an ``error`` envelope instead
  of its documented root

Everything loose stays inside this module. Callers only ever see the pydantic
schemas from ``storefront.schemas`` or a ``RakutenUpstreamError``.
"""

import json
import logging
import re
from typing import Any
from xml.parsers.expat import ExpatError

from pydantic import ValidationError
import xmltodict

from storefront.schemas.advertiser import (
    AdvertiserDetails,
    AdvertiserRef,
    PageMetadata,
    Partnership,
)
from storefront.schemas.coupon import Coupon, CouponFeed
from storefront.schemas.link import LinkItem
from storefront.schemas.merchant import MerchDetails, MerchOfferDetails
from storefront.schemas.product import (
    Money,
    Product,
    ProductCategory,
    ProductDescription,
    ProductSearchPage,
)
from storefront.services.branding import currency_symbol
from storefront.services.rakuten_client import (
    RakutenParseError,
    RakutenUpstreamError,
    UpstreamResponse,
)

logger = logging.getLogger("uvicorn.error")

_FAULT_RE = re.compile(r"<(?:[\w.-]+:)?faultstring>(.*?)</(?:[\w.-]+:)?faultstring>", re.DOTALL)

# Envelopes a fault may be wrapped in (SOAP Envelope/Body).
_FAULT_CONTAINERS = {"envelope", "body"}


# ============================================================
# Primitive coercions
# ============================================================


def strip_namespace(name: str) -> str:
    """Drop a namespace prefix: ``ns2:name`` -> ``name``."""
    if ":" in name:
        return name.split(":", 1)[1]
    return name


def _strip_namespace_postprocessor(path: list, key: str, value: Any) -> tuple[str, Any]:
    # Attribute keys (``@currency``, ``@xmlns:ns2``) are left as-is.
    if key.startswith("@"):
        return key, value
    return strip_namespace(key), value


def as_list(value: Any) -> list[Any]:
    """Bare object -> [object], list -> list, absent -> []."""
    if value is None:
        return []
    if isinstance(value, list):
        return [v for v in value if v is not None]
    return [value]


def text_of(value: Any) -> str | None:
    """Text content of a decoded element (plain text or ``{"#text": ...}``)."""
    if value is None:
        return None
    if isinstance(value, dict):
        value = value.get("#text")
        if value is None:
            return None
    if isinstance(value, (list, tuple)):
        return text_of(value[0]) if value else None
    text = str(value).strip()
    return text or None


def to_int(value: Any) -> int | None:
    """Integer from upstream text. None when absent or not an integer."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    text = text_of(value)
    if text is None:
        return None
    try:
        return int(text)
    except ValueError:
        return None


def to_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = text_of(value)
    if text is None:
        return None
    try:
        return float(text.replace(",", ""))
    except ValueError:
        return None


def parse_money(node: Any) -> Money:
    """Split ``<price currency="USD">19.99</price>`` into currency, symbol and amount.

    The amount is parsed only when element text is present; otherwise it stays None.
    """
    if isinstance(node, dict):
        currency = str(node["@currency"]).strip() if node.get("@currency") else None
        return Money(
            currency=currency,
            amount=to_float(node.get("#text")),
            symbol=currency_symbol(currency) if currency else None,
        )
    return Money(currency=None, amount=to_float(node))


def _texts(container: Any, child: str) -> list[str]:
    """Texts of repeated ``child`` elements inside ``container``."""
    if not isinstance(container, dict):
        return []
    out: list[str] = []
    for item in as_list(container.get(child)):
        text = text_of(item)
        if text:
            out.append(text)
    return out


# ============================================================
# Decoding and error envelopes
# ============================================================


def parse_xml(text: str, label: str = "Request") -> dict[str, Any]:
    """Decode XML text into nested dicts with namespace prefixes stripped.

    Raises:
        RakutenParseError: If the text is not well-formed XML.
    """
    try:
        parsed = xmltodict.parse(text, postprocessor=_strip_namespace_postprocessor)
    except ExpatError as e:
        logger.error(f"{label}: response was not valid XML ({e}). Raw body: {text}")
        raise RakutenParseError(
            f"Failed to parse {label.lower()} data. The API returned an invalid response "
            f"that was not valid XML. {e}"
        ) from e
    return dict(parsed or {})


def find_fault_string(payload: Any) -> str | None:
    """Fault string of a SOAP-style fault, wherever the envelope put it."""
    if not isinstance(payload, dict):
        return None
    for key, value in payload.items():
        lowered = key.lower()
        if lowered == "faultstring":
            text = text_of(value)
            if text:
                return text
        elif lowered == "fault" and isinstance(value, dict):
            by_name = {k.lower(): v for k, v in value.items()}
            # Gateway faults carry description/message instead of faultstring.
            for fault_key in ("faultstring", "description", "message"):
                text = text_of(by_name.get(fault_key))
                if text:
                    return text
        elif lowered in _FAULT_CONTAINERS:
            nested = find_fault_string(value)
            if nested:
                return nested
    return None


def fault_string_from_text(text: str) -> str | None:
    """Regex fallback for fault bodies that do not decode cleanly."""
    match = _FAULT_RE.search(text or "")
    if match:
        return match.group(1).strip() or None
    return None


def _error_text(value: Any) -> str | None:
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, dict):
        for key in ("message", "ErrorText", "error_description", "description"):
            if isinstance(value.get(key), str) and value[key].strip():
                return value[key].strip()
        return text_of(value)
    if isinstance(value, list) and value:
        return _error_text(value[0])
    return None


def extract_error_message(payload: Any, missing_message: str | None) -> str | None:
    """Human-readable error from an error envelope.

    Precedence: fault string, then ``result.error``, then a top-level
    ``error``/``errors``/``message``, then ``missing_message``.
    """
    fault = find_fault_string(payload)
    if fault:
        return fault
    if isinstance(payload, dict):
        result = payload.get("result")
        if isinstance(result, dict):
            nested = _error_text(result.get("error"))
            if nested:
                return nested
        for key in ("error", "errors", "Errors", "message"):
            message = _error_text(payload.get(key))
            if message:
                return message
    return missing_message


def _decode_quietly(text: str) -> Any:
    stripped = (text or "").strip()
    if not stripped:
        return None
    if stripped[0] in "{[":
        try:
            return json.loads(stripped)
        except json.JSONDecodeError:
            return None
    try:
        return xmltodict.parse(stripped, postprocessor=_strip_namespace_postprocessor)
    except ExpatError:
        return None


def describe_failed_response(response: UpstreamResponse, label: str) -> str:
    """Error message for a non-success status, quoting the upstream error if any."""
    payload = _decode_quietly(response.text)
    message = extract_error_message(payload, None) if payload is not None else None
    if not message:
        message = fault_string_from_text(response.text)
    if message:
        return f"{label} failed: {message}"
    return f"{label} failed with status {response.status_code}. Check server logs for response."


def read_xml(response: UpstreamResponse, label: str, *, empty_ok: bool = False) -> dict[str, Any] | None:
    """Status check, empty check, decode and fault check for an XML endpoint.

    Returns None only when ``empty_ok`` and the successful body is empty.

    Raises:
        RakutenUpstreamError: Failure status, empty body, or fault envelope.
        RakutenParseError: Body is not valid XML.
    """
    if not response.ok:
        logger.error(f"{label} request failed with status {response.status_code}: {response.text}")
        raise RakutenUpstreamError(describe_failed_response(response, label))

    if not response.text.strip():
        if empty_ok:
            return None
        raise RakutenUpstreamError(f"{label} returned an empty response from the API.")

    parsed = parse_xml(response.text, label)
    fault = find_fault_string(parsed)
    if fault:
        logger.error(f"{label} returned a fault with status {response.status_code}: {response.text}")
        raise RakutenUpstreamError(f"{label} failed: API Error: {fault}")
    return parsed


def read_json(response: UpstreamResponse, label: str) -> Any:
    """Status check and decode for a JSON endpoint.

    Raises:
        RakutenUpstreamError: Failure status or empty body.
        RakutenParseError: Body is not valid JSON.
    """
    if not response.ok:
        logger.error(f"{label} request failed with status {response.status_code}: {response.text}")
        raise RakutenUpstreamError(describe_failed_response(response, label))
    if not response.text.strip():
        raise RakutenUpstreamError(f"{label} returned an empty response from the API.")
    try:
        data = response.json()
    except json.JSONDecodeError as e:
        logger.error(f"{label}: response was not valid JSON. Raw body: {response.text}")
        raise RakutenParseError(
            f"Failed to parse {label.lower()} data. The API returned an invalid response "
            "that was not valid JSON."
        ) from e
    fault = find_fault_string(data)
    if fault:
        raise RakutenUpstreamError(f"{label} failed: {fault}")
    return data


# ============================================================
# Partnerships / advertisers (JSON)
# ============================================================


def _advertiser_ref(raw: Any) -> AdvertiserRef | None:
    if not isinstance(raw, dict):
        return None
    advertiser_id = to_int(raw.get("id"))
    if advertiser_id is None:
        return None
    network = raw.get("network")
    if isinstance(network, dict):
        network = network.get("id")
    details = raw.get("details")
    return AdvertiserRef(
        id=advertiser_id,
        network=to_int(network),
        name=text_of(raw.get("name")) or "",
        status=text_of(raw.get("status")),
        categories=[c for c in (text_of(x) for x in as_list(raw.get("categories"))) if c],
        details=details if isinstance(details, str) else None,
    )


def normalize_partnership(raw: Any) -> Partnership | None:
    """One partnership record; None when it has no usable advertiser id."""
    if not isinstance(raw, dict):
        return None
    advertiser = _advertiser_ref(raw.get("advertiser"))
    if advertiser is None:
        logger.warning(f"Skipping partnership without advertiser id: {raw!r}"[:500])
        return None
    offers = raw.get("offers")
    return Partnership(
        advertiser=advertiser,
        status=text_of(raw.get("status")) or "",
        status_update_datetime=text_of(raw.get("status_update_datetime")),
        approve_datetime=text_of(raw.get("approve_datetime")),
        apply_datetime=text_of(raw.get("apply_datetime")),
        offers=offers if isinstance(offers, str) else None,
    )


def normalize_partnership_page(data: Any) -> tuple[PageMetadata, list[Partnership]]:
    """Partnerships search body -> (metadata, partnerships).

    Raises:
        RakutenUpstreamError: If the body carries no ``partnerships`` list.
    """
    if not isinstance(data, dict) or "partnerships" not in data:
        message = extract_error_message(
            data, "The API response was missing the expected 'partnerships' list."
        )
        raise RakutenUpstreamError(f"Partnership search failed: {message}")

    raw_meta = data.get("_metadata")
    try:
        metadata = PageMetadata.model_validate(raw_meta) if isinstance(raw_meta, dict) else PageMetadata()
    except ValidationError:
        logger.warning(f"Unreadable partnership metadata: {raw_meta!r}")
        metadata = PageMetadata()

    partnerships = [p for p in (normalize_partnership(r) for r in as_list(data["partnerships"])) if p]
    return metadata, partnerships


def normalize_advertiser(data: Any) -> AdvertiserDetails | None:
    """``{"advertiser": {...}}`` -> AdvertiserDetails, None when absent or unusable."""
    raw = data.get("advertiser") if isinstance(data, dict) else None
    if not isinstance(raw, dict):
        return None
    advertiser_id = to_int(raw.get("id"))
    if advertiser_id is None:
        return None

    cleaned = {
        "id": advertiser_id,
        "name": text_of(raw.get("name")) or "",
        "url": text_of(raw.get("url")),
        "description": text_of(raw.get("description")),
        "categories": [c for c in (text_of(x) for x in as_list(raw.get("categories"))) if c],
        "policies": raw.get("policies") if isinstance(raw.get("policies"), dict) else None,
        "features": raw.get("features") if isinstance(raw.get("features"), dict) else None,
        "contact": raw.get("contact") if isinstance(raw.get("contact"), dict) else None,
    }
    try:
        return AdvertiserDetails.model_validate(cleaned)
    except ValidationError as e:
        logger.warning(f"Advertiser {advertiser_id} details did not validate: {e}")
        # Keep the identity fields; drop the nested blocks that failed.
        cleaned.update(policies=None, features=None, contact=None)
        return AdvertiserDetails.model_validate(cleaned)


# ============================================================
# Coupon feed (XML)
# ============================================================


def normalize_coupon(raw: Any) -> Coupon | None:
    if not isinstance(raw, dict):
        return None
    return Coupon(
        advertiser_id=to_int(raw.get("advertiserid")),
        advertiser_name=text_of(raw.get("advertisername")) or "",
        coupon_code=text_of(raw.get("couponcode")),
        coupon_restriction=text_of(raw.get("couponrestriction")),
        offer_description=text_of(raw.get("offerdescription")) or "",
        offer_start_date=text_of(raw.get("offerstartdate")),
        offer_end_date=text_of(raw.get("offerenddate")),
        click_url=text_of(raw.get("clickurl")),
        impression_pixel=text_of(raw.get("impressionpixel")),
        categories=_texts(raw.get("categories"), "category"),
        promotion_types=_texts(raw.get("promotiontypes"), "promotiontype"),
        network=text_of(raw.get("network")),
    )


def normalize_coupon_feed(parsed: dict[str, Any]) -> CouponFeed:
    """Decoded coupon XML -> CouponFeed.

    Raises:
        RakutenUpstreamError: If ``couponfeed`` is missing (error envelope).
    """
    feed = parsed.get("couponfeed")
    if not isinstance(feed, dict):
        logger.error(f"Unexpected coupon response structure: {parsed!r}"[:2000])
        message = extract_error_message(
            parsed, "The API response was missing the expected 'couponfeed' object."
        )
        raise RakutenUpstreamError(f"Coupon search failed: {message}")

    return CouponFeed(
        total_matches=to_int(feed.get("TotalMatches")),
        total_pages=to_int(feed.get("TotalPages")),
        page_number_requested=to_int(feed.get("PageNumberRequested")),
        coupons=[c for c in (normalize_coupon(r) for r in as_list(feed.get("link"))) if c],
    )


# ============================================================
# Product search (XML)
# ============================================================


def normalize_product(raw: Any) -> Product | None:
    if not isinstance(raw, dict):
        return None
    category = raw.get("category") if isinstance(raw.get("category"), dict) else {}
    description = raw.get("description") if isinstance(raw.get("description"), dict) else {}
    return Product(
        mid=to_int(raw.get("mid")),
        merchant_name=text_of(raw.get("merchantname")) or "",
        link_id=text_of(raw.get("linkid")) or "",
        created_on=text_of(raw.get("createdon")),
        sku=text_of(raw.get("sku")),
        product_name=text_of(raw.get("productname")) or "",
        category=ProductCategory(
            primary=text_of(category.get("primary")),
            secondary=text_of(category.get("secondary")),
        ),
        price=parse_money(raw.get("price")),
        sale_price=parse_money(raw.get("saleprice")),
        upc_code=text_of(raw.get("upccode")),
        description=ProductDescription(
            short=text_of(description.get("short")),
            long=text_of(description.get("long")),
        ),
        keywords=text_of(raw.get("keywords")),
        link_url=text_of(raw.get("linkurl")),
        image_url=text_of(raw.get("imageurl")),
    )


def normalize_product_search(parsed: dict[str, Any]) -> ProductSearchPage:
    """Decoded product XML -> ProductSearchPage.

    Accepts ``productSearchResponse`` and the older ``result`` root.

    Raises:
        RakutenUpstreamError: If the root is missing or carries an error.
    """
    root = parsed.get("productSearchResponse")
    if root is None:
        root = parsed.get("result")

    if not isinstance(root, dict):
        logger.error(f"Unexpected product response structure: {parsed!r}"[:2000])
        message = extract_error_message(
            parsed,
            "The API response was missing the expected 'productSearchResponse' or 'result' object.",
        )
        raise RakutenUpstreamError(f"Product search failed: {message}")

    embedded = _error_text(root.get("error")) or _error_text(root.get("Errors"))
    if embedded:
        raise RakutenUpstreamError(f"Product search failed: {embedded}")

    return ProductSearchPage(
        total_matches=to_int(root.get("TotalMatches")),
        total_pages=to_int(root.get("TotalPages")),
        page_number=to_int(root.get("PageNumber")),
        items=[p for p in (normalize_product(r) for r in as_list(root.get("item"))) if p],
    )


# ============================================================
# Link locator (XML)
# ============================================================


def normalize_link_item(raw: Any) -> LinkItem | None:
    if not isinstance(raw, dict):
        return None
    return LinkItem(
        campaign_id=to_int(raw.get("campaignID")),
        category_id=to_int(raw.get("categoryID")),
        category_name=text_of(raw.get("categoryName")),
        link_id=to_int(raw.get("linkID")),
        link_name=text_of(raw.get("linkName")),
        mid=to_int(raw.get("mid")),
        nid=to_int(raw.get("nid")),
        code=text_of(raw.get("code")),
        click_url=text_of(raw.get("clickURL")),
        text_display=text_of(raw.get("textDisplay")),
        start_date=text_of(raw.get("startDate")),
        end_date=text_of(raw.get("endDate")),
        height=to_int(raw.get("height")),
        width=to_int(raw.get("width")),
        server_type=to_int(raw.get("serverType")),
        show_url=text_of(raw.get("showURL")),
        img_url=text_of(raw.get("imgURL")),
        size=text_of(raw.get("size")),
    )


def normalize_link_results(parsed: dict[str, Any] | None, envelope_key: str) -> list[LinkItem]:
    """``{<envelope_key>: {"return": ...}}`` -> links.

    Only an empty body means no links; an envelope without ``return`` is
    also empty.

    Raises:
        RakutenUpstreamError: If a non-empty body lacks ``envelope_key``.
    """
    if not parsed:
        return []
    if envelope_key not in parsed:
        logger.error(f"Unexpected link search response structure: {parsed!r}"[:2000])
        message = extract_error_message(
            parsed, f"The API response was missing the expected '{envelope_key}' object."
        )
        raise RakutenUpstreamError(f"Link search failed: {message}")
    body = parsed[envelope_key]
    if not isinstance(body, dict):
        return []
    return [link for link in (normalize_link_item(r) for r in as_list(body.get("return"))) if link]


# ============================================================
# Merchant info (XML)
# ============================================================


def normalize_merch_offer(raw: Any) -> MerchOfferDetails | None:
    if not isinstance(raw, dict):
        return None
    return MerchOfferDetails(
        also_name=text_of(raw.get("alsoName")),
        commission_terms=text_of(raw.get("commissionTerms")),
        offer_id=to_int(raw.get("offerId")),
        offer_name=text_of(raw.get("offerName")),
    )


def normalize_merch(raw: Any) -> MerchDetails | None:
    if not isinstance(raw, dict):
        return None
    return MerchDetails(
        mid=to_int(raw.get("mid")),
        name=text_of(raw.get("name")),
        application_status=text_of(raw.get("applicationStatus")),
        categories=text_of(raw.get("categories")),
        offers=[o for o in (normalize_merch_offer(r) for r in as_list(raw.get("offer"))) if o],
    )


def normalize_merch_by_id(parsed: dict[str, Any]) -> MerchDetails:
    """Decoded getMerchByID XML -> MerchDetails (first ``return`` entry).

    Raises:
        RakutenUpstreamError: If no ``return`` object is present.
    """
    body = parsed.get("getMerchByIDResponse")
    entries = as_list(body.get("return")) if isinstance(body, dict) else []
    merch = normalize_merch(entries[0]) if entries else None
    if merch is None:
        logger.error(f"Could not find merch 'return' object: {parsed!r}"[:2000])
        raise RakutenUpstreamError("Could not find 'return' object in the response.")
    return merch


def normalize_merchants_by_category(parsed: dict[str, Any] | None) -> list[MerchDetails]:
    """Decoded getMerchByCategory XML -> merchants.

    Raises:
        RakutenUpstreamError: If a non-empty body lacks ``getMerchByCategoryResponse``.
    """
    if not parsed:
        return []
    if "getMerchByCategoryResponse" not in parsed:
        message = extract_error_message(
            parsed, "The API response was missing the expected 'getMerchByCategoryResponse' object."
        )
        raise RakutenUpstreamError(f"Merchant category search failed: {message}")
    body = parsed["getMerchByCategoryResponse"]
    if not isinstance(body, dict):
        return []
    return [m for m in (normalize_merch(r) for r in as_list(body.get("return"))) if m]
