"""Coupon feed search and coupon text heuristics.

Titles, discounts and inferred codes are read out of free-text offer
descriptions. They are best-effort labels for display, not upstream data:
a description that mentions several discounts yields the largest one, and
an inferred code may be wrong.
"""

import logging
import re
from typing import Any

import httpx

from storefront.schemas.coupon import Coupon, CouponFeed, Discount, DiscountKind, OfferTextSegment
from storefront.schemas.results import OperationError
from storefront.services.aggregation import group_by
from storefront.services.auth import fetch_access_token
from storefront.services.normalizer import normalize_coupon_feed, read_xml
from storefront.services.outcome import failure
from storefront.services.rakuten_client import (
    RakutenClient,
    RakutenError,
    clean_params,
    get_rakuten_client,
)

logger = logging.getLogger("uvicorn.error")

COUPON_PATH = "coupon/1.0"

# ============================================================
# Offer text heuristics
# ============================================================

_FREE_SHIPPING_PHRASES = (
    "free shipping",
    "free delivery",
    "freeship",
    "free ship",
    "free worldwide delivery",
)
_FREE_ITEM_SHIPPING_RE = re.compile(r"\bfree\s+\w+\s+shipping\b", re.IGNORECASE)
_PERCENT_OFF_RE = re.compile(r"(\d+(\.\d+)?)\s*%\s*off", re.IGNORECASE)
_AMOUNT_OFF_RE = re.compile(r"([$£€])(\d+(\.\d+)?)\s*off", re.IGNORECASE)
_SAVE_AMOUNT_RE = re.compile(r"save\s+([$£€])(\d+(\.\d+)?)", re.IGNORECASE)
_AMOUNT_RANGE_RE = re.compile(r"([$£€]\d+(?:\.\d+)?\s*-\s*[$£€]\d+(?:\.\d+)?)", re.IGNORECASE)
_COMBO_RES = (
    re.compile(r"\d+\s+for\s+\$?(\d+)", re.IGNORECASE),
    re.compile(r"\d+\s+.+?\s+for", re.IGNORECASE),
    re.compile(r"\b(two|three)\s+\w+", re.IGNORECASE),
    re.compile(r"\bbuy\s+\d+\s+\w+", re.IGNORECASE),
)
# "code"/"Code"/"CODE" followed by an upper-case token; "code at checkout" is not a code.
_CODE_IN_TEXT_RE = re.compile(r"\b(?i:code):?\s+([A-Z0-9][A-Z0-9\-_]*)\b")

SHOP_NOW = "Shop Now"


def _format_amount(value: float) -> str:
    """20.0 -> "20", 12.5 -> "12.5", 1500000.0 -> "1500000"."""
    return str(int(value)) if value.is_integer() else str(value)


def extract_discount(offer_text: str | None) -> Discount:
    """Structured discount from an offer description.

    Checked in order: free shipping, largest percentage off, largest currency
    amount off, currency range, multi-buy combo. Anything else is ``none``
    with the "Shop Now" label; an empty description has no label at all.
    """
    if not offer_text:
        return Discount()

    lowered = offer_text.lower()
    if any(p in lowered for p in _FREE_SHIPPING_PHRASES) or _FREE_ITEM_SHIPPING_RE.search(offer_text):
        return Discount(kind=DiscountKind.FREE_SHIPPING, label="Free Shipping")

    percentages = [float(m.group(1)) for m in _PERCENT_OFF_RE.finditer(offer_text)]
    if percentages:
        best = max(percentages)
        return Discount(kind=DiscountKind.PERCENT, value=best, label=f"{_format_amount(best)}% Off")

    best_amount = 0.0
    symbol = ""
    for pattern in (_AMOUNT_OFF_RE, _SAVE_AMOUNT_RE):
        for m in pattern.finditer(offer_text):
            amount = float(m.group(2))
            if amount > best_amount:
                best_amount = amount
                symbol = m.group(1)
    if best_amount > 0:
        return Discount(
            kind=DiscountKind.AMOUNT,
            value=best_amount,
            currency_symbol=symbol,
            label=f"{symbol}{_format_amount(best_amount)} Off",
        )

    range_match = _AMOUNT_RANGE_RE.search(offer_text)
    if range_match:
        span = range_match.group(1)
        return Discount(
            kind=DiscountKind.AMOUNT_RANGE,
            currency_symbol=span[0],
            label=f"{span} Off",
        )

    if any(p.search(offer_text) for p in _COMBO_RES):
        return Discount(kind=DiscountKind.COMBO, label="Combo Deal")

    return Discount(kind=DiscountKind.NONE, label=SHOP_NOW)


def derive_coupon_title(offer_text: str | None) -> str:
    """Short display title, e.g. "Save 20% off your order" -> "20% Off"."""
    return extract_discount(offer_text).label or ""


def infer_coupon_code(offer_text: str | None) -> str | None:
    """Best-effort ``code XXXX`` lookup in a description."""
    if not offer_text:
        return None
    match = _CODE_IN_TEXT_RE.search(offer_text)
    return match.group(1) if match else None


def enrich_coupon(coupon: Coupon) -> Coupon:
    """Fill title, discount and description segments.

    A code found in the description goes to ``inferred_code`` only when the
    feed sent none; ``coupon_code`` always stays as the feed sent it.
    """
    discount = extract_discount(coupon.offer_description)
    inferred = None if coupon.coupon_code else infer_coupon_code(coupon.offer_description)
    return coupon.model_copy(
        update={
            "discount": discount,
            "title": discount.label or "",
            "inferred_code": inferred,
            "description_segments": annotate_offer_description(
                coupon.offer_description, coupon.coupon_code or inferred
            ),
        }
    )


def annotate_offer_description(description: str, code: str | None) -> list[OfferTextSegment]:
    """Split a description around occurrences of ``code``.

    Joining the segment texts gives back the description unchanged.
    """
    if not description:
        return []
    if not code:
        return [OfferTextSegment(text=description)]

    segments: list[OfferTextSegment] = []
    pattern = re.compile(re.escape(code))
    cursor = 0
    for m in pattern.finditer(description):
        if m.start() > cursor:
            segments.append(OfferTextSegment(text=description[cursor:m.start()]))
        segments.append(OfferTextSegment(text=m.group(0), is_code=True))
        cursor = m.end()
    if cursor < len(description):
        segments.append(OfferTextSegment(text=description[cursor:]))
    return segments


def _end_date_key(value: str | None) -> tuple[int, str]:
    # Ongoing offers (no end date) sort last.
    if not value:
        return (1, "")
    return (0, value)


def sort_coupons(coupons: list[Coupon]) -> list[Coupon]:
    """Codes before deals, then soonest end date, then description."""
    return sorted(
        coupons,
        key=lambda c: (
            c.is_deal,
            _end_date_key(c.offer_end_date),
            c.offer_description.lower(),
        ),
    )


# ============================================================
# Feed access
# ============================================================


async def fetch_coupon_feed(client: RakutenClient, token: str, params: dict[str, Any] | None) -> CouponFeed:
    """One coupon-feed call, normalized and enriched.

    Raises:
        RakutenError: On failure status, empty or invalid body, or error envelope.
        httpx.HTTPError: On transport failures.
    """
    response = await client.get(COUPON_PATH, token=token, fmt="xml", params=clean_params(params))
    parsed = read_xml(response, "Coupon search")
    feed = normalize_coupon_feed(parsed)
    return feed.model_copy(update={"coupons": [enrich_coupon(c) for c in feed.coupons]})


async def fetch_coupons_for_mids(client: RakutenClient, token: str, mids: list[int]) -> dict[int, list[Coupon]]:
    """Coupons for several advertisers in one batched call, grouped by advertiser id.

    A failed batch yields an empty map.
    """
    if not mids:
        return {}
    try:
        feed = await fetch_coupon_feed(client, token, {"mid": "|".join(str(m) for m in mids)})
    except (RakutenError, httpx.HTTPError) as e:
        logger.warning(f"Coupon lookup failed for mids {mids}: {e}")
        return {}

    return group_by(feed.coupons, lambda c: c.advertiser_id)


async def search_coupons(
    params: dict[str, Any] | None = None,
    *,
    client: RakutenClient | None = None,
) -> CouponFeed | OperationError:
    """Search the coupon feed.

    ``params`` are passed through as upstream filters (``mid``, ``category``,
    ``promotiontype``, ``network``, ``resultsperpage``, ``pagenumber``); blank
    values are dropped.
    """
    client = client or get_rakuten_client()
    try:
        token = await fetch_access_token(client)
        return await fetch_coupon_feed(client, token, params)
    except (RakutenError, httpx.HTTPError) as e:
        return failure(e, "the coupon search")
