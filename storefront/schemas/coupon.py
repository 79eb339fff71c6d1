"""Schemas for the coupon feed."""

from enum import Enum

from pydantic import BaseModel, Field


class DiscountKind(str, Enum):
    PERCENT = "percent"
    AMOUNT = "amount"
    AMOUNT_RANGE = "amount_range"
    FREE_SHIPPING = "free_shipping"
    COMBO = "combo"
    NONE = "none"


class Discount(BaseModel):
    """Structured discount read out of an offer description (heuristic)."""

    kind: DiscountKind = DiscountKind.NONE
    value: float | None = None
    currency_symbol: str | None = Field(alias="currencySymbol", default=None)
    label: str | None = None

    model_config = {"populate_by_name": True}


class OfferTextSegment(BaseModel):
    """A piece of an offer description; ``is_code`` marks an embedded coupon code."""

    text: str
    is_code: bool = Field(alias="isCode", default=False)

    model_config = {"populate_by_name": True}


class Coupon(BaseModel):
    """A discount code or deal scoped to one advertiser.

    A coupon without ``couponcode`` is a "deal". ``inferredCode`` holds a
    code guessed from the description text; it is a display hint only and
    never makes a deal count as a code.
    """

    advertiser_id: int | None = Field(alias="advertiserid", default=None)
    advertiser_name: str = Field(alias="advertisername", default="")
    coupon_code: str | None = Field(alias="couponcode", default=None)
    inferred_code: str | None = Field(alias="inferredCode", default=None)
    coupon_restriction: str | None = Field(alias="couponrestriction", default=None)
    offer_description: str = Field(alias="offerdescription", default="")
    offer_start_date: str | None = Field(alias="offerstartdate", default=None)
    offer_end_date: str | None = Field(alias="offerenddate", default=None)
    click_url: str | None = Field(alias="clickurl", default=None)
    impression_pixel: str | None = Field(alias="impressionpixel", default=None)
    categories: list[str] = Field(default_factory=list)
    promotion_types: list[str] = Field(alias="promotionTypes", default_factory=list)
    network: str | None = None
    title: str = ""
    discount: Discount = Field(default_factory=Discount)
    description_segments: list[OfferTextSegment] = Field(alias="descriptionSegments", default_factory=list)

    model_config = {"populate_by_name": True}

    @property
    def is_deal(self) -> bool:
        return not self.coupon_code


class CouponFeed(BaseModel):
    """One page of the coupon feed."""

    total_matches: int | None = Field(alias="TotalMatches", default=None)
    total_pages: int | None = Field(alias="TotalPages", default=None)
    page_number_requested: int | None = Field(alias="PageNumberRequested", default=None)
    coupons: list[Coupon] = Field(alias="link", default_factory=list)

    model_config = {"populate_by_name": True}
