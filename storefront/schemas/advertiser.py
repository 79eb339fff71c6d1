"""Schemas for advertisers, partnerships and partnership search results."""

from enum import Enum

from pydantic import BaseModel, Field


class PartnershipStatus(str, Enum):
    """Lifecycle states the network reports for a partnership."""

    ACTIVE = "active"
    PENDING = "pending"
    EXTENDED = "extended"
    TEMP_DECLINE = "temp-decline"
    TEMP_REMOVE = "temp-remove"
    PERMANENT_DECLINE = "permanent-decline"
    PERMANENT_REMOVE = "permanent-remove"
    SELF_REMOVED = "self-removed"


class AdvertiserRef(BaseModel):
    """Advertiser as embedded in a partnership record (id/name/categories only)."""

    id: int
    network: int | None = None
    name: str = ""
    status: str | None = None
    categories: list[str] = Field(default_factory=list)
    details: str | None = None


class AdvertiserOffer(BaseModel):
    """Commission terms joined onto a partnership from the merchant lookup."""

    commission_terms: str | None = Field(alias="commissionTerms", default=None)
    offer_id: int | None = Field(alias="offerId", default=None)
    offer_name: str | None = Field(alias="offerName", default=None)

    model_config = {"populate_by_name": True}


class Partnership(BaseModel):
    """The account's relationship with one advertiser at search time."""

    advertiser: AdvertiserRef
    status: str
    status_update_datetime: str | None = None
    approve_datetime: str | None = None
    apply_datetime: str | None = None
    offers: str | None = None
    offer_details: AdvertiserOffer | None = Field(alias="offerDetails", default=None)

    model_config = {"populate_by_name": True}


class ShippingCapabilities(BaseModel):
    ships_to: list[str] = Field(default_factory=list)


class SoftwarePolicy(BaseModel):
    dsa: bool = False
    dsa_specs: str | None = None


class AdvertiserPolicies(BaseModel):
    international_capabilities: ShippingCapabilities | None = None
    software: SoftwarePolicy | None = None


class AdvertiserFeatures(BaseModel):
    premium_advertiser: bool = False
    product_feed: bool = False
    media_opt_report: bool = False
    cross_device_tracking: bool = False
    deep_links: bool = False
    itp_compliant: bool = False


class AdvertiserContact(BaseModel):
    name: str | None = None
    job_title: str | None = None
    email: str | None = None
    phone: str | None = None
    country: str | None = None


class AdvertiserDetails(BaseModel):
    """Full advertiser record from the per-id advertiser endpoint."""

    id: int
    name: str = ""
    url: str | None = None
    description: str | None = None
    categories: list[str] = Field(default_factory=list)
    policies: AdvertiserPolicies | None = None
    features: AdvertiserFeatures | None = None
    contact: AdvertiserContact | None = None


class PageLinks(BaseModel):
    next: str | None = None
    self_url: str | None = Field(alias="self", default=None)

    model_config = {"populate_by_name": True}


class PageMetadata(BaseModel):
    """Pagination metadata of the partnerships endpoint."""

    api_name_version: str | None = None
    page: int | None = None
    limit: int | None = None
    total: int | None = None
    links: PageLinks | None = Field(alias="_links", default=None)

    model_config = {"populate_by_name": True}


class PartnershipSearchResult(BaseModel):
    """Partnerships plus the deduplicated, category-merged advertisers they reference."""

    metadata: PageMetadata = Field(alias="_metadata", default_factory=PageMetadata)
    partnerships: list[Partnership] = Field(default_factory=list)
    advertisers: list[AdvertiserDetails] = Field(default_factory=list)
    merch_request_url: str | None = Field(alias="merchRequestUrl", default=None)

    model_config = {"populate_by_name": True}
