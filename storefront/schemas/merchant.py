"""Schemas for link-locator merchant program metadata."""

from pydantic import BaseModel, Field


class MerchOfferDetails(BaseModel):
    also_name: str | None = Field(alias="alsoName", default=None)
    commission_terms: str | None = Field(alias="commissionTerms", default=None)
    offer_id: int | None = Field(alias="offerId", default=None)
    offer_name: str | None = Field(alias="offerName", default=None)

    model_config = {"populate_by_name": True}


class MerchDetails(BaseModel):
    """Advertiser program metadata. ``offer`` is always a list."""

    mid: int | None = None
    name: str | None = None
    application_status: str | None = Field(alias="applicationStatus", default=None)
    categories: str | None = None
    offers: list[MerchOfferDetails] = Field(alias="offer", default_factory=list)

    model_config = {"populate_by_name": True}


class MerchInfoResult(BaseModel):
    data: MerchDetails


class MerchByCategoryResult(BaseModel):
    merchants: list[MerchDetails] = Field(default_factory=list)
