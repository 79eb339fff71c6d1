"""Pydantic schemas for normalized upstream data and API responses."""

from storefront.schemas.advertiser import (
    AdvertiserDetails,
    AdvertiserOffer,
    AdvertiserRef,
    PageMetadata,
    Partnership,
    PartnershipSearchResult,
    PartnershipStatus,
)
from storefront.schemas.common import ErrorDetail, ErrorResponse
from storefront.schemas.coupon import Coupon, CouponFeed, Discount, DiscountKind, OfferTextSegment
from storefront.schemas.link import LinkItem, LinkSearchResult, LinkType
from storefront.schemas.merchant import (
    MerchByCategoryResult,
    MerchDetails,
    MerchInfoResult,
    MerchOfferDetails,
)
from storefront.schemas.product import (
    BrandPage,
    MerchantPriceStat,
    Money,
    MoreProductsResult,
    Product,
    ProductInsightResult,
    ProductInsights,
    ProductLookupResult,
    ProductSearchPage,
)
from storefront.schemas.results import ErrorKind, LinkSearchError, OperationError, is_error

__all__ = [
    "AdvertiserDetails",
    "AdvertiserOffer",
    "AdvertiserRef",
    "PageMetadata",
    "Partnership",
    "PartnershipSearchResult",
    "PartnershipStatus",
    "ErrorDetail",
    "ErrorResponse",
    "Coupon",
    "CouponFeed",
    "Discount",
    "DiscountKind",
    "OfferTextSegment",
    "LinkItem",
    "LinkSearchResult",
    "LinkType",
    "MerchByCategoryResult",
    "MerchDetails",
    "MerchInfoResult",
    "MerchOfferDetails",
    "BrandPage",
    "MerchantPriceStat",
    "Money",
    "MoreProductsResult",
    "Product",
    "ProductInsightResult",
    "ProductInsights",
    "ProductLookupResult",
    "ProductSearchPage",
    "ErrorKind",
    "LinkSearchError",
    "OperationError",
    "is_error",
]
