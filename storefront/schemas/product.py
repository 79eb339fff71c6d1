"""Schemas for product search, brand pages and product insights."""

from pydantic import BaseModel, Field, computed_field

from storefront.schemas.advertiser import AdvertiserDetails
from storefront.schemas.coupon import Coupon


class Money(BaseModel):
    """Currency-tagged amount. ``amount`` is None (never 0) when the feed omits it."""

    currency: str | None = None
    amount: float | None = None
    symbol: str | None = None


class ProductCategory(BaseModel):
    primary: str | None = None
    secondary: str | None = None


class ProductDescription(BaseModel):
    short: str | None = None
    long: str | None = None


class Product(BaseModel):
    """A product from the product-search feed.

    ``availableCoupons`` and ``advertiserUrl`` are joined in after the search;
    ``isOnSale`` and ``savingsPercent`` are derived from the two prices.
    """

    mid: int | None = None
    merchant_name: str = Field(alias="merchantname", default="")
    link_id: str = Field(alias="linkid", default="")
    created_on: str | None = Field(alias="createdon", default=None)
    sku: str | None = None
    product_name: str = Field(alias="productname", default="")
    category: ProductCategory = Field(default_factory=ProductCategory)
    price: Money = Field(default_factory=Money)
    sale_price: Money = Field(alias="saleprice", default_factory=Money)
    upc_code: str | None = Field(alias="upccode", default=None)
    description: ProductDescription = Field(default_factory=ProductDescription)
    keywords: str | None = None
    link_url: str | None = Field(alias="linkurl", default=None)
    image_url: str | None = Field(alias="imageurl", default=None)
    available_coupons: list[Coupon] | None = Field(alias="availableCoupons", default=None)
    advertiser_url: str | None = Field(alias="advertiserUrl", default=None)

    model_config = {"populate_by_name": True}

    @computed_field(alias="isOnSale")
    @property
    def is_on_sale(self) -> bool:
        regular = self.price.amount
        sale = self.sale_price.amount
        if regular is None or sale is None:
            return False
        return 0 < sale < regular

    @computed_field(alias="savingsPercent")
    @property
    def savings_percent(self) -> int | None:
        """Whole-number discount off the regular price, None when not on sale."""
        if not self.is_on_sale:
            return None
        return round((self.price.amount - self.sale_price.amount) / self.price.amount * 100)

    @property
    def effective_price(self) -> float | None:
        """Sale price when present and positive, else the regular price."""
        if self.sale_price.amount:
            return self.sale_price.amount
        return self.price.amount


class ProductSearchPage(BaseModel):
    """One page of product-search results."""

    total_matches: int | None = Field(alias="TotalMatches", default=None)
    total_pages: int | None = Field(alias="TotalPages", default=None)
    page_number: int | None = Field(alias="PageNumber", default=None)
    items: list[Product] = Field(alias="item", default_factory=list)

    model_config = {"populate_by_name": True}


class ProductInsightResult(BaseModel):
    """Bounded all-pages product walk.

    On a first-page failure ``error`` is set and the lists are empty.
    """

    products: list[Product] = Field(default_factory=list)
    total_matches: int = Field(alias="totalMatches", default=0)
    error: str | None = None

    model_config = {"populate_by_name": True}


class ProductLookupResult(BaseModel):
    product: Product


class MoreProductsResult(BaseModel):
    products: list[Product] = Field(default_factory=list)


class BrandPage(BaseModel):
    """Advertiser details, one page of its products and its coupons."""

    advertiser_details: AdvertiserDetails | None = Field(alias="advertiserDetails", default=None)
    product_data: ProductSearchPage = Field(alias="productData", default_factory=ProductSearchPage)
    coupons: list[Coupon] = Field(default_factory=list)
    logo_url: str | None = Field(alias="logoUrl", default=None)
    brand_slug: str | None = Field(alias="brandSlug", default=None)

    model_config = {"populate_by_name": True}


class MerchantPriceStat(BaseModel):
    name: str
    value: float


class ProductInsights(BaseModel):
    """Per-merchant price/savings summary over a product walk."""

    avg_price_by_merchant: list[MerchantPriceStat] = Field(alias="avgPriceByMerchant", default_factory=list)
    avg_savings_by_merchant: list[MerchantPriceStat] = Field(alias="avgSavingsByMerchant", default_factory=list)
    total_products: int = Field(alias="totalProducts", default=0)
    total_matches: int = Field(alias="totalMatches", default=0)

    model_config = {"populate_by_name": True}
