import httpx
import pytest

from fakes import FakeUpstream, advertiser_json, coupon_link, coupon_xml, product_item, product_xml
from storefront.schemas import ErrorKind, Money, OperationError, Product
from storefront.services.products import (
    get_product_by_link_id,
    get_related_products,
    search_all_products,
    search_products,
    sort_by_savings,
)
from storefront.services.rakuten_client import RakutenClient


def _product(price: float | None, sale: float | None, link_id: str = "L") -> Product:
    return Product(
        link_id=link_id,
        price=Money(currency="USD", amount=price),
        sale_price=Money(currency="USD", amount=sale),
    )


def _advertisers(failing: set[int] = frozenset()):
    def responder(request: httpx.Request) -> httpx.Response:
        mid = int(request.url.path.rsplit("/", 1)[-1])
        if mid in failing:
            return httpx.Response(500, json={"message": "upstream exploded"})
        return httpx.Response(200, json=advertiser_json(mid, url=f"https://www.brand{mid}.com"))

    return responder


class TestOnSale:
    def test_on_sale_requires_both_amounts(self) -> None:
        """Test on sale requires both amounts."""
        assert _product(100.0, 80.0).is_on_sale
        assert not _product(100.0, None).is_on_sale
        assert not _product(None, 80.0).is_on_sale

    def test_sale_must_be_positive_and_lower(self) -> None:
        """Test sale must be positive and lower."""
        assert not _product(100.0, 0.0).is_on_sale
        assert not _product(100.0, 100.0).is_on_sale
        assert not _product(100.0, 120.0).is_on_sale

    def test_savings_percent(self) -> None:
        """Test savings percent."""
        assert _product(100.0, 75.0).savings_percent == 25
        assert _product(100.0, None).savings_percent is None

    def test_sale_fields_are_serialized(self) -> None:
        """Test sale fields are serialized."""
        body = _product(80.0, 60.0).model_dump(by_alias=True)
        assert body["isOnSale"] is True
        assert body["savingsPercent"] == 25
        regular = _product(80.0, None).model_dump(by_alias=True)
        assert regular["isOnSale"] is False
        assert regular["savingsPercent"] is None

    def test_sort_by_savings(self) -> None:
        """Test sort by savings."""
        small = _product(100.0, 90.0, "small")
        big = _product(100.0, 50.0, "big")
        regular = _product(100.0, None, "regular")
        assert [p.link_id for p in sort_by_savings([regular, small, big])] == ["big", "small", "regular"]

    def test_effective_price(self) -> None:
        """Test effective price."""
        assert _product(100.0, 80.0).effective_price == 80.0
        assert _product(100.0, None).effective_price == 100.0


@pytest.mark.asyncio
async def test_search_products_joins_coupons_and_advertiser_urls(
    rakuten: RakutenClient, upstream: FakeUpstream
) -> None:
    """Test search products joins coupons and advertiser urls."""
    upstream.reply(
        "/productsearch/1.0",
        text=product_xml(
            product_item(1, "A1"),
            product_item(2, "B1"),
            product_item(1, "A2"),
            total_matches=3,
        ),
    )
    upstream.reply("/coupon/1.0", text=coupon_xml(coupon_link(1, "10% off")))
    upstream.route("/v2/advertisers/", _advertisers(failing={2}))

    result = await search_products({"keyword": "shoe", "sort": "retailprice"}, client=rakuten)

    assert not isinstance(result, OperationError)
    assert [p.link_id for p in result.items] == ["A1", "B1", "A2"]
    a1, b1, a2 = result.items
    assert [c.title for c in a1.available_coupons] == ["10% Off"]
    assert a2.available_coupons == a1.available_coupons
    assert b1.available_coupons is None
    assert a1.advertiser_url == "https://www.brand1.com"
    assert b1.advertiser_url is None

    search = upstream.calls_to("/productsearch/1.0")[0]
    assert search.url.params["sortby"] == "retailprice"
    assert "sort" not in search.url.params
    assert upstream.calls_to("/coupon/1.0")[0].url.params["mid"] == "1|2"
    assert sorted(c.url.path for c in upstream.calls_to("/v2/advertisers/")) == [
        "/v2/advertisers/1",
        "/v2/advertisers/2",
    ]


@pytest.mark.asyncio
async def test_search_products_sorted_by_savings(rakuten: RakutenClient, upstream: FakeUpstream) -> None:
    """Test search products sorted by savings."""
    upstream.reply(
        "/productsearch/1.0",
        text=product_xml(
            product_item(1, "FULL"),
            product_item(1, "SMALL", sale="90.00"),
            product_item(1, "BIG", sale="40.00"),
            total_matches=3,
        ),
    )
    upstream.reply("/coupon/1.0", text=coupon_xml())
    upstream.route("/v2/advertisers/", _advertisers())

    result = await search_products({"keyword": "shoe", "sort": "savings", "sorttype": "asc"}, client=rakuten)

    assert not isinstance(result, OperationError)
    assert [p.link_id for p in result.items] == ["BIG", "SMALL", "FULL"]
    assert [p.savings_percent for p in result.items] == [60, 10, None]
    assert result.items[0].price.symbol == "$"
    search = upstream.calls_to("/productsearch/1.0")[0]
    assert "sortby" not in search.url.params
    assert "sorttype" not in search.url.params


@pytest.mark.asyncio
async def test_search_products_failing_coupon_batch_still_succeeds(
    rakuten: RakutenClient, upstream: FakeUpstream
) -> None:
    """Test search products failing coupon batch still succeeds."""
    upstream.reply("/productsearch/1.0", text=product_xml(product_item(1, "A1"), total_matches=1))
    upstream.reply("/coupon/1.0", status=500, text="")
    upstream.route("/v2/advertisers/", _advertisers())

    result = await search_products({"keyword": "shoe"}, client=rakuten)

    assert not isinstance(result, OperationError)
    assert result.items[0].available_coupons is None
    assert result.items[0].advertiser_url == "https://www.brand1.com"


@pytest.mark.asyncio
async def test_search_products_error_envelope(rakuten: RakutenClient, upstream: FakeUpstream) -> None:
    """Test search products error envelope."""
    upstream.reply("/productsearch/1.0", text="<result><error>Invalid keyword</error></result>")

    result = await search_products({"keyword": "?"}, client=rakuten)

    assert isinstance(result, OperationError)
    assert result.error == "Product search failed: Invalid keyword"


@pytest.mark.asyncio
async def test_search_products_empty_body(rakuten: RakutenClient, upstream: FakeUpstream) -> None:
    """Test search products empty body."""
    upstream.reply("/productsearch/1.0", text="")

    result = await search_products({}, client=rakuten)

    assert isinstance(result, OperationError)
    assert result.error == "Product search returned an empty response from the API."


def _paged_products(total_pages: int, fail_on: int | None = None):
    def responder(request: httpx.Request) -> httpx.Response:
        page = int(request.url.params["pagenumber"])
        if page == fail_on:
            return httpx.Response(500, text="")
        return httpx.Response(
            200,
            text=product_xml(
                product_item(1, f"P{page}"),
                total_matches=total_pages * 100 if page == 1 else 7,
                total_pages=total_pages,
                page=page,
            ),
        )

    return responder


@pytest.mark.asyncio
async def test_search_all_products_walks_pages(rakuten: RakutenClient, upstream: FakeUpstream) -> None:
    """Test search all products walks pages."""
    upstream.route("/productsearch/1.0", _paged_products(3))
    upstream.reply("/coupon/1.0", text=coupon_xml())
    upstream.route("/v2/advertisers/", _advertisers())

    result = await search_all_products({"keyword": "shoe"}, client=rakuten)

    assert result.error is None
    assert [p.link_id for p in result.products] == ["P1", "P2", "P3"]
    assert result.total_matches == 300
    searches = upstream.calls_to("/productsearch/1.0")
    assert [r.url.params["pagenumber"] for r in searches] == ["1", "2", "3"]
    assert all(r.url.params["max"] == "100" for r in searches)
    assert len(upstream.calls_to("/token")) == 1


@pytest.mark.asyncio
async def test_search_all_products_stops_at_ten_pages(rakuten: RakutenClient, upstream: FakeUpstream) -> None:
    """Test search all products stops at ten pages."""
    upstream.route("/productsearch/1.0", _paged_products(50))
    upstream.reply("/coupon/1.0", text=coupon_xml())
    upstream.route("/v2/advertisers/", _advertisers())

    result = await search_all_products({}, client=rakuten)

    assert len(upstream.calls_to("/productsearch/1.0")) == 10
    assert len(result.products) == 10
    assert result.total_matches == 5000


@pytest.mark.asyncio
async def test_search_all_products_first_page_failure(rakuten: RakutenClient, upstream: FakeUpstream) -> None:
    """Test search all products first page failure."""
    upstream.route("/productsearch/1.0", _paged_products(3, fail_on=1))

    result = await search_all_products({}, client=rakuten)

    assert result.error
    assert result.products == []
    assert result.total_matches == 0
    assert result.model_dump(by_alias=True)["totalMatches"] == 0


@pytest.mark.asyncio
async def test_search_all_products_later_page_failure(rakuten: RakutenClient, upstream: FakeUpstream) -> None:
    """Test search all products later page failure."""
    upstream.route("/productsearch/1.0", _paged_products(3, fail_on=2))
    upstream.reply("/coupon/1.0", text=coupon_xml())
    upstream.route("/v2/advertisers/", _advertisers())

    result = await search_all_products({}, client=rakuten)

    assert result.error is None
    assert [p.link_id for p in result.products] == ["P1"]
    assert result.total_matches == 300


@pytest.mark.asyncio
async def test_get_product_by_link_id(rakuten: RakutenClient, upstream: FakeUpstream) -> None:
    """Test get product by link id."""
    upstream.reply(
        "/productsearch/1.0",
        text=product_xml(product_item(1, "12345678"), product_item(1, "1234"), total_matches=2),
    )
    upstream.reply("/coupon/1.0", text=coupon_xml())
    upstream.route("/v2/advertisers/", _advertisers())

    found = await get_product_by_link_id("1234", client=rakuten)
    missing = await get_product_by_link_id("999", client=rakuten)

    assert not isinstance(found, OperationError)
    assert found.product.link_id == "1234"
    request = upstream.calls_to("/productsearch/1.0")[0]
    assert request.url.params["keyword"] == "1234"
    assert request.url.params["max"] == "10"

    assert isinstance(missing, OperationError)
    assert missing.kind == ErrorKind.NOT_FOUND
    assert missing.error == "Product with linkid 999 not found after searching."


@pytest.mark.asyncio
async def test_get_product_by_link_id_upstream_error(rakuten: RakutenClient, upstream: FakeUpstream) -> None:
    """Test get product by link id upstream error."""
    upstream.reply("/productsearch/1.0", status=500, text="")

    result = await get_product_by_link_id("1234", client=rakuten)

    assert isinstance(result, OperationError)
    assert result.error.startswith("API error while searching for product with linkid 1234: ")
    assert result.kind == ErrorKind.UPSTREAM


@pytest.mark.asyncio
async def test_get_related_products_excludes_current(rakuten: RakutenClient, upstream: FakeUpstream) -> None:
    """Test get related products excludes current."""
    upstream.reply(
        "/productsearch/1.0",
        text=product_xml(*(product_item(5, f"L{i}") for i in range(5)), total_matches=5),
    )
    upstream.reply("/coupon/1.0", text=coupon_xml())
    upstream.route("/v2/advertisers/", _advertisers())

    result = await get_related_products(5, "L1", client=rakuten)

    assert not isinstance(result, OperationError)
    assert [p.link_id for p in result.products] == ["L0", "L2", "L3", "L4"]
    request = upstream.calls_to("/productsearch/1.0")[0]
    assert request.url.params["mid"] == "5"
    assert request.url.params["max"] == "5"
