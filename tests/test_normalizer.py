import pytest

from fakes import FAULT_XML, coupon_link, coupon_xml, merch_xml, product_item, product_xml
from storefront.services.normalizer import (
    as_list,
    describe_failed_response,
    extract_error_message,
    normalize_advertiser,
    normalize_coupon_feed,
    normalize_link_results,
    normalize_merch_by_id,
    normalize_merchants_by_category,
    normalize_partnership_page,
    normalize_product_search,
    parse_money,
    parse_xml,
    read_xml,
    strip_namespace,
    to_int,
)
from storefront.services.rakuten_client import RakutenParseError, RakutenUpstreamError, UpstreamResponse


def _response(text: str, status: int = 200) -> UpstreamResponse:
    return UpstreamResponse(status_code=status, text=text, url="https://api.linksynergy.com/x")


class TestPrimitives:
    def test_as_list(self) -> None:
        """Test as_list wraps single values and drops None."""
        assert as_list(None) == []
        assert as_list({"a": 1}) == [{"a": 1}]
        assert as_list([{"a": 1}, {"a": 2}]) == [{"a": 1}, {"a": 2}]

    def test_to_int(self) -> None:
        """Test to_int parses text nodes and rejects garbage."""
        assert to_int("42") == 42
        assert to_int(" 7 ") == 7
        assert to_int({"#text": "9", "@id": "x"}) == 9
        assert to_int("abc") is None
        assert to_int("") is None
        assert to_int(None) is None

    def test_strip_namespace(self) -> None:
        """Test strip namespace."""
        assert strip_namespace("ns2:name") == "name"
        assert strip_namespace("name") == "name"

    def test_parse_money_keeps_missing_amount_absent(self) -> None:
        """Test parse money keeps missing amount absent."""
        parsed = parse_xml('<p><price currency="USD">19.99</price><saleprice currency="USD"/></p>')["p"]
        price = parse_money(parsed["price"])
        sale = parse_money(parsed["saleprice"])
        assert price.currency == "USD"
        assert price.amount == 19.99
        assert price.symbol == "$"
        assert sale.currency == "USD"
        assert sale.amount is None

    def test_parse_money_symbol(self) -> None:
        """Test parse money symbol."""
        parsed = parse_xml('<p><price currency="GBP">5</price><saleprice>4</saleprice></p>')["p"]
        assert parse_money(parsed["price"]).symbol == "£"
        assert parse_money(parsed["saleprice"]).symbol is None

    def test_parse_xml_strips_element_namespaces_only(self) -> None:
        """Test parse xml strips element namespaces only."""
        parsed = parse_xml('<ns2:root xmlns:ns2="urn:x"><ns2:name>Acme</ns2:name></ns2:root>')
        assert parsed["root"]["name"] == "Acme"
        assert parsed["root"]["@xmlns:ns2"] == "urn:x"

    def test_parse_xml_rejects_malformed(self) -> None:
        """Test parse xml rejects malformed."""
        with pytest.raises(RakutenParseError, match="not valid XML"):
            parse_xml("<couponfeed><link>", "Coupon search")


class TestErrorEnvelopes:
    def test_fault_wins_over_result_error(self) -> None:
        """Test fault wins over result error."""
        payload = {"fault": {"faultstring": "Invalid token"}, "result": {"error": "Something else"}}
        assert "Invalid token" in extract_error_message(payload, "missing")

    def test_result_error_then_error_then_fallback(self) -> None:
        """Test result error then error then fallback."""
        assert extract_error_message({"result": {"error": "nested"}, "error": "top"}, "missing") == "nested"
        assert extract_error_message({"error": {"message": "top"}}, "missing") == "top"
        assert extract_error_message({"unrelated": 1}, "missing") == "missing"

    def test_soap_envelope_fault(self) -> None:
        """Test soap envelope fault."""
        parsed = parse_xml(
            '<soapenv:Envelope xmlns:soapenv="http://schemas.xmlsoap.org/soap/envelope/">'
            "<soapenv:Body><soapenv:Fault><faultcode>Server</faultcode>"
            "<faultstring>Invalid advertiser id</faultstring></soapenv:Fault></soapenv:Body>"
            "</soapenv:Envelope>"
        )
        assert extract_error_message(parsed, None) == "Invalid advertiser id"

    def test_gateway_fault_uses_description(self) -> None:
        """Test gateway fault uses description."""
        message = extract_error_message(parse_xml(FAULT_XML), None)
        assert message.startswith("Invalid Credentials")

    def test_failed_status_quotes_fault(self) -> None:
        """Test failed status quotes fault."""
        message = describe_failed_response(_response(FAULT_XML, status=401), "Coupon search")
        assert message.startswith("Coupon search failed: Invalid Credentials")

    def test_failed_status_with_unrecognized_body(self) -> None:
        """Test failed status with unrecognized body."""
        message = describe_failed_response(_response("<html>oops</html>", status=500), "Product search")
        assert message == "Product search failed with status 500. Check server logs for response."

    def test_read_xml_empty_body(self) -> None:
        """Test read xml empty body."""
        with pytest.raises(RakutenUpstreamError, match="empty response"):
            read_xml(_response(""), "Coupon search")
        assert read_xml(_response("  "), "Link search", empty_ok=True) is None

    def test_read_xml_fault_on_success_status(self) -> None:
        """Test read xml fault on success status."""
        with pytest.raises(RakutenUpstreamError, match="API Error: Invalid Credentials"):
            read_xml(_response(FAULT_XML), "Link search", empty_ok=True)

    def test_read_xml_failure_status_is_error_even_when_empty(self) -> None:
        """Test read xml failure status is error even when empty."""
        with pytest.raises(RakutenUpstreamError, match="status 502"):
            read_xml(_response("", status=502), "Link search", empty_ok=True)


class TestCouponFeed:
    def test_single_and_list_encodings_normalize_identically(self) -> None:
        """Test single and list encodings normalize identically."""
        single = normalize_coupon_feed(parse_xml(coupon_xml(coupon_link(1, "10% off"))))
        as_two = normalize_coupon_feed(
            parse_xml(coupon_xml(coupon_link(1, "10% off"), coupon_link(1, "10% off")))
        )
        assert len(single.coupons) == 1
        assert single.coupons[0] == as_two.coupons[0]

    def test_fields_and_counts(self) -> None:
        """Test fields and counts."""
        feed = normalize_coupon_feed(
            parse_xml(coupon_xml(coupon_link(2101, "Save 20% off", code="SAVE20", end_date="2030-01-31")))
        )
        assert feed.total_matches == 1
        assert feed.total_pages == 1
        assert feed.page_number_requested == 1
        coupon = feed.coupons[0]
        assert coupon.advertiser_id == 2101
        assert coupon.coupon_code == "SAVE20"
        assert coupon.offer_end_date == "2030-01-31"
        assert coupon.categories == ["Apparel"]
        assert coupon.promotion_types == ["Percentage off"]
        assert coupon.network == "US Network"

    def test_empty_feed(self) -> None:
        """Test empty feed."""
        feed = normalize_coupon_feed(parse_xml(coupon_xml()))
        assert feed.coupons == []
        assert feed.total_matches == 0

    def test_missing_couponfeed_reports_envelope_error(self) -> None:
        """Test missing couponfeed reports envelope error."""
        with pytest.raises(RakutenUpstreamError, match="Coupon search failed: Invalid mid"):
            normalize_coupon_feed(parse_xml("<result><error>Invalid mid</error></result>"))

    def test_missing_couponfeed_without_error(self) -> None:
        """Test missing couponfeed without error."""
        with pytest.raises(RakutenUpstreamError, match="missing the expected 'couponfeed' object"):
            normalize_coupon_feed(parse_xml("<other/>"))


class TestProductSearch:
    def test_result_root_and_money(self) -> None:
        """Test result root and money."""
        page = normalize_product_search(
            parse_xml(product_xml(product_item(7, "L1", price="50.00", sale="40.00"), total_matches=1))
        )
        assert page.total_matches == 1
        assert page.page_number == 1
        product = page.items[0]
        assert product.mid == 7
        assert product.link_id == "L1"
        assert product.price.amount == 50.0
        assert product.sale_price.amount == 40.0
        assert product.category.primary == "Shoes"
        assert product.description.long == "Long text"

    def test_product_search_response_root(self) -> None:
        """Test product search response root."""
        page = normalize_product_search(
            parse_xml(product_xml(product_item(7, "L1"), root="productSearchResponse"))
        )
        assert [p.link_id for p in page.items] == ["L1"]

    def test_no_items(self) -> None:
        """Test a product response with no items."""
        assert normalize_product_search(parse_xml(product_xml())).items == []

    def test_embedded_error(self) -> None:
        """Test an error envelope inside a product response."""
        xml = "<result><Errors><ErrorID>7</ErrorID><ErrorText>Invalid token</ErrorText></Errors></result>"
        with pytest.raises(RakutenUpstreamError, match="Product search failed: Invalid token"):
            normalize_product_search(parse_xml(xml))

    def test_missing_root(self) -> None:
        """Test a product response with neither expected root."""
        with pytest.raises(RakutenUpstreamError, match="productSearchResponse' or 'result'"):
            normalize_product_search(parse_xml("<nothing/>"))


class TestLinksAndMerchants:
    def test_link_results_single_return(self) -> None:
        """Test link results single return."""
        xml = (
            '<ns1:getTextLinksResponse xmlns:ns1="http://endpoint.linkservice.linkshare.com/">'
            "<ns1:return><ns1:campaignID>0</ns1:campaignID><ns1:categoryID>200</ns1:categoryID>"
            "<ns1:categoryName>Default</ns1:categoryName><ns1:linkID>16</ns1:linkID>"
            "<ns1:linkName>Home</ns1:linkName><ns1:mid>2101</ns1:mid><ns1:nid>1</ns1:nid>"
            "<ns1:clickURL>https://click.linksynergy.com/fs-bin/click?id=x</ns1:clickURL>"
            "<ns1:startDate>2024-01-01</ns1:startDate><ns1:endDate>2030-01-01</ns1:endDate>"
            "</ns1:return></ns1:getTextLinksResponse>"
        )
        links = normalize_link_results(parse_xml(xml), "getTextLinksResponse")
        assert len(links) == 1
        assert links[0].link_id == 16
        assert links[0].mid == 2101
        assert links[0].campaign_id == 0
        assert links[0].size is None

    def test_link_results_wrong_envelope_is_an_error(self) -> None:
        """Test link results wrong envelope is an error."""
        xml = "<getBannerLinksResponse><return><linkID>1</linkID></return></getBannerLinksResponse>"
        with pytest.raises(RakutenUpstreamError, match="missing the expected 'getTextLinksResponse' object"):
            normalize_link_results(parse_xml(xml), "getTextLinksResponse")

    def test_link_results_error_envelope(self) -> None:
        """Test link results error envelope."""
        with pytest.raises(RakutenUpstreamError, match="^Link search failed: Invalid advertiser$"):
            normalize_link_results(
                parse_xml("<result><error>Invalid advertiser</error></result>"), "getTextLinksResponse"
            )

    def test_link_results_empty(self) -> None:
        """Test link results empty."""
        assert normalize_link_results(None, "getTextLinksResponse") == []
        assert normalize_link_results(parse_xml("<getTextLinksResponse/>"), "getTextLinksResponse") == []

    def test_merch_offer_always_a_list(self) -> None:
        """Test merch offer always a list."""
        one = normalize_merch_by_id(parse_xml(merch_xml(2101, (99, "Default", "5% per sale"))))
        two = normalize_merch_by_id(
            parse_xml(merch_xml(2101, (99, "Default", "5% per sale"), (100, "Holiday", "8% per sale")))
        )
        none = normalize_merch_by_id(parse_xml(merch_xml(2101)))
        assert one.mid == 2101
        assert [o.offer_id for o in one.offers] == [99]
        assert [o.offer_id for o in two.offers] == [99, 100]
        assert none.offers == []
        assert one.categories == "1 2"

    def test_merch_by_id_without_return(self) -> None:
        """Test merch by id without return."""
        with pytest.raises(RakutenUpstreamError, match="Could not find 'return'"):
            normalize_merch_by_id(parse_xml("<getMerchByIDResponse/>"))

    def test_merchants_by_category(self) -> None:
        """Test merchants by category."""
        xml = (
            "<getMerchByCategoryResponse>"
            "<return><mid>1</mid><name>A</name><offer><offerId>5</offerId></offer></return>"
            "<return><mid>2</mid><name>B</name></return>"
            "</getMerchByCategoryResponse>"
        )
        merchants = normalize_merchants_by_category(parse_xml(xml))
        assert [m.mid for m in merchants] == [1, 2]
        assert [o.offer_id for o in merchants[0].offers] == [5]
        assert merchants[1].offers == []

    def test_merchants_by_category_error_envelope(self) -> None:
        """Test merchants by category error envelope."""
        with pytest.raises(RakutenUpstreamError, match="^Merchant category search failed: Invalid category$"):
            normalize_merchants_by_category(parse_xml("<result><error>Invalid category</error></result>"))
        assert normalize_merchants_by_category(parse_xml("<getMerchByCategoryResponse/>")) == []


class TestJsonShapes:
    def test_partnership_page(self) -> None:
        """Test partnership page."""
        metadata, partnerships = normalize_partnership_page(
            {
                "_metadata": {"api_name_version": "partnership_v1", "page": 1, "limit": 50, "total": 2},
                "partnerships": [
                    {"advertiser": {"id": 1, "name": "A", "categories": ["X"]}, "status": "active"},
                    {"advertiser": {"name": "no id"}, "status": "active"},
                ],
            }
        )
        assert metadata.total == 2
        assert [p.advertiser.id for p in partnerships] == [1]

    def test_partnership_page_error_envelope(self) -> None:
        """Test partnership page error envelope."""
        with pytest.raises(RakutenUpstreamError, match="Partnership search failed: bad filter"):
            normalize_partnership_page({"errors": [{"message": "bad filter"}]})

    def test_advertiser_details(self) -> None:
        """Test advertiser details."""
        details = normalize_advertiser(
            {
                "advertiser": {
                    "id": "44",
                    "name": "Acme",
                    "url": "https://acme.com",
                    "features": {"deep_links": True},
                    "policies": {"international_capabilities": {"ships_to": ["US", "CA"]}},
                }
            }
        )
        assert details.id == 44
        assert details.features.deep_links is True
        assert details.policies.international_capabilities.ships_to == ["US", "CA"]

    def test_advertiser_missing(self) -> None:
        """Test advertiser missing."""
        assert normalize_advertiser({}) is None
        assert normalize_advertiser({"advertiser": {"name": "no id"}}) is None
