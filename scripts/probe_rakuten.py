#!/usr/bin/env python3
"""Run one Rakuten operation locally and print the normalized result.

Uses the same services as the API, so credentials come from the environment
or the .env file.

Usage:
  RAKUTEN_CLIENT_ID=... RAKUTEN_CLIENT_SECRET=... \
  RAKUTEN_REFRESH_TOKEN=... RAKUTEN_ACCOUNT_ID=... \
  python -m scripts.probe_rakuten <operation> [key=value ...]

Operations:
  partnerships   [partner_status=active] [page=1] [limit=50]
  coupons        [mid=123] [category=1] [resultsperpage=20]
  products       [keyword=shoes] [mid=123] [max=10]
  all-products   [keyword=shoes]
  product        linkid=<link id>
  links          type=text|banner|rich-media [advertiser_id=123] [page=1]
  merchant       mid=<advertiser id>
  category       id=<category id>
  brand          mid=<advertiser id> [page=1]
"""

import asyncio
import json
import sys

from storefront.services.brand import get_brand_page
from storefront.services.coupons import search_coupons
from storefront.services.link_locator import search_links
from storefront.services.merchants import get_merchant_info_by_id, get_merchants_by_category
from storefront.services.partnerships import search_partnerships
from storefront.services.products import get_product_by_link_id, search_all_products, search_products
from storefront.services.rakuten_client import close_rakuten_client


def _parse_args(argv: list[str]) -> dict[str, str]:
    out: dict[str, str] = {}
    for arg in argv:
        if "=" not in arg:
            raise SystemExit(f"Expected key=value, got {arg!r}")
        key, value = arg.split("=", 1)
        out[key.strip()] = value.strip()
    return out


async def _run(operation: str, args: dict[str, str]):
    if operation == "partnerships":
        return await search_partnerships(args)
    if operation == "coupons":
        return await search_coupons(args)
    if operation == "products":
        return await search_products(args)
    if operation == "all-products":
        return await search_all_products(args)
    if operation == "product":
        return await get_product_by_link_id(args.get("linkid", ""))
    if operation == "links":
        link_type = args.pop("type", "text")
        page = int(args.pop("page", "1"))
        return await search_links(link_type, page=page, **args)
    if operation == "merchant":
        return await get_merchant_info_by_id(args.get("mid"))
    if operation == "category":
        return await get_merchants_by_category(args.get("id"))
    if operation == "brand":
        return await get_brand_page(args.get("mid"), int(args.get("page", "1")))
    raise SystemExit(f"Unknown operation {operation!r}. See --help.")


async def main() -> None:
    if len(sys.argv) < 2 or sys.argv[1] in ("-h", "--help"):
        print(__doc__)
        return

    operation = sys.argv[1]
    args = _parse_args(sys.argv[2:])

    try:
        result = await _run(operation, args)
    finally:
        await close_rakuten_client()

    data = result.model_dump(mode="json", by_alias=True)
    print(json.dumps(data, indent=2, ensure_ascii=False)[:20000])
    if getattr(result, "error", None):
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
