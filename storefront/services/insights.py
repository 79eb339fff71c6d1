"""Per-merchant price and savings summary over a product walk."""

from storefront.schemas.product import MerchantPriceStat, Product, ProductInsights

TOP_MERCHANTS = 15


def short_merchant_name(name: str) -> str:
    """First word of the merchant name ("Acme Outdoor Co" -> "Acme")."""
    parts = (name or "").split()
    return parts[0] if parts else ""


def _averages(buckets: dict[str, list[float]]) -> list[MerchantPriceStat]:
    stats: list[MerchantPriceStat] = []
    for name, values in buckets.items():
        if not values:
            continue
        avg = round(sum(values) / len(values), 2)
        if avg > 0:
            stats.append(MerchantPriceStat(name=short_merchant_name(name), value=avg))
    return stats


def summarize_merchant_pricing(products: list[Product], total_matches: int = 0) -> ProductInsights:
    """Average effective price and average savings per merchant.

    Merchants are grouped by full name and labelled by its first word.
    Returns the 15 cheapest merchants by average price and the 15 merchants
    with the largest average savings on sale items.
    """
    prices: dict[str, list[float]] = {}
    savings: dict[str, list[float]] = {}

    for p in products:
        name = p.merchant_name
        price = p.effective_price
        if price:
            prices.setdefault(name, []).append(price)
        if p.is_on_sale:
            savings.setdefault(name, []).append(p.price.amount - p.sale_price.amount)

    by_price = sorted(_averages(prices), key=lambda s: s.value)[:TOP_MERCHANTS]
    by_savings = sorted(_averages(savings), key=lambda s: s.value, reverse=True)[:TOP_MERCHANTS]

    return ProductInsights(
        avg_price_by_merchant=by_price,
        avg_savings_by_merchant=by_savings,
        total_products=len(products),
        total_matches=total_matches,
    )
