"""Slugs, guessed domains, logo URLs and currency symbols for brand display."""

import logging
import re
import unicodedata
from urllib.parse import urlencode, urlsplit

from storefront.settings import get_settings

logger = logging.getLogger("uvicorn.error")

LOGO_BASE_URL = "https://img.logo.dev"

CURRENCY_SYMBOLS = {
    "USD": "$",
    "CAD": "C$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
}

_BRAND_SLUG_RE = re.compile(r"^(\d+)(?:-|$)")


def slugify(text: str | None) -> str:
    """Accent-free, lowercase, dash-separated: "Café Rouge & Co" -> "cafe-rouge-co"."""
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", str(text))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    slug = stripped.lower().strip()
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"[^\w-]+", "", slug, flags=re.ASCII)
    return re.sub(r"--+", "-", slug)


def brand_slug(mid: int, name: str | None) -> str:
    """``{mid}-{slug}``, or just the mid when the name slugs to nothing."""
    slug = slugify(name)
    return f"{mid}-{slug}" if slug else str(mid)


def parse_brand_slug(slug: str) -> int | None:
    """Leading advertiser id of a brand slug ("123-acme" -> 123)."""
    match = _BRAND_SLUG_RE.match((slug or "").strip())
    return int(match.group(1)) if match else None


def domain_from_name(name: str | None) -> str | None:
    """Guess a domain from a brand name ("J.Crew" -> "jcrew.com")."""
    if not name:
        return None
    domain = re.sub(r"[^a-zA-Z0-9]", "", name.replace("&", "and")).lower()
    return f"{domain}.com" if domain else None


def logo_url(advertiser_url: str | None, token: str | None = None) -> str | None:
    """logo.dev image URL for the advertiser's host (``www.`` dropped)."""
    if not advertiser_url:
        return None
    full = advertiser_url if advertiser_url.startswith("http") else f"https://{advertiser_url}"
    try:
        hostname = urlsplit(full).hostname
    except ValueError:
        logger.warning(f"Invalid URL for logo generation: {advertiser_url}")
        return None
    if not hostname:
        return None
    hostname = re.sub(r"^www\.", "", hostname)

    token = token if token is not None else get_settings().logo_dev_token
    if not token:
        return f"{LOGO_BASE_URL}/{hostname}"
    return f"{LOGO_BASE_URL}/{hostname}?{urlencode({'token': token})}"


def currency_symbol(code: str | None) -> str:
    """Display symbol for a currency code; unknown codes render as "CODE "."""
    if not code:
        return "$"
    return CURRENCY_SYMBOLS.get(code, f"{code} ")
