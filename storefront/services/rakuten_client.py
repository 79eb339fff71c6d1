"""HTTP transport for the Rakuten Advertising (LinkShare) API.

Endpoint families:
- REST JSON: /v1/partnerships, /v2/advertisers/{id}
- XML feeds: /coupon/1.0, /productsearch/1.0
- Link locator (XML, positional path params): /linklocator/1.0/{command}/...
- OAuth2 refresh-token grant: /token

Rules:
- Every request carries a bearer token and an Accept header matching the format
- Responses are never cached (Cache-Control: no-cache on every call)
- No retries; callers decide whether a failure is fatal or degrades
"""

from dataclasses import dataclass
import json
import logging
from typing import Any, Literal

import httpx

from storefront.settings import Settings, get_settings

logger = logging.getLogger("uvicorn.error")

ResponseFormat = Literal["json", "xml"]

_ACCEPT = {
    "json": "application/json",
    "xml": "application/xml",
}


class RakutenError(RuntimeError):
    """Base error for failures talking to the affiliate network."""


class RakutenConfigError(RakutenError):
    """Required credentials are missing; raised before any network call."""


class RakutenAuthError(RakutenError):
    """The token endpoint rejected the credentials or answered malformed."""


class RakutenUpstreamError(RakutenError):
    """A data endpoint answered with a failure status or an error envelope."""


class RakutenParseError(RakutenUpstreamError):
    """A data endpoint answered with a body that is not valid XML/JSON."""


@dataclass
class UpstreamResponse:
    """Raw upstream answer: status plus undecoded body."""

    status_code: int
    text: str
    url: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        return json.loads(self.text)


def clean_params(values: dict[str, Any] | None) -> dict[str, str]:
    """Drop unset filters; the upstream rejects empty query values."""
    params: dict[str, str] = {}
    for key, value in (values or {}).items():
        if value is None:
            continue
        text = str(value).strip()
        if not text:
            continue
        params[key] = text
    return params


class RakutenClient:
    """Client for the Rakuten Advertising publisher API."""

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize client with settings and an optional injected HTTP client."""
        self.settings = settings or get_settings()
        self.base_url = self.settings.rakuten_base_url.rstrip("/")
        self._http_client = http_client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.settings.rakuten_timeout_sec)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    def build_url(self, path: str, params: dict[str, Any] | None = None) -> str:
        """Absolute URL for a path, with query params rendered like the request."""
        url = httpx.URL(f"{self.base_url}/{path.lstrip('/')}")
        if params:
            url = url.copy_merge_params(params)
        return str(url)

    async def get(
        self,
        path: str,
        *,
        token: str,
        fmt: ResponseFormat = "json",
        params: dict[str, Any] | None = None,
    ) -> UpstreamResponse:
        """Authenticated GET. Returns status and body without interpreting either.

        Raises:
            httpx.HTTPError: On transport failures (connect, timeout, protocol).
        """
        url = f"{self.base_url}/{path.lstrip('/')}"
        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": _ACCEPT[fmt],
            "Cache-Control": "no-cache",
        }

        client = await self._get_client()
        response = await client.get(url, params=params or None, headers=headers)

        return UpstreamResponse(
            status_code=response.status_code,
            text=response.text,
            url=str(response.request.url),
        )

    async def post_token(self, form: dict[str, str]) -> UpstreamResponse:
        """POST a grant to the token endpoint using HTTP Basic client credentials."""
        url = f"{self.base_url}/token"
        auth = httpx.BasicAuth(self.settings.rakuten_client_id, self.settings.rakuten_client_secret)
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": _ACCEPT["json"],
            "Cache-Control": "no-cache",
        }

        client = await self._get_client()
        response = await client.post(url, data=form, headers=headers, auth=auth)

        return UpstreamResponse(
            status_code=response.status_code,
            text=response.text,
            url=url,
        )


# Singleton client instance
_client: RakutenClient | None = None


def get_rakuten_client() -> RakutenClient:
    """Get Rakuten client singleton."""
    global _client
    if _client is None:
        _client = RakutenClient()
    return _client


async def close_rakuten_client() -> None:
    """Close the singleton's HTTP client (application shutdown)."""
    global _client
    if _client is not None:
        await _client.close()
        _client = None
