"""Access-token provider (OAuth2 refresh-token grant).

A fresh bearer token is requested for every logical operation; nothing is
cached between calls. Full upstream bodies go to the server log only, the
raised message quotes at most the upstream's own error description.
"""

import json
import logging
from typing import Any

import httpx

from storefront.services.rakuten_client import (
    RakutenAuthError,
    RakutenClient,
    RakutenConfigError,
    get_rakuten_client,
)

logger = logging.getLogger("uvicorn.error")


async def fetch_access_token(client: RakutenClient | None = None) -> str:
    """Exchange the configured refresh token for a bearer token.

    Raises:
        RakutenConfigError: If any credential is missing or a placeholder.
        RakutenAuthError: If the token endpoint fails or answers without a token.
    """
    client = client or get_rakuten_client()
    settings = client.settings

    missing = settings.missing_rakuten_credentials()
    if missing:
        raise RakutenConfigError(
            "The following Rakuten credentials are not configured on the server: "
            f"{', '.join(missing)}. Please add them to the environment or the .env file."
        )

    form = {
        "grant_type": "refresh_token",
        "refresh_token": settings.rakuten_refresh_token,
        "scope": settings.rakuten_account_id,
    }

    try:
        response = await client.post_token(form)
    except httpx.HTTPError as e:
        logger.error(f"Network error during Rakuten token refresh: {e!r}")
        raise RakutenAuthError(
            f"An unexpected network error occurred during token refresh: {e}"
        ) from e

    if not response.ok:
        logger.error(
            f"Rakuten token refresh failed. Status: {response.status_code}. Response: {response.text}"
        )
        raise RakutenAuthError(
            f"Failed to refresh access token: {_describe_token_failure(response.text, response.status_code)}"
        )

    try:
        token_data = json.loads(response.text)
    except json.JSONDecodeError as e:
        logger.error(f"Rakuten token response was not JSON: {response.text}")
        raise RakutenAuthError("Failed to parse a successful token response from Rakuten.") from e

    if not isinstance(token_data, dict):
        logger.error(f"Rakuten token response was not an object: {response.text}")
        raise RakutenAuthError("Failed to parse a successful token response from Rakuten.")

    # The endpoint sometimes answers 200 with an OAuth error body.
    if token_data.get("error"):
        description = token_data.get("error_description") or token_data["error"]
        logger.error(f"Rakuten token API returned an error with status 200: {response.text}")
        raise RakutenAuthError(f"Rakuten token API returned an error: {description}")

    access_token = token_data.get("access_token")
    if not access_token:
        logger.error(f"Rakuten token response did not contain an access_token: {response.text}")
        raise RakutenAuthError(
            "Failed to retrieve access token from Rakuten API. "
            "The response did not contain an access_token."
        )

    return str(access_token)


def _describe_token_failure(body: str, status_code: int) -> str:
    try:
        data: Any = json.loads(body)
    except json.JSONDecodeError:
        return f"API returned a non-JSON error response. Status: {status_code}"
    if isinstance(data, dict):
        for key in ("error_description", "error", "message"):
            value = data.get(key)
            if isinstance(value, str) and value:
                return value
    return "Invalid client authentication"
