"""Shared fixtures: settings with test credentials and a RakutenClient on a fake upstream."""

import httpx
import pytest

from fakes import FakeUpstream
from storefront.services.rakuten_client import RakutenClient
from storefront.settings import Settings


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        rakuten_client_id="client-id",
        rakuten_client_secret="client-secret",
        rakuten_refresh_token="refresh-token",
        rakuten_account_id="3456789",
        rakuten_base_url="https://api.linksynergy.com",
        logo_dev_token="pk_test",
    )


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
async def rakuten(settings: Settings, upstream: FakeUpstream):
    """RakutenClient wired to the fake upstream."""
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler))
    client = RakutenClient(settings=settings, http_client=http_client)
    yield client
    await client.close()
