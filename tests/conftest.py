from typing import AsyncGenerator
from unittest.mock import Mock

import httpx
import pytest
from faker import Faker

from merrive_portal.core.constants import StorageKey
from merrive_portal.services import CredentialGateway, InMemoryCredentialStore, PortalApi
from tests.utils import FakeRemoteApi

API_BASE_URL = "https://api.test"

STALE_ACCESS_TOKEN = "A1-stale-access-token"
REFRESH_TOKEN = "R1-refresh-token"
FRESH_ACCESS_TOKEN = "A2-fresh-access-token"
ROTATED_REFRESH_TOKEN = "R2-refresh-token"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def faker_instance() -> Faker:
    return Faker()


@pytest.fixture
def remote_api() -> FakeRemoteApi:
    """Fake remote API, nothing is valid until a test says so."""
    return FakeRemoteApi()


@pytest.fixture
async def http_client(remote_api: FakeRemoteApi) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client wired to the fake remote API."""
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(remote_api.handler), base_url=API_BASE_URL
    ) as client:
        yield client


@pytest.fixture
def credential_store() -> InMemoryCredentialStore:
    """Store holding a session whose access token the API no longer accepts."""
    return InMemoryCredentialStore(
        initial={
            StorageKey.ACCESS_TOKEN: STALE_ACCESS_TOKEN,
            StorageKey.REFRESH_TOKEN: REFRESH_TOKEN,
        }
    )


@pytest.fixture
def session_expired() -> Mock:
    """Stand-in for the UI's redirect-to-login hook."""
    return Mock()


@pytest.fixture
async def gateway(
    credential_store: InMemoryCredentialStore,
    http_client: httpx.AsyncClient,
    session_expired: Mock,
) -> AsyncGenerator[CredentialGateway, None]:
    async with CredentialGateway(
        credential_store, client=http_client, on_session_expired=session_expired
    ) as gateway:
        yield gateway


@pytest.fixture
async def portal_api(
    gateway: CredentialGateway, remote_api: FakeRemoteApi
) -> PortalApi:
    """Portal API with a session the remote API accepts."""
    remote_api.valid_access_tokens.add(STALE_ACCESS_TOKEN)
    return PortalApi(gateway)
