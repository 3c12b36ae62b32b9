import asyncio
import json
from typing import Any

import httpx
from faker import Faker

from merrive_portal.core.constants import ApiPath
from tests.schemas import RefreshGrant, UserCredentials


def generate_user_credentials() -> UserCredentials:
    """
    Generate random login credentials (email and password)
    Returns:
        UserCredentials: Generated email and password
    """
    faker = Faker()
    password = (
        faker.password(
            length=12, special_chars=False, digits=True, upper_case=True, lower_case=True
        )
        + "@%&"
    )
    return UserCredentials(email=faker.safe_email(), password=password)


def make_user_payload(faker: Faker, email: str | None = None) -> dict[str, Any]:
    """Build a user profile as sent by the API"""
    return {
        "id": faker.uuid4(),
        "email": email or faker.safe_email(),
        "firstName": faker.first_name(),
        "lastName": faker.last_name(),
        "role": "institutional",
        "organization": faker.company(),
        "createdAt": "2024-01-15T10:00:00Z",
        "updatedAt": "2024-06-01T08:30:00Z",
    }


def make_project_payload(
    faker: Faker,
    created_at: str = "2024-03-10T09:00:00Z",
    tags: list[str] | None = None,
    title: str | None = None,
    description: str | None = None,
) -> dict[str, Any]:
    """Build a project as sent by the API"""
    return {
        "id": faker.uuid4(),
        "title": title or faker.sentence(nb_words=3),
        "description": description or faker.sentence(nb_words=10),
        "tags": tags if tags is not None else ["Art"],
        "status": "completed",
        "budget": 1500,
        "currency": "XOF",
        "createdAt": created_at,
        "updatedAt": created_at,
        "artisan": {"id": faker.uuid4(), "fullName": faker.name()},
        "files": [],
    }


class FakeRemoteApi:
    """
    In-process stand-in for the remote API, served through httpx.MockTransport.

    Resource paths answer 401 unless the bearer token is in `valid_access_tokens`.
    The refresh endpoint exchanges the refresh tokens of `refresh_grants` and,
    when `refresh_gate` is set, holds its answer until the gate opens.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.valid_access_tokens: set[str] = set()
        self.accounts: dict[str, str] = {}
        self.login_reject_status = 401
        self.login_grant: RefreshGrant | None = None
        self.refresh_grants: dict[str, RefreshGrant] = {}
        self.refresh_status = 401
        self.activate_refreshed_tokens = True
        self.refresh_gate: asyncio.Event | None = None
        self.open_gate_after_unauthorized: int | None = None
        self.resources: dict[str, Any] = {}
        self.raw_responses: dict[str, httpx.Response] = {}
        self.transport_errors: dict[str, Exception] = {}
        self.logout_status = 204
        self.unauthorized_count = 0

    @property
    def refresh_requests(self) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.path == ApiPath.REFRESH]

    @property
    def resource_requests(self) -> list[httpx.Request]:
        auth_paths = {ApiPath.LOGIN, ApiPath.REFRESH, ApiPath.LOGOUT}
        return [request for request in self.requests if request.url.path not in auth_paths]

    def bearer_tokens(self, path: str) -> list[str | None]:
        """Bearer tokens sent to a path, in order"""
        tokens = []
        for request in self.requests:
            if request.url.path != path:
                continue
            header = request.headers.get("Authorization")
            tokens.append(header.removeprefix("Bearer ") if header else None)
        return tokens

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == ApiPath.REFRESH and self.refresh_gate is not None:
            await self.refresh_gate.wait()

        if path in self.transport_errors:
            raise self.transport_errors[path]

        if path == ApiPath.LOGIN:
            return self._login(request)

        if path == ApiPath.REFRESH:
            return self._refresh(request)

        if path == ApiPath.LOGOUT:
            return httpx.Response(self.logout_status)

        header = request.headers.get("Authorization", "")
        if header.removeprefix("Bearer ") not in self.valid_access_tokens:
            self.unauthorized_count += 1
            if (
                self.refresh_gate is not None
                and self.open_gate_after_unauthorized is not None
                and self.unauthorized_count >= self.open_gate_after_unauthorized
            ):
                self.refresh_gate.set()
            return httpx.Response(401, json={"message": "Unauthorized"})

        if path in self.raw_responses:
            return self.raw_responses[path]

        if path in self.resources:
            return httpx.Response(200, json=self.resources[path])

        return httpx.Response(404, json={"message": f"Cannot GET {path}"})

    def _login(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if self.accounts.get(body.get("email")) != body.get("password"):
            return httpx.Response(
                self.login_reject_status, json={"message": "Invalid credentials"}
            )

        if self.login_grant is None:
            return httpx.Response(500, json={"message": "No grant configured"})

        self.valid_access_tokens.add(self.login_grant["accessToken"])
        return httpx.Response(201, json=self.login_grant)

    def _refresh(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)

        grant = self.refresh_grants.get(body.get("refreshToken"))
        if grant is None:
            return httpx.Response(self.refresh_status, json={"message": "Invalid refresh token"})

        if self.activate_refreshed_tokens and "accessToken" in grant:
            self.valid_access_tokens.add(grant["accessToken"])

        return httpx.Response(200, json=grant)
