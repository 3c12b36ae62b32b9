import asyncio
import inspect
from dataclasses import dataclass, field
from typing import Any

import httpx
from loguru import logger
from pydantic import SecretStr, ValidationError

from merrive_portal.core.config import settings
from merrive_portal.core.constants import LOGIN_REJECTED_STATUSES, ApiPath
from merrive_portal.core.exceptions import (
    ApiResponseError,
    GatewayError,
    InvalidCredentialsError,
    PostRefreshAuthFailureError,
    RefreshRejectedError,
    SessionExpiredError,
    TransientNetworkError,
)
from merrive_portal.core.logger import mask_token, new_request_id, request_id_var
from merrive_portal.core.types import RefreshBodyDict, SessionExpiredCallback
from merrive_portal.schemas import (
    ApiRequest,
    AuthResponse,
    Credential,
    CurrentUserResponse,
    LoginCredentials,
    User,
)
from merrive_portal.services.credential_store import CredentialStore

# Number of replays allowed after an authentication failure
MAX_AUTH_REPLAYS = 1


def error_message(response: httpx.Response, default: str) -> str:
    """
    Extract the error message of an API error response

    Args:
        response: The error response
        default: Message used when the body carries none

    Returns:
        str: The message
    """
    try:
        payload = response.json()
    except ValueError:
        return default

    if not isinstance(payload, dict):
        return default

    message = payload.get("message") or payload.get("error")
    if isinstance(message, list):
        return "; ".join(str(item) for item in message)

    return str(message) if message else default


def error_payload(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


@dataclass
class RefreshCycle:
    """
    The single in-flight refresh and the callers waiting on its outcome.

    Waiters are futures resolved in enqueue order, all with the same token or
    the same error.
    """

    waiters: list[asyncio.Future] = field(default_factory=list)

    def enqueue(self) -> asyncio.Future:
        waiter = asyncio.get_running_loop().create_future()
        self.waiters.append(waiter)
        return waiter

    def resolve(self, access_token: str):
        for waiter in self.waiters:
            if not waiter.done():
                waiter.set_result(access_token)

    def reject(self, error: BaseException):
        for waiter in self.waiters:
            if waiter.done():
                continue

            if isinstance(error, asyncio.CancelledError):
                waiter.cancel()
            else:
                waiter.set_exception(error)


class CredentialGateway:
    """
    Issues authenticated calls to the remote API.

    Attaches the current bearer token, and when a call fails with 401 refreshes
    the token once and replays the call once. Concurrent failures share a single
    refresh: the first one starts a RefreshCycle, the others wait on it.

    Session-fatal failures (rejected refresh, 401 right after a refresh) clear
    the credential store and invoke `on_session_expired`, the UI's
    redirect-to-login hook, before the error is raised.

    Example usage:
        async with CredentialGateway(InMemoryCredentialStore()) as gateway:
            await gateway.authenticate("office@city.example", "secret")
            response = await gateway.call(ApiRequest(path="/projects/42"))
    """

    def __init__(
        self,
        credential_store: CredentialStore,
        client: httpx.AsyncClient | None = None,
        on_session_expired: SessionExpiredCallback | None = None,
    ):
        self.credential_store = credential_store
        self.on_session_expired = on_session_expired

        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=str(settings.api_url),
            timeout=settings.request_timeout,
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
                "User-Agent": settings.user_agent,
            },
        )

        self._refresh_cycle: RefreshCycle | None = None
        # Bumped on logout so a refresh finishing afterwards cannot revive the session
        self._session_epoch = 0

    @property
    def is_refreshing(self) -> bool:
        return self._refresh_cycle is not None

    async def __aenter__(self) -> "CredentialGateway":
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        """Close the HTTP client if the gateway created it"""
        if self._owns_client:
            await self._client.aclose()

    async def _dispatch(
        self,
        request: ApiRequest,
        access_token: str | None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """
        Send one HTTP request, no recovery of any kind

        Raises:
            TransientNetworkError: If no response was received
        """
        headers = {}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"

        request_id = request_id_var.get()
        if request_id:
            headers["X-Request-ID"] = request_id

        kwargs: dict[str, Any] = {}
        if timeout is not None:
            kwargs["timeout"] = timeout

        try:
            response = await self._client.request(
                request.method,
                request.path,
                params=request.params or None,
                json=request.json_body,
                headers=headers,
                **kwargs,
            )
        except httpx.TransportError as err:
            logger.warning(f"{request} failed without response: {err.__class__.__name__}")
            raise TransientNetworkError(f"No response for {request}", err) from err

        logger.debug(f"{request} -> {response.status_code} (attempt {request.attempt})")
        return response

    async def authenticate(self, email_or_id: str, secret: str | SecretStr) -> Credential:
        """
        Log in with an identifier and a secret, and store the new session

        Args:
            email_or_id: Email or institutional identifier
            secret: Password

        Returns:
            Credential: The new token pair

        Raises:
            InvalidCredentialsError: If the login is rejected (never retried)
            ApiResponseError: If the API fails otherwise
            TransientNetworkError: If the API is unreachable
        """
        credentials = LoginCredentials(email=email_or_id, password=secret)
        request = ApiRequest(method="POST", path=ApiPath.LOGIN, json_body=credentials.to_api())

        token = request_id_var.set(new_request_id())
        try:
            response = await self._dispatch(request, access_token=None)
        finally:
            request_id_var.reset(token)

        if response.status_code in LOGIN_REJECTED_STATUSES:
            logger.info(f"Login rejected for {email_or_id} with status {response.status_code}")
            raise InvalidCredentialsError(
                error_message(response, "Invalid login credentials"),
                status_code=response.status_code,
                payload=error_payload(response),
            )

        if response.is_error:
            raise ApiResponseError(
                error_message(response, "Login failed"),
                status_code=response.status_code,
                payload=error_payload(response),
            )

        try:
            auth = AuthResponse.model_validate(response.json())
            credential = auth.to_credential()
        except ValueError as err:
            raise ApiResponseError(
                "Login response is malformed", status_code=response.status_code, exception=err
            ) from err

        self._session_epoch += 1
        await self.credential_store.save_session(credential, auth.user)
        logger.info(f"Logged in as {email_or_id}")

        return credential

    async def call(self, request: ApiRequest) -> httpx.Response:
        """
        Issue an authenticated call, recovering once from a stale access token

        Any response other than 401 is returned unchanged, error statuses included.

        Args:
            request: The call to issue

        Returns:
            httpx.Response: The response of the call or of its replay

        Raises:
            TransientNetworkError: If the API is unreachable
            RefreshRejectedError: If the token could not be refreshed
            PostRefreshAuthFailureError: If the replay was rejected as well
        """
        token = None
        if request_id_var.get() is None:
            token = request_id_var.set(new_request_id())

        try:
            access_token = await self.credential_store.get_access_token()
            return await self._send(request, access_token)
        finally:
            if token is not None:
                request_id_var.reset(token)

    async def _send(self, request: ApiRequest, access_token: str | None) -> httpx.Response:
        response = await self._dispatch(request, access_token)
        if response.status_code != httpx.codes.UNAUTHORIZED:
            return response

        if request.attempt >= MAX_AUTH_REPLAYS:
            error = PostRefreshAuthFailureError(f"{request} rejected again after token refresh")
            await self._expire_session(error)
            raise error

        logger.info(f"{request} got 401, access token {mask_token(access_token)} is stale")

        current_token = await self.credential_store.get_access_token()
        if current_token and current_token != access_token and not self.is_refreshing:
            # A refresh completed while this call was in flight
            fresh_token = current_token
        else:
            fresh_token = await self.ensure_fresh_token()

        return await self._send(request.replay(), fresh_token)

    async def ensure_fresh_token(self) -> str:
        """
        Get a new access token, sharing one refresh between all concurrent callers

        Returns:
            str: The new access token

        Raises:
            RefreshRejectedError: If no refresh token is stored or the API rejects it
            TransientNetworkError: If the refresh endpoint is unreachable
        """
        if self._refresh_cycle is not None:
            logger.debug(f"Refresh in flight, waiting as #{len(self._refresh_cycle.waiters) + 1}")
            return await self._refresh_cycle.enqueue()

        cycle = RefreshCycle()
        self._refresh_cycle = cycle
        epoch = self._session_epoch

        try:
            credential, user = await self._request_refresh()
            access_token = await self._store_refreshed(epoch, credential, user)
        except RefreshRejectedError as err:
            self._finish_cycle(cycle, error=err)
            await self._expire_session(err)
            raise
        except BaseException as err:
            self._finish_cycle(cycle, error=err)
            raise

        if access_token is None:
            # The session was ended meanwhile, its expiry was already reported
            error = RefreshRejectedError("Session ended while the token was being refreshed")
            self._finish_cycle(cycle, error=error)
            raise error

        self._finish_cycle(cycle, access_token=access_token)
        logger.info(
            f"Access token refreshed ({mask_token(access_token)}), "
            f"{len(cycle.waiters)} waiting call(s) released"
        )

        return access_token

    async def _store_refreshed(
        self, epoch: int, credential: Credential, user: User | None
    ) -> str | None:
        """
        Store a refreshed pair unless the session changed since the refresh started

        Returns:
            str | None: The access token to replay with, None if no session is left
        """
        if epoch == self._session_epoch:
            await self.credential_store.save_session(credential, user)
            return credential.access_token

        # Logout, expiry or a new login happened meanwhile, the newer state wins
        logger.info("Session changed during the refresh, dropping the refreshed tokens")
        return await self.credential_store.get_access_token()

    def _finish_cycle(
        self,
        cycle: RefreshCycle,
        access_token: str | None = None,
        error: BaseException | None = None,
    ):
        # Detach first so a released waiter can start a new cycle
        if self._refresh_cycle is cycle:
            self._refresh_cycle = None

        if error is not None:
            cycle.reject(error)
        else:
            cycle.resolve(access_token)  # type: ignore

    async def _request_refresh(self) -> tuple[Credential, User | None]:
        refresh_token = await self.credential_store.get_refresh_token()
        if not refresh_token:
            raise RefreshRejectedError("No refresh token stored")

        logger.info(f"Refreshing access token with refresh token {mask_token(refresh_token)}")

        body: RefreshBodyDict = {"refreshToken": refresh_token}
        request = ApiRequest(method="POST", path=ApiPath.REFRESH, json_body=body)
        response = await self._dispatch(request, access_token=None)

        if response.is_error:
            raise RefreshRejectedError(
                f"Refresh rejected with status {response.status_code}: "
                f"{error_message(response, 'no details')}"
            )

        try:
            auth = AuthResponse.model_validate(response.json())
            credential = auth.to_credential(previous_refresh_token=refresh_token)
        except ValueError as err:
            raise RefreshRejectedError("Refresh response is malformed", err) from err

        return credential, auth.user

    async def _expire_session(self, error: SessionExpiredError):
        # A refresh still in flight must not store its tokens afterwards
        self._session_epoch += 1
        logger.warning(f"Session expired: {error.message}")
        await self.credential_store.clear()

        if self.on_session_expired is None:
            return

        try:
            result = self.on_session_expired(error)
            if inspect.isawaitable(result):
                await result
        except Exception as err:
            logger.opt(exception=err).error("Session expired callback failed")

    async def end_session(self):
        """
        Log out remotely when possible, and always clear the local session
        """
        self._session_epoch += 1
        access_token = await self.credential_store.get_access_token()

        try:
            if access_token:
                request = ApiRequest(method="POST", path=ApiPath.LOGOUT)
                response = await self._dispatch(
                    request, access_token, timeout=settings.logout_timeout
                )
                if response.is_error:
                    logger.warning(f"Remote logout answered {response.status_code}, ignoring")
        except GatewayError as err:
            logger.warning(f"Remote logout failed, clearing local session anyway: {err.message}")
        finally:
            await self.credential_store.clear()

        logger.info("Session ended")

    async def fetch_json(self, request: ApiRequest) -> Any:
        """
        Issue an authenticated call and decode its JSON body

        Returns:
            Any: The decoded body, None for an empty body

        Raises:
            ApiResponseError: If the API answered with an error status or invalid JSON
        """
        response = await self.call(request)

        if response.is_error:
            raise ApiResponseError(
                error_message(response, f"{request} failed"),
                status_code=response.status_code,
                payload=error_payload(response),
            )

        if not response.content:
            return None

        try:
            return response.json()
        except ValueError as err:
            raise ApiResponseError(
                f"{request} returned invalid JSON", status_code=response.status_code, exception=err
            ) from err

    async def fetch_current_user(self) -> User:
        """
        Fetch the profile of the logged in user and refresh the cached copy

        Raises:
            ApiResponseError: If the API fails or returns an unexpected payload
        """
        data = await self.fetch_json(ApiRequest(path=ApiPath.ME))

        try:
            if isinstance(data, dict) and "user" in data:
                user = CurrentUserResponse.model_validate(data).user
            else:
                user = User.model_validate(data)
        except ValidationError as err:
            raise ApiResponseError("Current user payload is malformed", exception=err) from err

        if await self.credential_store.get_access_token():
            await self.credential_store.save_user(user)

        return user
