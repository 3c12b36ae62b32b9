from typing import Any

from merrive_portal.core.exceptions.base import AppException


class GatewayError(AppException):
    """
    Base exception for calls issued through the credential gateway
    """

    def __init__(self, message, exception: Exception | None = None):
        super().__init__(message, exception)


class ApiResponseError(GatewayError):
    """
    The remote API answered with an error status
    """

    def __init__(
        self,
        message="Remote API returned an error",
        status_code: int | None = None,
        payload: Any = None,
        exception: Exception | None = None,
    ):
        super().__init__(message, exception)
        self.status_code = status_code
        self.payload = payload

    def __str__(self):
        base = super().__str__()
        if self.status_code is None:
            return base

        return f"[{self.status_code}] {base}"


class InvalidCredentialsError(ApiResponseError):
    """
    Login rejected by the remote API, never retried
    """

    def __init__(
        self,
        message="Invalid login credentials",
        status_code: int | None = None,
        payload: Any = None,
        exception: Exception | None = None,
    ):
        super().__init__(message, status_code, payload, exception)


class TransientNetworkError(GatewayError):
    """
    No response was received from the remote API
    """

    def __init__(
        self,
        message="Remote API unreachable",
        exception: Exception | None = None,
    ):
        super().__init__(message, exception)


class SessionExpiredError(GatewayError):
    """
    The session cannot be recovered, the user must log in again
    """

    def __init__(
        self,
        message="Session expired, please log in again",
        exception: Exception | None = None,
    ):
        super().__init__(message, exception)


class RefreshRejectedError(SessionExpiredError):
    """
    The refresh token is missing, invalid or expired
    """

    def __init__(
        self,
        message="Refresh token rejected",
        exception: Exception | None = None,
    ):
        super().__init__(message, exception)


class PostRefreshAuthFailureError(SessionExpiredError):
    """
    A freshly issued access token was rejected as well
    """

    def __init__(
        self,
        message="Access token rejected right after refresh",
        exception: Exception | None = None,
    ):
        super().__init__(message, exception)
