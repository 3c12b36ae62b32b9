from .base import AppException, CustomException
from .gateway import (
    ApiResponseError,
    GatewayError,
    InvalidCredentialsError,
    PostRefreshAuthFailureError,
    RefreshRejectedError,
    SessionExpiredError,
    TransientNetworkError,
)

__all__ = [
    "AppException",
    "CustomException",
    "GatewayError",
    "ApiResponseError",
    "InvalidCredentialsError",
    "TransientNetworkError",
    "SessionExpiredError",
    "RefreshRejectedError",
    "PostRefreshAuthFailureError",
]
