from typing import Awaitable, Callable, TypedDict

from merrive_portal.core.exceptions import SessionExpiredError


class LoginBodyDict(TypedDict):
    """Body of the institutional login request."""

    email: str
    password: str


class RefreshBodyDict(TypedDict):
    """Body of the refresh request."""

    refreshToken: str


# UI hook invoked once when the session can no longer be recovered
SessionExpiredCallback = Callable[[SessionExpiredError], Awaitable[None] | None]
