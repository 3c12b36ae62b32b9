from datetime import datetime
from typing import Literal

from pydantic import SecretStr

from merrive_portal.core.types import LoginBodyDict
from merrive_portal.schemas.base import BaseSchema


class User(BaseSchema):
    """Institutional user profile"""

    id: str
    email: str
    first_name: str = ""
    last_name: str = ""
    role: Literal["institutional", "admin"] | str = "institutional"
    organization: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class LoginCredentials(BaseSchema):
    """Institutional login form"""

    email: str  # Email or institutional identifier
    password: SecretStr

    def to_api(self) -> LoginBodyDict:
        return {"email": self.email, "password": self.password.get_secret_value()}
