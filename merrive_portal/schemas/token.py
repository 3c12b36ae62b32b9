from merrive_portal.schemas.base import BaseSchema
from merrive_portal.schemas.user import User


class Credential(BaseSchema):
    """Current access/refresh token pair"""

    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int | None = None  # Advisory only, expiry is discovered on 401

    def __str__(self):
        return self.token_type + " " + self.access_token

    def __repr__(self):
        return f"Credential(access_token={self.access_token[:6]}..., expires_in={self.expires_in})"


class AuthResponse(BaseSchema):
    """Login and refresh response"""

    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None
    user: User | None = None

    def to_credential(self, previous_refresh_token: str | None = None) -> Credential:
        """
        Build the credential, carrying over the previous refresh token
        when the server did not rotate it.

        Raises:
            ValueError: If no refresh token is available at all
        """
        refresh_token = self.refresh_token or previous_refresh_token
        if not refresh_token:
            raise ValueError("Authentication response carries no refresh token")

        return Credential(
            access_token=self.access_token,
            refresh_token=refresh_token,
            expires_in=self.expires_in,
        )


class CurrentUserResponse(BaseSchema):
    """Response of the current user endpoint"""

    user: User
