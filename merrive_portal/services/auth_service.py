from loguru import logger

from merrive_portal.core.exceptions import GatewayError
from merrive_portal.schemas import LoginCredentials, User
from merrive_portal.services.gateway import CredentialGateway


class AuthSession:
    """
    Authentication state of the portal user.
    Receives the CredentialGateway via constructor and never talks HTTP itself.

    Errors of login propagate to the caller, which renders them inline.
    Restoring and ending a session never raise gateway errors.
    """

    def __init__(self, gateway: CredentialGateway):
        self.gateway = gateway
        self.user: User | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    async def restore(self) -> User | None:
        """
        Restore the session persisted in the credential store.

        When a token is stored the profile is fetched again, which also
        exercises the refresh path if the access token expired meanwhile.

        Returns:
            User | None: The restored user, None when anonymous
        """
        if not await self.gateway.credential_store.get_access_token():
            self.user = None
            return None

        try:
            self.user = await self.gateway.fetch_current_user()
        except GatewayError as err:
            logger.error(f"Error restoring the session: {err.message}")
            await self.gateway.end_session()
            self.user = None

        return self.user

    async def login(self, credentials: LoginCredentials) -> User | None:
        """
        Log in and remember the user profile

        Args:
            credentials: Email or identifier and password

        Returns:
            User | None: The logged in user, None if the API sent no profile

        Raises:
            InvalidCredentialsError: If the login is rejected
        """
        await self.gateway.authenticate(credentials.email, credentials.password)
        self.user = await self.gateway.credential_store.get_user()

        logger.info(f"User {credentials.email} logged in")
        return self.user

    async def logout(self):
        """Log out, the local session is always forgotten"""
        try:
            await self.gateway.end_session()
        finally:
            self.user = None
