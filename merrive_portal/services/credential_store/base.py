import asyncio
from abc import ABC, abstractmethod

from loguru import logger
from pydantic import ValidationError

from merrive_portal.core.constants import StorageKey
from merrive_portal.core.logger import mask_token
from merrive_portal.schemas import Credential, User


class CredentialStore(ABC):
    """
    Abstract key/value store for the current session.

    Holds the access token, the refresh token and the serialized user profile.
    Values are mirrored in memory: every write updates the mirror synchronously
    before the backend is persisted, so a concurrent reader sees either the
    previous pair or the new one, never a mix of both.
    """

    def __init__(self):
        self._data: dict[str, str] = {}
        self._loaded = False
        self._write_lock = asyncio.Lock()

    @abstractmethod
    async def _read_all(self) -> dict[str, str]:
        """Load the persisted content"""

    @abstractmethod
    async def _write_all(self, data: dict[str, str]) -> None:
        """Persist the given content, replacing what was stored"""

    async def _ensure_loaded(self):
        if self._loaded:
            return

        data = await self._read_all()

        # A write may have happened while reading
        if not self._loaded:
            self._data = {key: value for key, value in data.items() if key in StorageKey.all_keys()}
            self._loaded = True

    async def _persist(self):
        async with self._write_lock:
            # Always write the latest snapshot so writes cannot land out of order
            await self._write_all(dict(self._data))

    async def get(self, key: str) -> str | None:
        await self._ensure_loaded()
        return self._data.get(key)

    async def get_access_token(self) -> str | None:
        return await self.get(StorageKey.ACCESS_TOKEN)

    async def get_refresh_token(self) -> str | None:
        return await self.get(StorageKey.REFRESH_TOKEN)

    async def get_credential(self) -> Credential | None:
        """
        Get the current token pair

        Returns:
            Credential | None: The pair, or None if either token is missing
        """
        await self._ensure_loaded()
        access_token = self._data.get(StorageKey.ACCESS_TOKEN)
        refresh_token = self._data.get(StorageKey.REFRESH_TOKEN)

        if not access_token or not refresh_token:
            return None

        return Credential(access_token=access_token, refresh_token=refresh_token)

    async def get_user(self) -> User | None:
        """
        Get the cached user profile

        Returns:
            User | None: The profile, or None if absent or unreadable
        """
        raw_user = await self.get(StorageKey.USER)
        if not raw_user:
            return None

        try:
            return User.model_validate_json(raw_user)
        except ValidationError:
            logger.warning("Cached user profile is unreadable, ignoring it")
            return None

    async def save_session(self, credential: Credential, user: User | None = None):
        """
        Replace the current session in one step

        Args:
            credential: The new token pair
            user: The new user profile, the cached one is kept when None
        """
        await self._ensure_loaded()

        data = {
            StorageKey.ACCESS_TOKEN: credential.access_token,
            StorageKey.REFRESH_TOKEN: credential.refresh_token,
        }
        if user is not None:
            data[StorageKey.USER] = user.model_dump_json(by_alias=True)
        elif StorageKey.USER in self._data:
            data[StorageKey.USER] = self._data[StorageKey.USER]

        self._data = data
        logger.debug(
            f"Session stored in {self.__class__.__name__} "
            f"(access token {mask_token(credential.access_token)})"
        )

        await self._persist()

    async def save_user(self, user: User):
        """Update the cached user profile, keeping the tokens"""
        await self._ensure_loaded()
        self._data = {**self._data, StorageKey.USER: user.model_dump_json(by_alias=True)}
        await self._persist()

    async def clear(self):
        """Remove the tokens and the user profile together"""
        self._data = {}
        self._loaded = True
        logger.debug(f"Session cleared in {self.__class__.__name__}")

        await self._persist()
