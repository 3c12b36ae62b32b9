from merrive_portal.core.config import settings

from .base import CredentialStore
from .file import JsonFileCredentialStore
from .memory import InMemoryCredentialStore


def create_credential_store() -> CredentialStore:
    """
    Build the store configured in settings: a JSON file when a path is set, memory otherwise.
    """
    if settings.credential_store_path is not None:
        return JsonFileCredentialStore(settings.credential_store_path)

    return InMemoryCredentialStore()


__all__ = [
    "CredentialStore",
    "InMemoryCredentialStore",
    "JsonFileCredentialStore",
    "create_credential_store",
]
