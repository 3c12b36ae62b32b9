from .auth_service import AuthSession
from .credential_store import (
    CredentialStore,
    InMemoryCredentialStore,
    JsonFileCredentialStore,
    create_credential_store,
)
from .gateway import CredentialGateway, RefreshCycle
from .portal_api import PortalApi

__all__ = [
    "AuthSession",
    "CredentialStore",
    "InMemoryCredentialStore",
    "JsonFileCredentialStore",
    "create_credential_store",
    "CredentialGateway",
    "RefreshCycle",
    "PortalApi",
]
