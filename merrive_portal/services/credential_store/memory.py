from merrive_portal.services.credential_store.base import CredentialStore


class InMemoryCredentialStore(CredentialStore):
    """
    Credential store living only as long as the process
    """

    def __init__(self, initial: dict[str, str] | None = None):
        super().__init__()
        self._initial = dict(initial or {})

    async def _read_all(self) -> dict[str, str]:
        return self._initial

    async def _write_all(self, data: dict[str, str]) -> None:
        return None
