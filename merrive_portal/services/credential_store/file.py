import json
from pathlib import Path

import aiofiles
import aiofiles.os
from loguru import logger

from merrive_portal.services.credential_store.base import CredentialStore


class JsonFileCredentialStore(CredentialStore):
    """
    Credential store persisted as a JSON object on disk.

    Keeps the session across process runs, the way a browser keeps it in local
    storage across page loads. The file is replaced atomically through a
    temporary sibling and removed when the session is cleared.
    """

    def __init__(self, path: str | Path):
        super().__init__()
        self.path = Path(path)

    async def _read_all(self) -> dict[str, str]:
        if not await aiofiles.os.path.isfile(self.path):
            return {}

        try:
            async with aiofiles.open(self.path, "r", encoding="utf-8") as file:
                content = await file.read()
            data = json.loads(content)
        except (OSError, json.JSONDecodeError) as err:
            logger.warning(f"Credential file {self.path} is unreadable, starting empty")
            logger.debug(str(err))
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Credential file {self.path} does not hold an object, starting empty")
            return {}

        return {str(key): str(value) for key, value in data.items() if value is not None}

    async def _write_all(self, data: dict[str, str]) -> None:
        if not data:
            if await aiofiles.os.path.exists(self.path):
                await aiofiles.os.remove(self.path)
            return

        await aiofiles.os.makedirs(self.path.parent, exist_ok=True)
        tmp_path = self.path.with_name(f"{self.path.name}.tmp")

        async with aiofiles.open(tmp_path, "w", encoding="utf-8") as file:
            await file.write(json.dumps(data))

        await aiofiles.os.replace(tmp_path, self.path)
