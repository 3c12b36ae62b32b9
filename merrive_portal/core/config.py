import logging
from enum import StrEnum
from importlib.metadata import metadata
from pathlib import Path

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict
from yarl import URL

# Read from the installed distribution, the source tree is not shipped
PROJECT_METADATA = metadata("merrive-portal")


class Environment(StrEnum):
    LOCAL = "local"
    DEV = "dev"
    STG = "stg"
    PRD = "prd"


class ListFailurePolicy(StrEnum):
    """
    What to do when a list read (providers, categories, library fallbacks) fails.
    """

    EMPTY = "empty"
    RAISE = "raise"


def convert_app_name(s: str) -> str:
    return " ".join(word.capitalize() for word in s.split("-"))


class Settings(BaseSettings):
    """
    Client settings.

    These parameters can be configured
    with environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=False,
        extra="ignore",
    )

    # App variables
    app_name: str = PROJECT_METADATA["Name"]
    app_title: str = convert_app_name(PROJECT_METADATA["Name"])
    app_version: str = PROJECT_METADATA["Version"]
    app_description: str = PROJECT_METADATA["Summary"]

    # Current working environment
    current_environment: Environment = Environment.LOCAL
    log_level: int = logging.INFO
    log_to_file: bool = False
    log_dir: Path = Path("logs")

    # Remote API
    api_base_url: str = "https://merrive-api-v2.onrender.com"
    request_timeout: float = 30.0  # Seconds, applied to every call
    logout_timeout: float = 5.0  # Seconds, logout is best-effort

    # Credential store, JSON file when set, in memory otherwise
    credential_store_path: Path | None = None

    list_failure_policy: ListFailurePolicy = ListFailurePolicy.EMPTY

    @computed_field
    @property
    def api_url(self) -> URL:
        """
        Parse the API base URL, without trailing slash.
        """
        return URL(self.api_base_url.rstrip("/"))

    @computed_field
    @property
    def user_agent(self) -> str:
        return f"{self.app_name}/{self.app_version}"


settings = Settings()  # type: ignore
