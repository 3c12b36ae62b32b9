from datetime import datetime
from typing import Any

from pydantic import Field, model_validator

from merrive_portal.schemas.base import BaseSchema


class MediaFile(BaseSchema):
    """File attached to a service"""

    id: str
    file_name: str = ""
    original_name: str | None = None
    file_url: str = ""
    file_size: int = 0
    mime_type: str | None = None
    file_type: str = "other"  # document, image, video, audio or other
    description: str | None = None


class Service(BaseSchema):
    """
    Service performed by a provider (a project in the API).

    The API's project keys (title, tags, artisan, budget, files) are
    normalized into the portal's field names on validation.
    """

    id: str
    name: str = ""
    description: str = ""
    category: str | None = None
    provider_id: str | None = None
    provider_name: str | None = None
    status: str = "draft"
    price: float | None = None
    currency: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    media: list[MediaFile] = Field(default_factory=list)

    # Extra project fields of the API
    company_name: str | None = None
    contact_name: str | None = None
    contact_phone: str | None = None
    contact_email: str | None = None
    company_address: str | None = None
    budget: float | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    progress: float | None = None
    tags: list[str] = Field(default_factory=list)
    client: dict[str, Any] | None = None
    artisan: dict[str, Any] | None = None
    announcement: dict[str, Any] | None = None
    cover_image: Any = None
    files: list[MediaFile] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def normalize_project(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        data = dict(data)

        if not data.get("name") and data.get("title"):
            data["name"] = data["title"]

        tags = data.get("tags") or []
        if not data.get("category") and tags:
            data["category"] = tags[0]

        artisan = data.get("artisan")
        if isinstance(artisan, dict):
            if not data.get("providerId") and not data.get("provider_id"):
                data["providerId"] = artisan.get("id")
            if not data.get("providerName") and not data.get("provider_name"):
                data["providerName"] = artisan.get("fullName")

        if data.get("price") is None and data.get("budget") is not None:
            data["price"] = data["budget"]

        if not data.get("media") and data.get("files"):
            data["media"] = data["files"]

        return data

    @property
    def year(self) -> int | None:
        """Year of creation, None when the API sent no creation date"""
        return self.created_at.year if self.created_at else None


class Provider(BaseSchema):
    """Provider of services (an artisan in the API)"""

    id: str
    name: str = ""
    email: str | None = None
    phone: str | None = None
    services: list[Service] = Field(default_factory=list)
    total_services: int = 0
    total_revenue: float = 0
    rating: float | None = None
    created_at: datetime | None = None

    @model_validator(mode="before")
    @classmethod
    def normalize_artisan(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("name") and data.get("fullName"):
            data = {**data, "name": data["fullName"]}

        return data


class Category(BaseSchema):
    """Service category"""

    id: str | None = None
    name: str
    description: str | None = None


class SearchFilters(BaseSchema):
    """Search form filters, sent as query parameters"""

    category: str | None = None
    provider_id: str | None = None
    status: str | None = None
    year: int | None = None
    date_from: str | None = None
    date_to: str | None = None
    min_price: float | None = None
    max_price: float | None = None
