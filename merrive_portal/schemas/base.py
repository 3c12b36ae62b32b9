from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseSchema(BaseModel):
    """Base schema mapping snake_case fields to the API's camelCase keys"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        from_attributes=True,
        extra="ignore",
    )

    def to_api(self) -> dict:
        """Dump to the API's JSON shape, camelCase keys and no unset values"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
