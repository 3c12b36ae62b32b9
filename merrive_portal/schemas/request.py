from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]


class ApiRequest(BaseModel):
    """
    Immutable description of an outbound call.

    `attempt` counts how many times the call was already replayed after an
    authentication failure. A replay is a new instance, the original is never mutated.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    method: HttpMethod = "GET"
    path: str
    params: dict[str, str] = Field(default_factory=dict)
    json_body: Any = None
    attempt: int = 0

    def replay(self) -> "ApiRequest":
        return self.model_copy(update={"attempt": self.attempt + 1})

    def __str__(self):
        return f"{self.method} {self.path}"
