from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Request/response payload. Serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class SpecModel(BaseModel):
    """Desired state supplied by the caller. Immutable once built."""

    model_config = ConfigDict(frozen=True)


class ApiErrorPayload(WireModel):
    status: int | None = None
    error: str = ""
    message: str = ""
    path: str = ""


class Page(WireModel):
    """Paged collection returned by list endpoints."""

    content: list[dict] = Field(default_factory=list)
    total_elements: int | None = None
