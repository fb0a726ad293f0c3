from datetime import datetime

from pydantic import ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.schemas.base import CamelModel


class User(CamelModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: int
    email: str
    name: str
    picture: str | None = None
    is_verified: bool
    created_at: datetime | None = None


class ProfileUpdate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    picture: str | None = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v


class DeleteAccountRequest(CamelModel):
    confirmation: str
