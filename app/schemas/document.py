from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def _as_utc(v: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; treat them as UTC
    if v is None:
        return v
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v.astimezone(timezone.utc)


class DocumentCreate(BaseModel):
    """Fields the upload flow hands to the store; id and timestamps are the store's job."""
    title: str
    filename: str
    size: int
    category_id: Optional[int] = None
    thumbnail: Optional[str] = None
    favorite: bool = False
    total_pages: Optional[int] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DocumentUpdate(BaseModel):
    """
    PATCH payload. Only the keys the client actually sends are applied
    (model_dump(exclude_unset=True)); id and uploadedAt are not accepted.
    """
    title: Optional[str] = None
    category_id: Optional[int] = None  # 0 or null -> uncategorized
    favorite: Optional[bool] = None
    thumbnail: Optional[str] = None
    total_pages: Optional[int] = Field(None, ge=0)
    last_opened_at: Optional[datetime] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: Optional[str]) -> str:
        if v is None:
            raise ValueError("title must not be null")
        v = v.strip()
        if not v:
            raise ValueError("title must not be blank")
        return v

    @field_validator("favorite")
    @classmethod
    def favorite_not_null(cls, v: Optional[bool]) -> Optional[bool]:
        if v is None:
            raise ValueError("favorite must be true or false")
        return v

    @field_validator("last_opened_at")
    @classmethod
    def last_opened_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)


class Document(BaseModel):
    id: int
    title: str
    filename: str
    size: int
    category_id: Optional[int] = None
    thumbnail: Optional[str] = None
    uploaded_at: Optional[datetime] = None
    last_opened_at: Optional[datetime] = None
    favorite: bool = False
    total_pages: Optional[int] = None

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    @field_validator("uploaded_at", "last_opened_at")
    @classmethod
    def timestamps_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)
