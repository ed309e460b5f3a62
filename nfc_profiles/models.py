from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProfileRecord(BaseModel):
    """
    One NFC pin profile as stored in the profiles collection.

    Every field except ``code`` is optional. Documents use camelCase keys,
    exposed here as snake_case attributes. Unknown keys are preserved.
    """

    model_config = ConfigDict(
        extra="allow",
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    code: str

    # Ownership
    uid: Optional[str] = None
    claimed: Optional[bool] = None

    # Contact / organization
    name: Optional[str] = None
    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None
    title: Optional[str] = None
    organization: Optional[str] = None
    org: Optional[str] = None
    company: Optional[str] = None

    # Links and media
    website: Optional[str] = None
    linkedin: Optional[str] = None
    twitter: Optional[str] = None
    instagram: Optional[str] = None
    photo: Optional[str] = None
    file: Optional[str] = None
    info: Optional[str] = None

    # Timestamps: datetime, store timestamp object, ISO string or epoch ms
    created_at: Optional[Any] = Field(default=None, alias="createdAt")
    claimed_at: Optional[Any] = Field(default=None, alias="claimedAt")
    last_updated: Optional[Any] = Field(default=None, alias="lastUpdated")
    viewed_at: Optional[Any] = Field(default=None, alias="viewedAt")

    # Counters; viewCount is canonical, views is the older name
    view_count: Optional[Any] = Field(default=None, alias="viewCount")
    views: Optional[Any] = None
    downloads: Optional[Any] = None

    @field_validator("claimed", mode="before")
    @classmethod
    def blank_claimed_is_unset(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @classmethod
    def from_document(cls, code: str, data: Dict[str, Any]) -> "ProfileRecord":
        payload = dict(data)
        payload["code"] = payload.get("code") or code
        return cls.model_validate(payload)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

    @property
    def is_claimed(self) -> bool:
        return bool(self.uid)

    def lookup(self, key: str) -> Any:
        """Value for a document key (camelCase) or attribute name, else None."""
        field = _ALIAS_TO_FIELD.get(key, key)
        if field in type(self).model_fields:
            return getattr(self, field)
        extra = self.model_extra or {}
        return extra.get(key)


_ALIAS_TO_FIELD = {
    info.alias: name
    for name, info in ProfileRecord.model_fields.items()
    if info.alias
}


class HealthResponse(BaseModel):
    ok: bool = True


class StatsResponse(BaseModel):
    total: int = 0
    claimed: int = 0
    unclaimed: int = 0


class ImportReport(BaseModel):
    created: List[str] = Field(default_factory=list)
    skipped_rows: List[int] = Field(default_factory=list)
    encoding: Optional[str] = None
    delimiter: str = ","


class PinStatus(str, Enum):
    claimed = "claimed"
    unclaimed = "unclaimed"


class VcardPlatform(str, Enum):
    ios = "ios"
    android = "android"


class ClaimRequest(BaseModel):
    uid: str = Field(min_length=1)


class ProfileUpdate(BaseModel):
    """Fields a pin owner saves from the profile form."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    uid: str = Field(min_length=1)
    first_name: str = Field(alias="firstName", min_length=1)
    last_name: str = Field(alias="lastName", min_length=1)
    email: str = Field(min_length=1)

    name: Optional[str] = None
    title: Optional[str] = None
    company: Optional[str] = None
    organization: Optional[str] = None
    role: Optional[str] = None
    phone: Optional[str] = None
    photo: Optional[str] = None
    website: Optional[str] = None
    linkedin: Optional[str] = None
    twitter: Optional[str] = None
    instagram: Optional[str] = None
