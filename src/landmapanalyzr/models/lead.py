"""Lead (contact request) data models."""

import re
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

# Israeli mobile (05X) or landline (0X) numbers, optionally with +972 prefix
PHONE_PATTERN = re.compile(r"^(?:\+972|0)(?:5\d|[2-489])\d{7}$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LeadStatus(str, Enum):
    """Lead pipeline status.

    Statuses are labels, not guarded states: an admin may set any of them.
    """

    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    CONVERTED = "converted"
    LOST = "lost"


class LeadNote(BaseModel):
    """A note appended to a lead together with a status change."""

    text: str
    status: LeadStatus
    created_at: datetime = Field(default_factory=utcnow)


class LeadCreate(BaseModel):
    """Public lead form payload.

    Validation failures are reported per field so forms can re-present
    them inline.
    """

    plot_id: Optional[str] = None
    name: str = Field(..., min_length=2, max_length=100)
    phone: str
    email: Optional[EmailStr] = None
    message: Optional[str] = Field(default=None, max_length=1000)

    model_config = {"str_strip_whitespace": True}

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value: str) -> str:
        digits = re.sub(r"[\s\-()]", "", value)
        if not PHONE_PATTERN.match(digits):
            raise ValueError("Invalid phone number")
        return digits

    @field_validator("email", "message", mode="before")
    @classmethod
    def blank_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class Lead(BaseModel):
    """A contact-capture record tied to zero or one plot."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    plot_id: Optional[str] = None
    name: str
    phone: str
    email: Optional[str] = None
    message: Optional[str] = None
    status: LeadStatus = LeadStatus.NEW
    notes: list[LeadNote] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = {
        "validate_assignment": True,
    }

    @field_validator("created_at", "updated_at", mode="after")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @property
    def latest_note(self) -> Optional[LeadNote]:
        return self.notes[-1] if self.notes else None
