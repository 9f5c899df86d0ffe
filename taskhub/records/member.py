"""Member record — a user of the system, created lazily on first access."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class MemberRole(str, Enum):
    ADMIN = "admin"
    USER = "user"
    MANAGER = "manager"


class Member(BaseModel):
    """Row of the ``members`` table."""

    model_config = ConfigDict(use_enum_values=True)

    id: str
    email: str = Field(min_length=1, max_length=255)
    full_name: Optional[str] = Field(default=None, max_length=200)
    avatar_url: Optional[str] = None
    role: MemberRole = MemberRole.USER
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MemberRef(BaseModel):
    """Name and email of a member embedded in another row (lead, creator)."""

    full_name: Optional[str] = None
    email: Optional[str] = None


class MemberOption(BaseModel):
    """Active member as offered in assignment pickers."""

    id: str
    email: str
    full_name: Optional[str] = None
    display_name: str
