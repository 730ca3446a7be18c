from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from .constants import MemberRole


class GroupMember(BaseModel):
    user_id: int
    role: MemberRole = MemberRole.MEMBER
    joined_at: datetime


class Group(BaseModel):
    id: int
    name: str
    monthly_limit: int = Field(0, ge=0, description="Legacy limit in minor units")
    members: List[GroupMember]

    @field_validator("members")
    @classmethod
    def at_least_one_member(cls, v: List[GroupMember]) -> List[GroupMember]:
        if not v:
            raise ValueError("group must have at least one member")
        return v

    def member(self, user_id: int) -> Optional[GroupMember]:
        return next((m for m in self.members if m.user_id == user_id), None)


class Recipient(BaseModel):
    """A person to notify, with whichever addresses they have on file."""

    user_id: int
    name: str = ""
    email: Optional[str] = None
    phone_number: Optional[str] = None
