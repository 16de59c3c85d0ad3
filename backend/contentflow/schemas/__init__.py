"""Pydantic schemas for the content pipeline API."""

# purpose: aggregate request and response schemas for FastAPI surfaces and services
# status: active

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, ConfigDict, Field, field_validator
from uuid import UUID

from ..models import AssignmentRole, TeamRole
from .content import (
    ApproveRequest,
    AssignmentOut,
    AssignmentRequest,
    ContentCreate,
    ContentEventOut,
    ContentRecordOut,
    DisapproveRequest,
    RejectRequest,
    ResubmitRequest,
    StageChangeRequest,
    StageOptionsOut,
)


class TeamMemberCreate(BaseModel):
    email: EmailStr
    full_name: Optional[str] = None
    role: TeamRole = TeamRole.SCRIPT_WRITER


class UserOut(BaseModel):
    id: UUID
    email: EmailStr
    full_name: Optional[str]
    role: TeamRole
    is_active: bool = True
    model_config = ConfigDict(from_attributes=True)


class ProfileCreate(BaseModel):
    name: str = Field(min_length=1)
    code: Optional[str] = Field(default=None, max_length=16)
    platform: Optional[str] = None

    @field_validator("code")
    @classmethod
    def _normalize_code(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip().upper()
        if not value:
            return None
        if not value.isalnum():
            raise ValueError("profile code must be alphanumeric")
        return value


class ProfileOut(BaseModel):
    id: UUID
    code: str
    name: str
    platform: Optional[str] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class WorkloadEntryOut(BaseModel):
    user_id: UUID
    email: str
    full_name: Optional[str] = None
    active_assignments: int
    model_config = ConfigDict(from_attributes=True)


class WorkloadReportOut(BaseModel):
    role: AssignmentRole
    members: list[WorkloadEntryOut]


class SequenceCounterOut(BaseModel):
    namespace_code: str
    next_value: int
    model_config = ConfigDict(from_attributes=True)


class AllocatedIdentifierOut(BaseModel):
    namespace_code: str
    identifier: str
