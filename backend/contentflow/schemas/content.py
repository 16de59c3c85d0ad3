"""Schemas for content review, production stages and assignment."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..models import AssignmentRole, ProductionStage, ReviewStatus


class ContentCreate(BaseModel):
    title: str = Field(min_length=1)
    script_body: str | None = None
    namespace_code: str | None = Field(default=None, max_length=16)


class AssignmentRequest(BaseModel):
    role: AssignmentRole
    assignee_id: UUID | None = None
    candidate_pool: list[UUID] | None = None
    auto: bool = False

    @model_validator(mode="after")
    def _exactly_one_mode(self) -> "AssignmentRequest":
        chosen = [
            self.assignee_id is not None,
            self.candidate_pool is not None,
            self.auto,
        ]
        if sum(chosen) != 1:
            raise ValueError("provide exactly one of assignee_id, candidate_pool or auto")
        return self


class ApproveRequest(BaseModel):
    namespace_code: str | None = Field(default=None, max_length=16)
    feedback: str | None = None
    assignments: list[AssignmentRequest] = Field(default_factory=list)


class RejectRequest(BaseModel):
    feedback: str | None = None


class DisapproveRequest(BaseModel):
    reason: str = Field(min_length=1)

    @field_validator("reason")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("reason must not be blank")
        return value.strip()


class ResubmitRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1)
    script_body: str | None = None


class StageChangeRequest(BaseModel):
    stage: ProductionStage
    note: str | None = None


class AssignmentOut(BaseModel):
    role: AssignmentRole
    user_id: UUID
    assigned_by_id: UUID | None = None
    assigned_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class ContentRecordOut(BaseModel):
    id: UUID
    title: str
    script_body: str | None = None
    namespace_code: str | None = None
    submitted_by_id: UUID | None = None
    status: ReviewStatus
    review_state: ReviewStatus
    stage: ProductionStage
    content_code: str | None = None
    rejection_count: int
    disapproval_count: int
    is_dissolved: bool
    dissolution_reason: str | None = None
    disapproval_reason: str | None = None
    review_feedback: str | None = None
    reviewed_by_id: UUID | None = None
    reviewed_at: datetime | None = None
    last_disapproved_at: datetime | None = None
    stage_entered_at: datetime | None = None
    posted_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    assignments: list[AssignmentOut] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class ContentEventOut(BaseModel):
    id: UUID
    record_id: UUID
    sequence: int
    event_type: str
    payload: dict[str, Any] = Field(default_factory=dict)
    actor_id: UUID | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class StageOptionsOut(BaseModel):
    stage: ProductionStage
    available: list[ProductionStage]
