import uuid
from enum import StrEnum
import sqlalchemy as sa
from sqlalchemy import (
    Column,
    String,
    Boolean,
    DateTime,
    ForeignKey,
    JSON,
    Integer,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from .database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReviewStatus(StrEnum):
    """Review state of a submission.

    ``DISSOLVED`` is never persisted in ``content_records.status``; it is
    derived from the ``is_dissolved`` latch on a rejected record.
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    DISSOLVED = "dissolved"


class ProductionStage(StrEnum):
    NOT_STARTED = "not_started"
    PLANNING = "planning"
    SHOOTING = "shooting"
    SHOOT_REVIEW = "shoot_review"
    EDITING = "editing"
    EDIT_REVIEW = "edit_review"
    READY_TO_POST = "ready_to_post"
    POSTED = "posted"


class TeamRole(StrEnum):
    ADMIN = "admin"
    SCRIPT_WRITER = "script_writer"
    VIDEOGRAPHER = "videographer"
    EDITOR = "editor"
    POSTING_MANAGER = "posting_manager"


class AssignmentRole(StrEnum):
    VIDEOGRAPHER = "videographer"
    EDITOR = "editor"
    POSTING_MANAGER = "posting_manager"


def _enum_column(enum_cls):
    return sa.Enum(
        enum_cls,
        native_enum=False,
        length=32,
        validate_strings=True,
        values_callable=lambda members: [member.value for member in members],
    )


class User(Base):
    __tablename__ = "users"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String, unique=True, nullable=False)
    full_name = Column(String)
    role = Column(_enum_column(TeamRole), nullable=False, default=TeamRole.SCRIPT_WRITER)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    assignments = relationship("ContentAssignment", back_populates="user", foreign_keys="ContentAssignment.user_id")

    @property
    def is_admin(self) -> bool:
        return self.role == TeamRole.ADMIN


class ContentProfile(Base):
    """Publishing profile whose code doubles as the identifier namespace."""

    __tablename__ = "content_profiles"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code = Column(String(16), unique=True, nullable=False)
    name = Column(String, nullable=False)
    platform = Column(String)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class ContentRecord(Base):
    __tablename__ = "content_records"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String, nullable=False)
    script_body = Column(Text)
    namespace_code = Column(String(16))
    submitted_by_id = Column(UUID(as_uuid=True), ForeignKey("users.id"))

    status = Column(_enum_column(ReviewStatus), nullable=False, default=ReviewStatus.PENDING)
    stage = Column(_enum_column(ProductionStage), nullable=False, default=ProductionStage.NOT_STARTED)
    content_code = Column(String(64), unique=True, nullable=True)

    rejection_count = Column(Integer, nullable=False, default=0)
    disapproval_count = Column(Integer, nullable=False, default=0)
    is_dissolved = Column(Boolean, nullable=False, default=False)
    dissolution_reason = Column(Text)
    disapproval_reason = Column(Text)
    review_feedback = Column(Text)

    reviewed_by_id = Column(UUID(as_uuid=True), ForeignKey("users.id"))
    reviewed_at = Column(DateTime(timezone=True))
    last_disapproved_at = Column(DateTime(timezone=True))
    stage_entered_at = Column(DateTime(timezone=True))
    posted_at = Column(DateTime(timezone=True))

    is_deleted = Column(Boolean, nullable=False, default=False)
    deleted_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    submitted_by = relationship("User", foreign_keys=[submitted_by_id])
    assignments = relationship(
        "ContentAssignment",
        back_populates="record",
        cascade="all, delete-orphan",
        order_by="ContentAssignment.role",
    )
    events = relationship(
        "ContentEvent",
        back_populates="record",
        cascade="all, delete-orphan",
        order_by="ContentEvent.sequence",
    )

    __table_args__ = (
        sa.CheckConstraint("rejection_count >= 0", name="ck_content_records_rejection_count"),
        sa.CheckConstraint("disapproval_count >= 0", name="ck_content_records_disapproval_count"),
        sa.Index("ix_content_records_status_stage", "status", "stage"),
    )

    @property
    def review_state(self) -> ReviewStatus:
        if self.is_dissolved:
            return ReviewStatus.DISSOLVED
        return ReviewStatus(self.status)

    @property
    def assignees(self) -> dict[str, uuid.UUID]:
        return {AssignmentRole(a.role).value: a.user_id for a in self.assignments}


class ContentAssignment(Base):
    __tablename__ = "content_assignments"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    record_id = Column(UUID(as_uuid=True), ForeignKey("content_records.id", ondelete="CASCADE"), nullable=False)
    role = Column(_enum_column(AssignmentRole), nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    assigned_by_id = Column(UUID(as_uuid=True), ForeignKey("users.id"))
    assigned_at = Column(DateTime(timezone=True), default=_utcnow)

    record = relationship("ContentRecord", back_populates="assignments")
    user = relationship("User", back_populates="assignments", foreign_keys=[user_id])

    __table_args__ = (
        sa.UniqueConstraint("record_id", "role", name="uq_content_assignments_record_role"),
        sa.Index("ix_content_assignments_user_role", "user_id", "role"),
    )


class SequenceCounter(Base):
    __tablename__ = "sequence_counters"
    namespace_code = Column(String(16), primary_key=True)
    next_value = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class UsedContentCode(Base):
    """Ledger of every content code ever issued; rows are never removed."""

    __tablename__ = "used_content_codes"
    code = Column(String(64), primary_key=True)
    namespace_code = Column(String(16), nullable=False, index=True)
    record_id = Column(UUID(as_uuid=True), ForeignKey("content_records.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class ContentEvent(Base):
    __tablename__ = "content_events"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    record_id = Column(UUID(as_uuid=True), ForeignKey("content_records.id", ondelete="CASCADE"), nullable=False)
    sequence = Column(Integer, nullable=False)
    event_type = Column(String, nullable=False)
    payload = Column(JSON, default=dict)
    actor_id = Column(UUID(as_uuid=True), ForeignKey("users.id"))
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    record = relationship("ContentRecord", back_populates="events")
    actor = relationship("User")

    __table_args__ = (
        sa.UniqueConstraint("record_id", "sequence", name="uq_content_events_record_sequence"),
    )
