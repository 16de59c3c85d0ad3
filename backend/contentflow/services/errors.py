"""Typed failures raised by the workflow services."""

from __future__ import annotations

from uuid import UUID

# purpose: shared business-rule failures surfaced synchronously to callers
# status: active


class WorkflowError(RuntimeError):
    """Base error for content workflow operations."""

    code = "workflow_error"


class RecordNotFound(WorkflowError):
    """Raised when a record is unknown or has been logically deleted."""

    code = "record_not_found"

    def __init__(self, record_id: UUID | str) -> None:
        super().__init__(f"content record {record_id} not found")
        self.record_id = record_id


class InvalidStateTransition(WorkflowError):
    """Raised when an operation is attempted from a disallowed source state."""

    code = "invalid_state_transition"


class AlreadyDissolved(WorkflowError):
    """Raised on any mutation of a dissolved record."""

    code = "already_dissolved"

    def __init__(self, record_id: UUID | str, rejection_count: int) -> None:
        super().__init__(
            f"this project has been rejected {rejection_count} times and is permanently closed"
        )
        self.record_id = record_id
        self.rejection_count = rejection_count


class NoEligibleAssignee(WorkflowError):
    """Raised when no candidate can take an assignment."""

    code = "no_eligible_assignee"


class ActorNotAssigned(WorkflowError):
    """Raised when a role-holder acts on a record they are not assigned to."""

    code = "actor_not_assigned"


class IdentifierAllocationExhausted(WorkflowError):
    """Raised when both the counter path and the fallback identifier collide."""

    code = "identifier_allocation_exhausted"
