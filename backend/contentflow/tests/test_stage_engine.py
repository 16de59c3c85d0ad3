import pytest

from contentflow import models
from contentflow.schemas import AssignmentRequest
from contentflow.services import content_records, review_gateway, stage_engine
from contentflow.services.errors import ActorNotAssigned, AlreadyDissolved, InvalidStateTransition

Stage = models.ProductionStage
Role = models.TeamRole


@pytest.fixture
def crew(make_user):
    return {
        "admin": make_user(Role.ADMIN),
        "videographer": make_user(Role.VIDEOGRAPHER),
        "editor": make_user(Role.EDITOR),
        "posting_manager": make_user(Role.POSTING_MANAGER),
    }


@pytest.fixture
def staffed_record(db_session, crew):
    record = content_records.create_submission(db_session, title="Product walkthrough")
    review_gateway.approve(
        db_session,
        record.id,
        reviewer_id=crew["admin"].id,
        assignments=[
            AssignmentRequest(role=models.AssignmentRole.VIDEOGRAPHER, assignee_id=crew["videographer"].id),
            AssignmentRequest(role=models.AssignmentRole.EDITOR, assignee_id=crew["editor"].id),
            AssignmentRequest(role=models.AssignmentRole.POSTING_MANAGER, assignee_id=crew["posting_manager"].id),
        ],
    )
    db_session.commit()
    return record.id


def _move(db, record_id, stage, user, note=None):
    record = stage_engine.advance_stage(db, record_id, stage, Role(user.role), actor_id=user.id, note=note)
    db.commit()
    return record


def test_first_assignment_starts_planning(db_session, staffed_record):
    record = content_records.get_record(db_session, staffed_record)

    assert record.stage == Stage.PLANNING
    assert set(record.assignees) == {"videographer", "editor", "posting_manager"}


def test_full_production_path(db_session, staffed_record, crew):
    _move(db_session, staffed_record, Stage.SHOOTING, crew["videographer"])
    _move(db_session, staffed_record, Stage.SHOOT_REVIEW, crew["videographer"])
    _move(db_session, staffed_record, Stage.EDITING, crew["admin"])
    _move(db_session, staffed_record, Stage.EDIT_REVIEW, crew["editor"])
    _move(db_session, staffed_record, Stage.READY_TO_POST, crew["admin"])
    record = _move(db_session, staffed_record, Stage.POSTED, crew["posting_manager"])

    assert record.stage == Stage.POSTED
    assert record.posted_at is not None
    assert record.stage_entered_at is not None


def test_role_holder_cannot_pass_review_gate(db_session, staffed_record, crew):
    _move(db_session, staffed_record, Stage.SHOOTING, crew["videographer"])
    _move(db_session, staffed_record, Stage.SHOOT_REVIEW, crew["videographer"])

    with pytest.raises(InvalidStateTransition):
        _move(db_session, staffed_record, Stage.EDITING, crew["videographer"])


def test_stages_cannot_be_skipped(db_session, staffed_record, crew):
    with pytest.raises(InvalidStateTransition):
        _move(db_session, staffed_record, Stage.EDITING, crew["admin"])


def test_role_cannot_act_outside_its_edges(db_session, staffed_record, crew):
    with pytest.raises(InvalidStateTransition):
        _move(db_session, staffed_record, Stage.SHOOTING, crew["editor"])


def test_gate_rejection_requires_note(db_session, staffed_record, crew):
    _move(db_session, staffed_record, Stage.SHOOTING, crew["videographer"])
    _move(db_session, staffed_record, Stage.SHOOT_REVIEW, crew["videographer"])

    with pytest.raises(ValueError):
        _move(db_session, staffed_record, Stage.SHOOTING, crew["admin"])
    db_session.rollback()

    record = _move(db_session, staffed_record, Stage.SHOOTING, crew["admin"], note="audio clipped")
    assert record.stage == Stage.SHOOTING


def test_unassigned_role_holder_is_refused(db_session, staffed_record, make_user):
    other = make_user(Role.VIDEOGRAPHER)

    with pytest.raises(ActorNotAssigned):
        _move(db_session, staffed_record, Stage.SHOOTING, other)


def test_pending_record_cannot_move(db_session, crew):
    record = content_records.create_submission(db_session, title="Unreviewed")
    db_session.commit()

    with pytest.raises(InvalidStateTransition):
        _move(db_session, record.id, Stage.PLANNING, crew["admin"])


def test_dissolved_record_cannot_move(db_session, crew):
    record = content_records.create_submission(db_session, title="Abandoned")
    record.status = models.ReviewStatus.REJECTED
    record.rejection_count = 5
    record.is_dissolved = True
    db_session.commit()

    with pytest.raises(AlreadyDissolved):
        _move(db_session, record.id, Stage.PLANNING, crew["admin"])


def test_available_transitions_by_role(db_session, staffed_record, crew):
    _move(db_session, staffed_record, Stage.SHOOTING, crew["videographer"])
    _move(db_session, staffed_record, Stage.SHOOT_REVIEW, crew["videographer"])
    record = content_records.get_record(db_session, staffed_record)

    assert set(stage_engine.available_transitions(record, Role.ADMIN)) == {Stage.EDITING, Stage.SHOOTING}
    assert stage_engine.available_transitions(record, Role.VIDEOGRAPHER) == []


def test_only_admin_owns_gate_edges():
    for gate, (forward, back) in stage_engine.REVIEW_GATES.items():
        assert stage_engine.STAGE_EDGES[(gate, forward)].roles == frozenset({Role.ADMIN})
        assert stage_engine.STAGE_EDGES[(gate, back)].requires_note
