import pytest

from contentflow import models
from contentflow.eventlog import list_content_events
from contentflow.services import assignments, content_records, review_gateway, stage_engine
from contentflow.services.errors import AlreadyDissolved, InvalidStateTransition, RecordNotFound


def _submit(db, namespace="ACME", **kwargs):
    record = content_records.create_submission(
        db, title=kwargs.pop("title", "Launch teaser"), namespace_code=namespace, **kwargs
    )
    db.commit()
    return record.id


def _set(db, record_id, **values):
    db.query(models.ContentRecord).filter_by(id=record_id).update(values)
    db.commit()


def test_approve_mints_code_and_keeps_early_stage(db_session, make_profile, make_user):
    make_profile("ACME")
    admin = make_user(models.TeamRole.ADMIN)
    record_id = _submit(db_session)

    record = review_gateway.approve(db_session, record_id, reviewer_id=admin.id, feedback="great hook")
    db_session.commit()

    assert record.review_state is models.ReviewStatus.APPROVED
    assert record.stage == models.ProductionStage.NOT_STARTED
    assert record.content_code == "ACME-1001"
    assert record.reviewed_by_id == admin.id
    ledger = db_session.get(models.UsedContentCode, "ACME-1001")
    assert ledger.record_id == record_id


def test_second_approval_does_not_mint_again(db_session, make_profile):
    make_profile("ACME")
    record_id = _submit(db_session)

    first = review_gateway.approve(db_session, record_id).content_code
    db_session.commit()
    second = review_gateway.approve(db_session, record_id).content_code
    db_session.commit()

    assert first == second == "ACME-1001"
    assert db_session.get(models.SequenceCounter, "ACME").next_value == 1002
    approvals = [e for e in list_content_events(db_session, record_id) if e.event_type == "approved"]
    assert len(approvals) == 1


def test_approval_namespace_override(db_session, make_profile):
    make_profile("ACME")
    record_id = _submit(db_session, namespace=None)

    record = review_gateway.approve(db_session, record_id, namespace_code="acme")

    assert record.content_code == "ACME-1001"
    assert record.namespace_code == "ACME"


def test_unregistered_namespace_is_coded_in_general_namespace(db_session):
    record_id = _submit(db_session, namespace="ZZZ")

    record = review_gateway.approve(db_session, record_id)

    assert record.content_code == "GEN-1001"


def test_four_rejections_do_not_dissolve(db_session):
    record_id = _submit(db_session)
    for _ in range(4):
        review_gateway.reject(db_session, record_id, feedback="weak opening")
        review_gateway.resubmit(db_session, record_id)
        db_session.commit()

    record = content_records.get_record(db_session, record_id)
    assert record.rejection_count == 4
    assert record.is_dissolved is False
    assert record.review_state is models.ReviewStatus.PENDING


def test_fifth_rejection_dissolves_and_sixth_is_refused(db_session):
    record_id = _submit(db_session)
    for _ in range(4):
        review_gateway.reject(db_session, record_id)
        review_gateway.resubmit(db_session, record_id)
    db_session.commit()

    record = review_gateway.reject(db_session, record_id, feedback="still off-brand")
    db_session.commit()

    assert record.rejection_count == 5
    assert record.status == models.ReviewStatus.REJECTED
    assert record.is_dissolved is True
    assert record.review_state is models.ReviewStatus.DISSOLVED
    assert record.dissolution_reason == "Script rejected 5 times - project automatically dissolved"

    with pytest.raises(AlreadyDissolved) as excinfo:
        review_gateway.reject(db_session, record_id)
    assert "rejected 5 times and is permanently closed" in str(excinfo.value)
    db_session.rollback()
    assert content_records.get_record(db_session, record_id).rejection_count == 5


def test_rejection_from_prior_count_of_four(db_session):
    record_id = _submit(db_session)
    _set(db_session, record_id, rejection_count=4)

    record = review_gateway.reject(db_session, record_id)

    assert record.rejection_count == 5
    assert record.status == models.ReviewStatus.REJECTED
    assert record.is_dissolved is True
    event_types = [e.event_type for e in list_content_events(db_session, record_id)]
    assert event_types[-2:] == ["rejected", "dissolved"]


@pytest.mark.parametrize("operation", ["approve", "resubmit", "disapprove"])
def test_dissolved_record_refuses_every_decision(db_session, operation):
    record_id = _submit(db_session)
    _set(
        db_session,
        record_id,
        status=models.ReviewStatus.REJECTED,
        rejection_count=5,
        is_dissolved=True,
    )

    with pytest.raises(AlreadyDissolved):
        if operation == "disapprove":
            review_gateway.disapprove(db_session, record_id, "needs rework")
        else:
            getattr(review_gateway, operation)(db_session, record_id)


def test_reject_requires_pending(db_session):
    record_id = _submit(db_session)
    review_gateway.approve(db_session, record_id)
    db_session.commit()

    with pytest.raises(InvalidStateTransition):
        review_gateway.reject(db_session, record_id)


def test_disapprove_from_editing_resets_stage(db_session, make_profile):
    make_profile("ACME")
    record_id = _submit(db_session)
    review_gateway.approve(db_session, record_id)
    db_session.commit()
    _set(db_session, record_id, stage=models.ProductionStage.EDITING)

    record = review_gateway.disapprove(db_session, record_id, "needs rework")
    db_session.commit()

    assert record.review_state is models.ReviewStatus.PENDING
    assert record.stage == models.ProductionStage.NOT_STARTED
    assert record.disapproval_count == 1
    assert record.rejection_count == 0
    assert record.disapproval_reason == "needs rework"
    assert record.last_disapproved_at is not None
    assert record.content_code == "ACME-1001"


def test_disapprove_keeps_planning_stage(db_session):
    record_id = _submit(db_session)
    review_gateway.approve(db_session, record_id)
    db_session.commit()
    _set(db_session, record_id, stage=models.ProductionStage.PLANNING)

    record = review_gateway.disapprove(db_session, record_id, "tighten the script")

    assert record.stage == models.ProductionStage.PLANNING


def test_disapproval_keeps_assignments(db_session, make_profile, make_user):
    make_profile("ACME")
    videographer = make_user(models.TeamRole.VIDEOGRAPHER)
    record_id = _submit(db_session)
    review_gateway.approve(db_session, record_id)
    assignments.assign_role(
        db_session, record_id, models.AssignmentRole.VIDEOGRAPHER, assignee_id=videographer.id
    )
    db_session.commit()
    stage_engine.advance_stage(
        db_session,
        record_id,
        models.ProductionStage.SHOOTING,
        models.TeamRole.VIDEOGRAPHER,
        actor_id=videographer.id,
    )
    db_session.commit()

    record = review_gateway.disapprove(db_session, record_id, "reshoot the intro")
    db_session.commit()

    assert record.assignees == {"videographer": videographer.id}
    assert record.stage == models.ProductionStage.NOT_STARTED
    assert record.content_code == "ACME-1001"


def test_reapproval_after_disapproval_keeps_original_code(db_session, make_profile):
    make_profile("ACME")
    record_id = _submit(db_session)
    review_gateway.approve(db_session, record_id)
    review_gateway.disapprove(db_session, record_id, "needs rework")
    db_session.commit()

    record = review_gateway.approve(db_session, record_id)

    assert record.content_code == "ACME-1001"
    assert db_session.get(models.SequenceCounter, "ACME").next_value == 1002


def test_disapprove_requires_approved_record(db_session):
    record_id = _submit(db_session)

    with pytest.raises(InvalidStateTransition):
        review_gateway.disapprove(db_session, record_id, "needs rework")


def test_disapprove_requires_reason(db_session):
    record_id = _submit(db_session)
    review_gateway.approve(db_session, record_id)
    db_session.commit()

    with pytest.raises(ValueError):
        review_gateway.disapprove(db_session, record_id, "   ")


def test_resubmit_revises_script(db_session):
    record_id = _submit(db_session)
    review_gateway.reject(db_session, record_id, feedback="too long")
    db_session.commit()

    record = review_gateway.resubmit(db_session, record_id, title="Launch teaser v2", script_body="shorter")

    assert record.review_state is models.ReviewStatus.PENDING
    assert record.title == "Launch teaser v2"
    assert record.script_body == "shorter"
    assert record.rejection_count == 1


def test_resubmit_requires_rejection(db_session):
    record_id = _submit(db_session)

    with pytest.raises(InvalidStateTransition):
        review_gateway.resubmit(db_session, record_id)


def test_decisions_on_deleted_record_are_not_found(db_session):
    record_id = _submit(db_session)
    content_records.soft_delete_record(db_session, record_id)
    db_session.commit()

    with pytest.raises(RecordNotFound):
        review_gateway.approve(db_session, record_id)


def test_transition_table_is_closed():
    assert review_gateway.REVIEW_TRANSITIONS[models.ReviewStatus.DISSOLVED] == frozenset()
    for source, target in review_gateway.DECISION_EDGES.values():
        assert review_gateway.can_transition(source, target)
