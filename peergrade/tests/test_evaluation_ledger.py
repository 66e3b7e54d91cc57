"""
Tests for the Evaluation Ledger

Validation order, evaluator-only access, grading status gate and the
rolling edit window.
"""
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import func, select, update
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from peergrade.errors import (
    EditWindowExpiredError, GradingNotOpenError, InternalError, InvalidInputError,
    NotAuthorizedError, NotFoundError
)
from peergrade.orm.deliverable import Deliverable, DeliverableStatus
from peergrade.orm.evaluation import Evaluation
from peergrade.orm.jury_assignment import JuryAssignment, AssignmentStatus
from peergrade.services.evaluation_service import EvaluationLedger
from peergrade.tests.conftest import subject_of


async def count_evaluations(db: AsyncSession) -> int:
    result = await db.execute(select(func.count(Evaluation.id)))
    return result.scalar_one()


@pytest_asyncio.fixture
async def juror(students):
    return students[0]


@pytest_asyncio.fixture
async def assignment(db_session: AsyncSession, open_deliverable, juror) -> JuryAssignment:
    assignment = JuryAssignment(
        deliverable_id=open_deliverable.id,
        jury_member_id=juror.id,
        status=AssignmentStatus.assigned,
    )
    db_session.add(assignment)
    await db_session.commit()
    await db_session.refresh(assignment)
    db_session.expunge(assignment)
    return assignment


@pytest.fixture
def ledger(db_session, settings, clock) -> EvaluationLedger:
    return EvaluationLedger(db_session, settings, clock=clock)


# ==========================================
# Accepted submissions
# ==========================================

@pytest.mark.asyncio
@pytest.mark.parametrize("score", [1, 10, 7.5, "4", "9.25"])
async def test_scores_within_range_are_accepted(ledger, assignment, juror, score):
    evaluation = await ledger.submit_evaluation(assignment.id, score, "Solid work", subject_of(juror))

    assert evaluation.score_decimal == Decimal(str(score)).quantize(Decimal("0.01"))
    assert evaluation.feedback == "Solid work"


@pytest.mark.asyncio
async def test_submission_marks_assignment_submitted(db_session, ledger, assignment, juror, clock):
    evaluation = await ledger.submit_evaluation(assignment.id, 8, None, subject_of(juror))

    status = await db_session.scalar(
        select(JuryAssignment.status).where(JuryAssignment.id == assignment.id)
    )
    assert status == AssignmentStatus.submitted
    assert evaluation.created_at == clock.now()
    assert evaluation.updated_at == clock.now()
    assert evaluation.feedback is None


@pytest.mark.asyncio
async def test_extra_decimals_are_rounded_half_up(ledger, assignment, juror):
    evaluation = await ledger.submit_evaluation(assignment.id, "7.125", None, subject_of(juror))
    assert evaluation.score_decimal == Decimal("7.13")


@pytest.mark.asyncio
async def test_assignment_id_may_be_a_numeric_string(ledger, assignment, juror):
    evaluation = await ledger.submit_evaluation(str(assignment.id), 6, None, subject_of(juror))
    assert evaluation.jury_assignment_id == assignment.id


# ==========================================
# Rejected submissions
# ==========================================

@pytest.mark.asyncio
async def test_score_above_range_creates_nothing(db_session, ledger, assignment, juror):
    with pytest.raises(InvalidInputError):
        await ledger.submit_evaluation(assignment.id, 11, "Too generous", subject_of(juror))

    assert await count_evaluations(db_session) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("score", [0, 0.99, 10.01, -3, "ten", None, "", True, float("nan")])
async def test_invalid_scores(db_session, ledger, assignment, juror, score):
    with pytest.raises(InvalidInputError) as exc_info:
        await ledger.submit_evaluation(assignment.id, score, None, subject_of(juror))

    assert exc_info.value.code == "INVALID_INPUT"
    assert await count_evaluations(db_session) == 0


@pytest.mark.asyncio
async def test_every_violation_is_reported(ledger, juror):
    with pytest.raises(InvalidInputError) as exc_info:
        await ledger.submit_evaluation(None, 42, 12345, subject_of(juror))

    violations = exc_info.value.violations
    assert "juryAssignmentId is required" in violations
    assert "score must be a number between 1 and 10" in violations
    assert "feedback must be text" in violations


@pytest.mark.asyncio
@pytest.mark.parametrize("assignment_id", [0, -1, "abc", 1.5, "²", "①", "++1"])
async def test_invalid_assignment_id(ledger, juror, assignment_id):
    with pytest.raises(InvalidInputError):
        await ledger.submit_evaluation(assignment_id, 5, None, subject_of(juror))


@pytest.mark.asyncio
async def test_unknown_assignment(ledger, juror):
    with pytest.raises(NotFoundError):
        await ledger.submit_evaluation(9999, 5, None, subject_of(juror))


@pytest.mark.asyncio
async def test_score_checked_before_assignment_lookup(ledger, juror):
    with pytest.raises(InvalidInputError):
        await ledger.submit_evaluation(9999, 11, None, subject_of(juror))


@pytest.mark.asyncio
async def test_only_the_assigned_juror_may_submit(db_session, ledger, assignment, students, owner, professor):
    for outsider in (students[1], owner, professor):
        with pytest.raises(NotAuthorizedError):
            await ledger.submit_evaluation(assignment.id, 5, None, subject_of(outsider))

    assert await count_evaluations(db_session) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [DeliverableStatus.pending, DeliverableStatus.grading_closed])
async def test_submission_requires_open_grading(db_session, ledger, assignment, open_deliverable, juror, status):
    await db_session.execute(
        update(Deliverable).where(Deliverable.id == open_deliverable.id).values(status=status)
    )
    await db_session.commit()

    with pytest.raises(GradingNotOpenError) as exc_info:
        await ledger.submit_evaluation(assignment.id, 5, None, subject_of(juror))

    assert exc_info.value.status_code == 409
    assert exc_info.value.details["status"] == status.value
    assert await count_evaluations(db_session) == 0


# ==========================================
# Edit window
# ==========================================

@pytest.mark.asyncio
async def test_edit_within_window_overwrites(db_session, ledger, assignment, juror, clock):
    first = await ledger.submit_evaluation(assignment.id, 5, "First pass", subject_of(juror))
    clock.advance(hours=23, minutes=59)

    second = await ledger.submit_evaluation(assignment.id, 8, "Second pass", subject_of(juror))

    assert second.id == first.id
    assert second.score_decimal == Decimal("8.00")
    assert second.feedback == "Second pass"
    assert second.updated_at == clock.now()
    assert await count_evaluations(db_session) == 1


@pytest.mark.asyncio
async def test_edit_at_window_boundary_is_refused(db_session, ledger, assignment, juror, clock):
    evaluation = await ledger.submit_evaluation(assignment.id, 5, "Original", subject_of(juror))
    clock.advance(hours=24)

    with pytest.raises(EditWindowExpiredError) as exc_info:
        await ledger.submit_evaluation(assignment.id, 9, "Late change", subject_of(juror))

    assert exc_info.value.status_code == 403
    assert exc_info.value.code == "EDIT_WINDOW_EXPIRED"
    await db_session.refresh(evaluation)
    assert evaluation.score_decimal == Decimal("5.00")
    assert evaluation.feedback == "Original"


@pytest.mark.asyncio
async def test_each_edit_restarts_the_window(ledger, assignment, juror, clock):
    await ledger.submit_evaluation(assignment.id, 5, None, subject_of(juror))
    clock.advance(hours=20)
    await ledger.submit_evaluation(assignment.id, 6, None, subject_of(juror))
    clock.advance(hours=20)

    # 40 hours after the first write, 20 after the last
    evaluation = await ledger.submit_evaluation(assignment.id, 7, None, subject_of(juror))
    assert evaluation.score_decimal == Decimal("7.00")

    clock.advance(hours=25)
    with pytest.raises(EditWindowExpiredError):
        await ledger.submit_evaluation(assignment.id, 8, None, subject_of(juror))


@pytest.mark.asyncio
async def test_configured_window_length(db_session, settings, clock, assignment, juror):
    ledger = EvaluationLedger(db_session, settings.with_overrides(edit_window_hours=1), clock=clock)
    await ledger.submit_evaluation(assignment.id, 5, None, subject_of(juror))
    clock.advance(minutes=61)

    with pytest.raises(EditWindowExpiredError) as exc_info:
        await ledger.submit_evaluation(assignment.id, 6, None, subject_of(juror))

    assert exc_info.value.details["window_hours"] == 1


@pytest.mark.asyncio
async def test_can_edit_reflects_window(ledger, assignment, juror, clock):
    evaluation = await ledger.submit_evaluation(assignment.id, 5, None, subject_of(juror))

    assert ledger.can_edit(evaluation) is True
    clock.advance(hours=24)
    assert ledger.can_edit(evaluation) is False


# ==========================================
# Reads
# ==========================================

@pytest.mark.asyncio
async def test_juror_reads_own_evaluation(ledger, assignment, juror):
    created = await ledger.submit_evaluation(assignment.id, 5, "Readable", subject_of(juror))

    fetched = await ledger.get_evaluation(created.id, subject_of(juror))

    assert fetched.id == created.id
    assert fetched.feedback == "Readable"


@pytest.mark.asyncio
async def test_nobody_else_reads_an_evaluation(ledger, assignment, juror, students, owner, professor):
    created = await ledger.submit_evaluation(assignment.id, 5, None, subject_of(juror))

    for outsider in (students[1], owner, professor):
        with pytest.raises(NotAuthorizedError):
            await ledger.get_evaluation(created.id, subject_of(outsider))


@pytest.mark.asyncio
async def test_get_unknown_evaluation(ledger, juror):
    with pytest.raises(NotFoundError):
        await ledger.get_evaluation(12345, subject_of(juror))


@pytest.mark.asyncio
async def test_list_assignments_returns_only_own(db_session, ledger, assignment, juror, students):
    other = JuryAssignment(
        deliverable_id=assignment.deliverable_id,
        jury_member_id=students[1].id,
        status=AssignmentStatus.assigned,
    )
    db_session.add(other)
    await db_session.commit()

    mine = await ledger.list_assignments(subject_of(juror))

    assert [a.id for a in mine] == [assignment.id]
    assert mine[0].deliverable.project is not None


# ==========================================
# Storage failures
# ==========================================

@pytest.mark.asyncio
async def test_storage_failure_rolls_back_submission(db_session, ledger, assignment, juror, monkeypatch):
    async def failing_flush(*args, **kwargs):
        raise OperationalError("INSERT INTO evaluations", {}, Exception("database is locked"))

    monkeypatch.setattr(db_session, "flush", failing_flush)

    with pytest.raises(InternalError) as exc_info:
        await ledger.submit_evaluation(assignment.id, 7, "Solid work", subject_of(juror))

    monkeypatch.undo()
    assert exc_info.value.status_code == 500
    assert list(exc_info.value.details) == ["log_id"]
    assert await count_evaluations(db_session) == 0
    status = await db_session.scalar(
        select(JuryAssignment.status).where(JuryAssignment.id == assignment.id)
    )
    assert status == AssignmentStatus.assigned
