"""
Unit Tests for the Deliverable Lifecycle State Machine

pending -> open_for_grading -> grading_closed, owner only, no way back.
"""
import pytest
from sqlalchemy import select

from peergrade.errors import GradingNotOpenError, NotAuthorizedError, NotFoundError
from peergrade.orm.deliverable import Deliverable, DeliverableStatus
from peergrade.state_machines.deliverable_lifecycle import DeliverableLifecycle
from peergrade.tests.conftest import make_deliverable, subject_of


async def stored_status(db, deliverable_id: int) -> DeliverableStatus:
    return await db.scalar(select(Deliverable.status).where(Deliverable.id == deliverable_id))


# ==========================================
# Transition table
# ==========================================

def test_valid_transitions():
    assert DeliverableLifecycle.is_valid_transition(
        DeliverableStatus.pending, DeliverableStatus.open_for_grading
    )
    assert DeliverableLifecycle.is_valid_transition(
        DeliverableStatus.open_for_grading, DeliverableStatus.grading_closed
    )


@pytest.mark.parametrize("from_state,to_state", [
    (DeliverableStatus.pending, DeliverableStatus.grading_closed),
    (DeliverableStatus.open_for_grading, DeliverableStatus.pending),
    (DeliverableStatus.grading_closed, DeliverableStatus.open_for_grading),
    (DeliverableStatus.grading_closed, DeliverableStatus.pending),
])
def test_invalid_transitions(from_state, to_state):
    assert not DeliverableLifecycle.is_valid_transition(from_state, to_state)


def test_grading_closed_is_terminal():
    assert DeliverableLifecycle.ALLOWED_TRANSITIONS[DeliverableStatus.grading_closed] == []


def test_only_open_deliverables_accept_submissions():
    assert DeliverableLifecycle.accepts_submissions(Deliverable(status=DeliverableStatus.open_for_grading))
    assert not DeliverableLifecycle.accepts_submissions(Deliverable(status=DeliverableStatus.pending))
    assert not DeliverableLifecycle.accepts_submissions(Deliverable(status=DeliverableStatus.grading_closed))


# ==========================================
# Transitions against the database
# ==========================================

@pytest.mark.asyncio
async def test_full_lifecycle(db_session, clock, owner, deliverable):
    lifecycle = DeliverableLifecycle(db_session, clock=clock)

    opened = await lifecycle.open_for_grading(deliverable.id, subject_of(owner))
    assert opened.status == DeliverableStatus.open_for_grading
    assert opened.updated_at == clock.now()

    clock.advance(days=2)
    closed = await lifecycle.close_grading(deliverable.id, subject_of(owner))
    assert closed.status == DeliverableStatus.grading_closed
    assert await stored_status(db_session, deliverable.id) == DeliverableStatus.grading_closed


@pytest.mark.asyncio
async def test_opening_twice_is_a_no_op(db_session, clock, owner, deliverable):
    lifecycle = DeliverableLifecycle(db_session, clock=clock)
    await lifecycle.open_for_grading(deliverable.id, subject_of(owner))

    again = await lifecycle.open_for_grading(deliverable.id, subject_of(owner))

    assert again.status == DeliverableStatus.open_for_grading


@pytest.mark.asyncio
async def test_closing_a_pending_deliverable_is_refused(db_session, clock, owner, deliverable):
    lifecycle = DeliverableLifecycle(db_session, clock=clock)

    with pytest.raises(GradingNotOpenError) as exc_info:
        await lifecycle.close_grading(deliverable.id, subject_of(owner))

    details = exc_info.value.details
    assert details["status"] == "pending"
    assert details["requested"] == "grading_closed"
    assert details["allowed"] == ["open_for_grading"]
    assert await stored_status(db_session, deliverable.id) == DeliverableStatus.pending


@pytest.mark.asyncio
async def test_reopening_after_close_is_refused(db_session, clock, owner, project):
    closed = await make_deliverable(db_session, project, DeliverableStatus.grading_closed)
    lifecycle = DeliverableLifecycle(db_session, clock=clock)

    with pytest.raises(GradingNotOpenError):
        await lifecycle.open_for_grading(closed.id, subject_of(owner))

    assert await stored_status(db_session, closed.id) == DeliverableStatus.grading_closed


@pytest.mark.asyncio
async def test_only_owner_moves_the_lifecycle(db_session, clock, students, professor, deliverable):
    lifecycle = DeliverableLifecycle(db_session, clock=clock)

    for outsider in (students[0], professor):
        with pytest.raises(NotAuthorizedError):
            await lifecycle.open_for_grading(deliverable.id, subject_of(outsider))

    assert await stored_status(db_session, deliverable.id) == DeliverableStatus.pending


@pytest.mark.asyncio
async def test_unknown_deliverable(db_session, clock, owner):
    lifecycle = DeliverableLifecycle(db_session, clock=clock)

    with pytest.raises(NotFoundError):
        await lifecycle.open_for_grading(4242, subject_of(owner))
