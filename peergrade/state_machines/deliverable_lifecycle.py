"""
Deliverable Lifecycle State Machine

pending -> open_for_grading -> grading_closed

Only the creator of the owning project may move a deliverable along. Once
grading is closed there is no way back.
"""
import logging
from typing import Dict, List

from sqlalchemy.ext.asyncio import AsyncSession

from peergrade.core.clock import SystemClock
from peergrade.database import atomic
from peergrade.errors import GradingNotOpenError
from peergrade.orm.deliverable import Deliverable, DeliverableStatus
from peergrade.security.access_policy import AccessPolicy, Action, Subject
from peergrade.services.queries import get_deliverable_or_404

logger = logging.getLogger(__name__)


class DeliverableLifecycle:
    """
    Server-side state machine for deliverable grading status.
    """

    ALLOWED_TRANSITIONS: Dict[DeliverableStatus, List[DeliverableStatus]] = {
        DeliverableStatus.pending: [DeliverableStatus.open_for_grading],
        DeliverableStatus.open_for_grading: [DeliverableStatus.grading_closed],
        DeliverableStatus.grading_closed: [],
    }

    def __init__(self, db: AsyncSession, policy: AccessPolicy = None, clock=None):
        self.db = db
        self.policy = policy or AccessPolicy()
        self.clock = clock or SystemClock()

    @classmethod
    def is_valid_transition(cls, from_state: DeliverableStatus, to_state: DeliverableStatus) -> bool:
        return to_state in cls.ALLOWED_TRANSITIONS.get(from_state, [])

    @staticmethod
    def accepts_submissions(deliverable: Deliverable) -> bool:
        return deliverable.status == DeliverableStatus.open_for_grading

    async def transition(
        self,
        deliverable_id: int,
        subject: Subject,
        new_state: DeliverableStatus
    ) -> Deliverable:
        """
        Move a deliverable to new_state.

        Raises:
            NotFoundError: deliverable does not exist
            NotAuthorizedError: requester is not the project creator
            GradingNotOpenError: the current status does not allow new_state
        """
        async with atomic(self.db, "deliverable lifecycle transition"):
            deliverable = await get_deliverable_or_404(self.db, deliverable_id, for_update=True)
            self.policy.require(subject, Action.ADVANCE_LIFECYCLE, deliverable)

            old_state = deliverable.status
            if old_state == new_state and new_state == DeliverableStatus.open_for_grading:
                # reopening an already open deliverable changes nothing
                return deliverable

            if not self.is_valid_transition(old_state, new_state):
                allowed = [s.value for s in self.ALLOWED_TRANSITIONS.get(old_state, [])]
                raise GradingNotOpenError(
                    f"Cannot move deliverable from {old_state.value} to {new_state.value}",
                    current_status=old_state.value,
                    details={"requested": new_state.value, "allowed": allowed}
                )

            deliverable.status = new_state
            deliverable.updated_at = self.clock.now()

        logger.info(
            f"Deliverable {deliverable_id}: {old_state.value} -> {new_state.value} "
            f"by user {subject.user_id}"
        )
        return deliverable

    async def open_for_grading(self, deliverable_id: int, subject: Subject) -> Deliverable:
        return await self.transition(deliverable_id, subject, DeliverableStatus.open_for_grading)

    async def close_grading(self, deliverable_id: int, subject: Subject) -> Deliverable:
        return await self.transition(deliverable_id, subject, DeliverableStatus.grading_closed)
