"""
Jury Selection Service

Random assembly of peer evaluators for a deliverable:
- Eligible pool: every student except the project creator
- Uniform sample without replacement from the pool
- All assignments of one call are written in a single transaction
- One assignment per (deliverable, evaluator), enforced by a unique constraint
"""
import logging
import random
from typing import Any, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from peergrade.config.settings import Settings
from peergrade.core.clock import SystemClock, make_random_source
from peergrade.database import atomic
from peergrade.errors import GradingNotOpenError, InsufficientPoolError
from peergrade.orm.deliverable import DeliverableStatus
from peergrade.orm.jury_assignment import JuryAssignment, AssignmentStatus
from peergrade.orm.user import User, UserRole
from peergrade.security.access_policy import AccessPolicy, Action, Subject
from peergrade.services.queries import get_deliverable_or_404
from peergrade.services.validation import parse_positive_id, raise_if_violations

logger = logging.getLogger(__name__)

SELECTABLE_STATUSES = {DeliverableStatus.pending, DeliverableStatus.open_for_grading}


def sample_jury(pool: List[int], jury_size: int, rng: random.Random) -> List[int]:
    """
    Uniform sample of jury_size distinct ids.

    Random.sample draws without replacement with every subset equally likely,
    independent of the order of pool.
    """
    return rng.sample(pool, jury_size)


class JurySelector:
    """
    Picks evaluators for a deliverable and materializes their assignments.
    """

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings,
        rng: Optional[random.Random] = None,
        policy: Optional[AccessPolicy] = None,
        clock=None
    ):
        self.db = db
        self.settings = settings
        self.rng = rng or make_random_source(settings.random_seed)
        self.policy = policy or AccessPolicy()
        self.clock = clock or SystemClock()

    async def _eligible_pool(self, owner_id: int) -> List[int]:
        """Student ids other than the owner, in ascending id order."""
        result = await self.db.execute(
            select(User.id)
            .where(User.role == UserRole.student)
            .where(User.id != owner_id)
            .order_by(User.id.asc())
        )
        return [row[0] for row in result.all()]

    async def _existing_assignments(self, deliverable_id: int) -> dict:
        result = await self.db.execute(
            select(JuryAssignment).where(JuryAssignment.deliverable_id == deliverable_id)
        )
        return {a.jury_member_id: a for a in result.scalars().all()}

    async def select_jury(
        self,
        deliverable_id: int,
        jury_size: Any,
        subject: Subject
    ) -> List[JuryAssignment]:
        """
        Select a random jury for a deliverable.

        Args:
            deliverable_id: Deliverable to grade
            jury_size: Number of evaluators to draw (None uses the configured default)
            subject: Requester; must be the project creator

        Returns:
            The assignments of the drawn evaluators

        Raises:
            InvalidInputError: jury_size is not a positive integer
            NotFoundError: deliverable does not exist
            NotAuthorizedError: requester is not the project creator
            GradingNotOpenError: selection restricted and grading already closed
            InsufficientPoolError: fewer eligible students than jury_size
        """
        violations: List[str] = []
        if jury_size is None:
            jury_size = self.settings.default_jury_size
        size = parse_positive_id(jury_size, "jurySize", violations)
        raise_if_violations(violations)

        async with atomic(self.db, "jury selection"):
            deliverable = await get_deliverable_or_404(self.db, deliverable_id, for_update=True)
            self.policy.require(subject, Action.SELECT_JURY, deliverable)

            if (
                self.settings.restrict_selection_to_pending_or_open
                and deliverable.status not in SELECTABLE_STATUSES
            ):
                raise GradingNotOpenError(
                    "Jury cannot be selected once grading is closed",
                    current_status=deliverable.status.value
                )

            owner_id = deliverable.project.user_id
            pool = await self._eligible_pool(owner_id)
            existing = await self._existing_assignments(deliverable_id)

            if self.settings.prevent_duplicate_assignment:
                pool = [user_id for user_id in pool if user_id not in existing]

            if len(pool) < size:
                logger.warning(
                    f"Jury selection for deliverable {deliverable_id} refused: "
                    f"pool {len(pool)} < requested {size}"
                )
                raise InsufficientPoolError(pool_size=len(pool), requested=size)

            selected = sample_jury(pool, size, self.rng)

            now = self.clock.now()
            assignments: List[JuryAssignment] = []
            for jury_member_id in selected:
                if jury_member_id in existing:
                    # already holds an assignment for this deliverable; reuse it
                    assignments.append(existing[jury_member_id])
                    continue
                assignment = JuryAssignment(
                    deliverable_id=deliverable_id,
                    jury_member_id=jury_member_id,
                    status=AssignmentStatus.assigned,
                    created_at=now,
                    updated_at=now
                )
                self.db.add(assignment)
                assignments.append(assignment)

            await self.db.flush()

        logger.info(
            f"Jury selected for deliverable {deliverable_id}: "
            f"{len(assignments)} members by user {subject.user_id}"
        )
        return assignments
