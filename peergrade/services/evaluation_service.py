"""
Evaluation Ledger

Accepts, validates and time-boxes score submissions against jury assignments.

Rules:
- One evaluation per assignment (unique on jury_assignment_id)
- Only the assigned jury member may submit or read it
- Submissions only while the deliverable is open_for_grading
- An existing evaluation may be overwritten while less than the edit window
  (24h by default) has passed since its last modification; every accepted
  edit restarts the window
"""
import logging
from datetime import datetime, timedelta
from typing import Any, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from peergrade.config.settings import Settings
from peergrade.core.clock import SystemClock
from peergrade.database import atomic
from peergrade.errors import EditWindowExpiredError, GradingNotOpenError
from peergrade.orm.deliverable import Deliverable
from peergrade.orm.evaluation import Evaluation
from peergrade.orm.jury_assignment import JuryAssignment, AssignmentStatus
from peergrade.security.access_policy import AccessPolicy, Action, Subject
from peergrade.services.queries import get_assignment_or_404, get_evaluation_or_404
from peergrade.services.validation import (
    parse_positive_id, parse_score, validate_feedback, raise_if_violations
)
from peergrade.state_machines.deliverable_lifecycle import DeliverableLifecycle

logger = logging.getLogger(__name__)


class EvaluationLedger:

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings,
        clock=None,
        policy: Optional[AccessPolicy] = None
    ):
        self.db = db
        self.settings = settings
        self.clock = clock or SystemClock()
        self.policy = policy or AccessPolicy()

    @property
    def edit_window(self) -> timedelta:
        return timedelta(hours=self.settings.edit_window_hours)

    def can_edit(self, evaluation: Evaluation, now: Optional[datetime] = None) -> bool:
        """True while strictly less than the edit window has passed since the last write."""
        now = now or self.clock.now()
        return now - evaluation.updated_at < self.edit_window

    async def submit_evaluation(
        self,
        assignment_id: Any,
        score: Any,
        feedback: Any,
        subject: Subject
    ) -> Evaluation:
        """
        Create or update the evaluation for an assignment.

        Validation order: identifier and score, assignment existence,
        ownership of the assignment, deliverable status, edit window.

        Raises:
            InvalidInputError: bad identifier, score or feedback
            NotFoundError: assignment does not exist
            NotAuthorizedError: assignment belongs to someone else
            GradingNotOpenError: deliverable is not open_for_grading
            EditWindowExpiredError: existing evaluation is too old to change
        """
        violations: List[str] = []
        parsed_id = parse_positive_id(assignment_id, "juryAssignmentId", violations)
        parsed_score = parse_score(score, violations)
        parsed_feedback = validate_feedback(feedback, violations)
        raise_if_violations(violations)

        async with atomic(self.db, "evaluation submission"):
            # row lock serializes concurrent edits of the same evaluation
            assignment = await get_assignment_or_404(self.db, parsed_id, for_update=True)
            self.policy.require(subject, Action.SUBMIT_EVALUATION, assignment)

            deliverable: Deliverable = assignment.deliverable
            if not DeliverableLifecycle.accepts_submissions(deliverable):
                raise GradingNotOpenError(
                    "This deliverable is not open for grading",
                    current_status=deliverable.status.value
                )

            now = self.clock.now()
            evaluation = assignment.evaluation
            if evaluation is None:
                evaluation = Evaluation(
                    assignment=assignment,
                    score=parsed_score,
                    feedback=parsed_feedback,
                    created_at=now,
                    updated_at=now
                )
                self.db.add(evaluation)
                action = "created"
            else:
                # freshest stored timestamp, read under the lock above
                await self.db.refresh(evaluation, ["score", "feedback", "updated_at"])
                if not self.can_edit(evaluation, now):
                    logger.warning(
                        f"Edit window expired for evaluation {evaluation.id} "
                        f"(last modified {evaluation.updated_at.isoformat()})"
                    )
                    raise EditWindowExpiredError(
                        last_modified_at=evaluation.updated_at.isoformat(),
                        window_hours=self.settings.edit_window_hours
                    )
                evaluation.score = parsed_score
                evaluation.feedback = parsed_feedback
                evaluation.updated_at = now
                action = "updated"

            assignment.status = AssignmentStatus.submitted
            assignment.updated_at = now
            await self.db.flush()

        logger.info(
            f"Evaluation {evaluation.id} {action} for assignment {assignment.id} "
            f"(deliverable {deliverable.id})"
        )
        return evaluation

    async def get_evaluation(self, evaluation_id: Any, subject: Subject) -> Evaluation:
        """
        Fetch an evaluation for the jury member who wrote it. Nobody else can
        read it through this path.
        """
        violations: List[str] = []
        parsed_id = parse_positive_id(evaluation_id, "evaluationId", violations)
        raise_if_violations(violations)

        evaluation = await get_evaluation_or_404(self.db, parsed_id)
        self.policy.require(subject, Action.READ_EVALUATION, evaluation)
        return evaluation

    async def list_assignments(self, subject: Subject) -> List[JuryAssignment]:
        """The requester's own assignments, newest first."""
        result = await self.db.execute(
            select(JuryAssignment)
            .options(
                selectinload(JuryAssignment.deliverable).selectinload(Deliverable.project),
                selectinload(JuryAssignment.evaluation),
            )
            .where(JuryAssignment.jury_member_id == subject.user_id)
            .order_by(JuryAssignment.created_at.desc(), JuryAssignment.id.desc())
        )
        return list(result.scalars().all())
