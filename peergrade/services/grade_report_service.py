"""
Grade Report Service

Read-only views of grading outcomes for the project owner and for professors.

Anonymity is enforced here, at the shaping boundary: every evaluation that
leaves this module passes through to_anonymous(), which reads the Evaluation
row only and never the assignment it hangs off.
"""
import logging
from decimal import Decimal
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from peergrade.orm.deliverable import Deliverable
from peergrade.orm.evaluation import Evaluation
from peergrade.orm.jury_assignment import JuryAssignment, AssignmentStatus
from peergrade.orm.project import Project
from peergrade.schemas.grading import (
    AnonymousEvaluation, DeliverableEvaluationSummary, DeliverableGradeReport,
    DeliverableHeader, DeliverableStats, DeliverableStatsReport, GradeInfo,
    ProjectEvaluationsReport, ProjectHeader
)
from peergrade.security.access_policy import AccessPolicy, Action, Subject
from peergrade.services.grade_aggregation_service import (
    as_float, calculate_final_grade, compute_final_grade, mean, round_half_up,
    score_statistics
)
from peergrade.services.queries import get_deliverable_or_404, get_project_or_404

logger = logging.getLogger(__name__)


def to_anonymous(evaluation: Evaluation) -> AnonymousEvaluation:
    return AnonymousEvaluation(
        evaluation_id=evaluation.id,
        score=float(evaluation.score_decimal),
        feedback=evaluation.feedback,
        submitted_at=evaluation.created_at
    )


def to_header(deliverable: Deliverable) -> DeliverableHeader:
    return DeliverableHeader(
        id=deliverable.id,
        title=deliverable.title,
        due_date=deliverable.due_date,
        status=deliverable.status.value
    )


def to_grade_info(final_grade) -> GradeInfo:
    return GradeInfo(**final_grade.to_dict())


def submission_rate(submitted: int, total: int) -> str:
    if total == 0:
        return "N/A"
    rate = round_half_up(Decimal(submitted) * Decimal(100) / Decimal(total))
    return f"{rate}%"


class GradeReportService:

    def __init__(self, db: AsyncSession, policy: AccessPolicy = None):
        self.db = db
        self.policy = policy or AccessPolicy()

    async def _evaluations_for(self, deliverable_id: int) -> List[Evaluation]:
        result = await self.db.execute(
            select(Evaluation)
            .join(JuryAssignment, Evaluation.jury_assignment_id == JuryAssignment.id)
            .where(JuryAssignment.deliverable_id == deliverable_id)
            .order_by(Evaluation.created_at.asc(), Evaluation.id.asc())
        )
        return list(result.scalars().all())

    async def deliverable_grade_report(self, deliverable_id: int, subject: Subject) -> DeliverableGradeReport:
        """Owner or professor: final grade plus anonymized evaluations."""
        deliverable = await get_deliverable_or_404(self.db, deliverable_id)
        self.policy.require(subject, Action.VIEW_GRADE, deliverable)

        # grade and list come from the same read
        evaluations = await self._evaluations_for(deliverable_id)
        final_grade = compute_final_grade(e.score_decimal for e in evaluations)

        return DeliverableGradeReport(
            deliverable=to_header(deliverable),
            grade_info=to_grade_info(final_grade),
            evaluations=[to_anonymous(e) for e in evaluations]
        )

    async def list_all_projects(self, subject: Subject) -> List[Project]:
        self.policy.require(subject, Action.OVERSEE)
        result = await self.db.execute(
            select(Project)
            .options(selectinload(Project.creator), selectinload(Project.deliverables))
            .order_by(Project.created_at.desc(), Project.id.desc())
        )
        return list(result.scalars().all())

    async def project_evaluations(self, project_id: int, subject: Subject) -> ProjectEvaluationsReport:
        """Professor: every deliverable of a project with anonymized evaluations."""
        self.policy.require(subject, Action.OVERSEE)
        project = await get_project_or_404(self.db, project_id)
        await self.db.refresh(project, ["creator"])

        summaries: List[DeliverableEvaluationSummary] = []
        grades: List[Decimal] = []
        for deliverable in project.deliverables:
            evaluations = await self._evaluations_for(deliverable.id)
            final_grade = compute_final_grade(e.score_decimal for e in evaluations)
            if final_grade.final_grade is not None:
                grades.append(final_grade.final_grade)
            summaries.append(DeliverableEvaluationSummary(
                deliverable=to_header(deliverable),
                evaluations=[to_anonymous(e) for e in evaluations],
                final_grade=as_float(final_grade.final_grade),
                total_evaluations=final_grade.total_evaluations
            ))

        project_average = as_float(round_half_up(mean(grades))) if grades else None

        return ProjectEvaluationsReport(
            project=ProjectHeader(
                id=project.id,
                title=project.title,
                created_by=project.creator.full_name if project.creator else None
            ),
            project_average=project_average,
            evaluations=summaries
        )

    async def deliverable_stats(self, deliverable_id: int, subject: Subject) -> DeliverableStatsReport:
        """Professor: submission progress and score statistics."""
        self.policy.require(subject, Action.OVERSEE)
        deliverable = await get_deliverable_or_404(self.db, deliverable_id)

        result = await self.db.execute(
            select(JuryAssignment.status)
            .where(JuryAssignment.deliverable_id == deliverable_id)
        )
        statuses = [row[0] for row in result.all()]
        total = len(statuses)
        submitted = sum(1 for s in statuses if s == AssignmentStatus.submitted)

        final_grade = await calculate_final_grade(self.db, deliverable_id)
        statistics = score_statistics(final_grade.all_scores)

        return DeliverableStatsReport(
            deliverable=to_header(deliverable),
            stats=DeliverableStats(
                total_jury_members=total,
                submitted_evaluations=submitted,
                pending_evaluations=total - submitted,
                submission_rate=submission_rate(submitted, total),
                final_grade=as_float(final_grade.final_grade),
                average_score=statistics["averageScore"],
                min_score=statistics["minScore"],
                max_score=statistics["maxScore"],
                all_scores=[float(s) for s in final_grade.all_scores]
            )
        )
