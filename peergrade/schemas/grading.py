"""
peergrade/schemas/grading.py
Pydantic schemas for jury, evaluation and grade endpoints

Owner and oversight shapes are built from Evaluation rows only and have no
evaluator field; extra="forbid" keeps one from being slipped in later.
"""
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SelectJuryRequest(BaseModel):
    """Body for POST /deliverables/{id}/select-jury"""
    model_config = ConfigDict(populate_by_name=True)

    jury_size: Any = Field(default=None, alias="jurySize")


class SubmitEvaluationRequest(BaseModel):
    """
    Body for POST /evaluations.

    Fields stay loosely typed; the ledger validates them and reports every
    violation in one INVALID_INPUT error.
    """
    model_config = ConfigDict(populate_by_name=True)

    jury_assignment_id: Any = Field(default=None, alias="juryAssignmentId")
    score: Any = None
    feedback: Any = None


class AnonymousEvaluation(BaseModel):
    """One evaluation as seen by the project owner or a professor."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    evaluation_id: int = Field(alias="evaluationId")
    score: float
    feedback: Optional[str] = None
    submitted_at: Optional[datetime] = Field(default=None, alias="submittedAt")


class GradeInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    final_grade: Optional[float] = Field(default=None, alias="finalGrade")
    total_evaluations: int = Field(alias="totalEvaluations")
    excluded_lowest: Optional[float] = Field(default=None, alias="excludedLowest")
    excluded_highest: Optional[float] = Field(default=None, alias="excludedHighest")
    all_scores: List[float] = Field(default_factory=list, alias="allScores")


class DeliverableHeader(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    title: str
    due_date: Optional[datetime] = Field(default=None, alias="dueDate")
    status: str


class DeliverableGradeReport(BaseModel):
    """Final grade plus the anonymized evaluations behind it."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    deliverable: DeliverableHeader
    grade_info: GradeInfo = Field(alias="gradeInfo")
    evaluations: List[AnonymousEvaluation]


class DeliverableEvaluationSummary(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    deliverable: DeliverableHeader
    evaluations: List[AnonymousEvaluation]
    final_grade: Optional[float] = Field(default=None, alias="finalGrade")
    total_evaluations: int = Field(alias="totalEvaluations")


class ProjectHeader(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    title: str
    created_by: Optional[str] = Field(default=None, alias="createdBy")


class ProjectEvaluationsReport(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    project: ProjectHeader
    project_average: Optional[float] = Field(default=None, alias="projectAverage")
    evaluations: List[DeliverableEvaluationSummary]


class DeliverableStats(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    total_jury_members: int = Field(alias="totalJuryMembers")
    submitted_evaluations: int = Field(alias="submittedEvaluations")
    pending_evaluations: int = Field(alias="pendingEvaluations")
    submission_rate: str = Field(alias="submissionRate")
    final_grade: Optional[float] = Field(default=None, alias="finalGrade")
    average_score: Optional[float] = Field(default=None, alias="averageScore")
    min_score: Optional[float] = Field(default=None, alias="minScore")
    max_score: Optional[float] = Field(default=None, alias="maxScore")
    all_scores: List[float] = Field(default_factory=list, alias="allScores")


class DeliverableStatsReport(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    deliverable: DeliverableHeader
    stats: DeliverableStats
