"""
peergrade/routes/grading.py
Jury selection, evaluation submission and final grades
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from peergrade.dependencies import (
    get_evaluation_ledger, get_grade_report_service, get_jury_selector
)
from peergrade.orm.jury_assignment import JuryAssignment
from peergrade.orm.user import User, UserRole
from peergrade.rbac import get_current_user, require_role
from peergrade.schemas.grading import SelectJuryRequest, SubmitEvaluationRequest
from peergrade.security.access_policy import Subject
from peergrade.services.evaluation_service import EvaluationLedger
from peergrade.services.grade_report_service import GradeReportService
from peergrade.services.jury_selection_service import JurySelector

router = APIRouter(tags=["Grading"])

student_only = require_role([UserRole.student])


def assignment_view(assignment: JuryAssignment, ledger: EvaluationLedger) -> Dict[str, Any]:
    """The jury member's own view of one assignment."""
    deliverable = assignment.deliverable
    data = assignment.to_dict()
    data["deliverable"] = deliverable.to_dict()
    data["deliverable"]["project"] = {
        "id": deliverable.project.id,
        "title": deliverable.project.title,
    }
    evaluation = assignment.evaluation
    if evaluation is None:
        data["evaluation"] = None
    else:
        data["evaluation"] = evaluation.to_dict()
        data["evaluation"]["canEdit"] = ledger.can_edit(evaluation)
    return data


# =============================================================================
# Jury
# =============================================================================

@router.post("/deliverables/{deliverable_id}/select-jury")
async def select_jury(
    deliverable_id: int,
    body: Optional[SelectJuryRequest] = None,
    current_user: User = Depends(student_only),
    selector: JurySelector = Depends(get_jury_selector),
) -> Dict[str, Any]:
    jury_size = body.jury_size if body is not None else None
    assignments = await selector.select_jury(deliverable_id, jury_size, Subject.of(current_user))
    return {
        "message": "Jury selected successfully",
        "juryCount": len(assignments),
        "assignments": [a.to_dict(include_member=False) for a in assignments],
    }


@router.get("/jury/assignments")
async def list_jury_assignments(
    current_user: User = Depends(student_only),
    ledger: EvaluationLedger = Depends(get_evaluation_ledger),
) -> Dict[str, Any]:
    assignments = await ledger.list_assignments(Subject.of(current_user))
    return {"assignments": [assignment_view(a, ledger) for a in assignments]}


# =============================================================================
# Evaluations
# =============================================================================

@router.post("/evaluations")
async def submit_evaluation(
    body: SubmitEvaluationRequest,
    current_user: User = Depends(student_only),
    ledger: EvaluationLedger = Depends(get_evaluation_ledger),
) -> Dict[str, Any]:
    evaluation = await ledger.submit_evaluation(
        body.jury_assignment_id,
        body.score,
        body.feedback,
        Subject.of(current_user)
    )
    return {"message": "Evaluation submitted successfully", "evaluation": evaluation.to_dict()}


@router.get("/evaluations/{evaluation_id}")
async def get_evaluation(
    evaluation_id: int,
    current_user: User = Depends(student_only),
    ledger: EvaluationLedger = Depends(get_evaluation_ledger),
) -> Dict[str, Any]:
    evaluation = await ledger.get_evaluation(evaluation_id, Subject.of(current_user))
    return {"evaluation": evaluation.to_dict()}


# =============================================================================
# Grades
# =============================================================================

@router.get("/deliverables/{deliverable_id}/grade")
async def get_final_grade(
    deliverable_id: int,
    current_user: User = Depends(get_current_user),
    reports: GradeReportService = Depends(get_grade_report_service),
) -> Dict[str, Any]:
    report = await reports.deliverable_grade_report(deliverable_id, Subject.of(current_user))
    return report.model_dump(by_alias=True, mode="json")
