"""
peergrade/routes/professor.py
Oversight views. Every evaluation shown here is anonymized.
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends

from peergrade.dependencies import get_grade_report_service
from peergrade.orm.user import User, UserRole
from peergrade.rbac import require_role
from peergrade.security.access_policy import Subject
from peergrade.services.grade_report_service import GradeReportService

router = APIRouter(prefix="/professor", tags=["Professor"])

professor_only = require_role([UserRole.professor])


@router.get("/projects")
async def list_all_projects(
    current_user: User = Depends(professor_only),
    reports: GradeReportService = Depends(get_grade_report_service),
) -> Dict[str, Any]:
    projects = await reports.list_all_projects(Subject.of(current_user))
    return {
        "projects": [
            {
                **project.to_dict(),
                "creator": project.creator.to_dict() if project.creator else None,
                "deliverables": [
                    {
                        "id": d.id,
                        "title": d.title,
                        "dueDate": d.due_date.isoformat() if d.due_date else None,
                        "status": d.status.value,
                    }
                    for d in project.deliverables
                ],
            }
            for project in projects
        ]
    }


@router.get("/projects/{project_id}/evaluations")
async def project_evaluations(
    project_id: int,
    current_user: User = Depends(professor_only),
    reports: GradeReportService = Depends(get_grade_report_service),
) -> Dict[str, Any]:
    report = await reports.project_evaluations(project_id, Subject.of(current_user))
    return report.model_dump(by_alias=True, mode="json")


@router.get("/deliverables/{deliverable_id}/stats")
async def deliverable_stats(
    deliverable_id: int,
    current_user: User = Depends(professor_only),
    reports: GradeReportService = Depends(get_grade_report_service),
) -> Dict[str, Any]:
    report = await reports.deliverable_stats(deliverable_id, Subject.of(current_user))
    return report.model_dump(by_alias=True, mode="json")
