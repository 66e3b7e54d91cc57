"""
peergrade/routes/projects.py
Project and deliverable management, including the grading lifecycle switches
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends, status

from peergrade.dependencies import get_lifecycle, get_project_service
from peergrade.orm.user import User, UserRole
from peergrade.rbac import get_current_user, require_role
from peergrade.schemas.project import (
    DeliverableCreate, DeliverableUpdate, ProjectCreate, ProjectUpdate
)
from peergrade.security.access_policy import Subject
from peergrade.services.project_service import ProjectService
from peergrade.state_machines.deliverable_lifecycle import DeliverableLifecycle

router = APIRouter(prefix="/projects", tags=["Projects"])
deliverables_router = APIRouter(prefix="/deliverables", tags=["Deliverables"])

student_only = require_role([UserRole.student])


def project_with_deliverables(project) -> Dict[str, Any]:
    data = project.to_dict()
    data["deliverables"] = [d.to_dict() for d in project.deliverables]
    return data


# =============================================================================
# Projects
# =============================================================================

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_project(
    body: ProjectCreate,
    current_user: User = Depends(student_only),
    service: ProjectService = Depends(get_project_service),
) -> Dict[str, Any]:
    project = await service.create_project(Subject.of(current_user), body.title, body.description)
    return {"message": "Project created successfully", "project": project.to_dict()}


@router.get("")
async def list_projects(
    current_user: User = Depends(student_only),
    service: ProjectService = Depends(get_project_service),
) -> Dict[str, Any]:
    projects = await service.list_projects(Subject.of(current_user))
    return {"projects": [project_with_deliverables(p) for p in projects]}


@router.get("/{project_id}")
async def get_project(
    project_id: int,
    current_user: User = Depends(student_only),
    service: ProjectService = Depends(get_project_service),
) -> Dict[str, Any]:
    project = await service.get_project(project_id, Subject.of(current_user))
    return {"project": project_with_deliverables(project)}


@router.put("/{project_id}")
async def update_project(
    project_id: int,
    body: ProjectUpdate,
    current_user: User = Depends(student_only),
    service: ProjectService = Depends(get_project_service),
) -> Dict[str, Any]:
    project = await service.update_project(
        project_id,
        Subject.of(current_user),
        title=body.title,
        description=body.description,
        status=body.status
    )
    return {"message": "Project updated successfully", "project": project.to_dict()}


@router.delete("/{project_id}")
async def delete_project(
    project_id: int,
    current_user: User = Depends(student_only),
    service: ProjectService = Depends(get_project_service),
) -> Dict[str, Any]:
    await service.delete_project(project_id, Subject.of(current_user))
    return {"message": "Project deleted successfully"}


@router.post("/{project_id}/activate")
async def activate_project(
    project_id: int,
    current_user: User = Depends(student_only),
    service: ProjectService = Depends(get_project_service),
) -> Dict[str, Any]:
    project = await service.activate_project(project_id, Subject.of(current_user))
    return {"message": "Project activated successfully", "project": project.to_dict()}


@router.post("/{project_id}/deliverables", status_code=status.HTTP_201_CREATED)
async def create_deliverable(
    project_id: int,
    body: DeliverableCreate,
    current_user: User = Depends(student_only),
    service: ProjectService = Depends(get_project_service),
) -> Dict[str, Any]:
    deliverable = await service.create_deliverable(
        project_id,
        Subject.of(current_user),
        title=body.title,
        description=body.description,
        due_date=body.due_date,
        video_url=body.video_url,
        server_url=body.server_url
    )
    return {"message": "Deliverable created successfully", "deliverable": deliverable.to_dict()}


# =============================================================================
# Deliverables
# =============================================================================

@deliverables_router.get("/{deliverable_id}")
async def get_deliverable(
    deliverable_id: int,
    current_user: User = Depends(get_current_user),
    service: ProjectService = Depends(get_project_service),
) -> Dict[str, Any]:
    deliverable = await service.get_deliverable(deliverable_id, Subject.of(current_user))
    return {"deliverable": deliverable.to_dict()}


@deliverables_router.put("/{deliverable_id}")
async def update_deliverable(
    deliverable_id: int,
    body: DeliverableUpdate,
    current_user: User = Depends(student_only),
    service: ProjectService = Depends(get_project_service),
) -> Dict[str, Any]:
    deliverable = await service.update_deliverable(
        deliverable_id,
        Subject.of(current_user),
        body.model_dump(exclude_unset=True)
    )
    return {"message": "Deliverable updated successfully", "deliverable": deliverable.to_dict()}


@deliverables_router.post("/{deliverable_id}/open-grading")
async def open_grading(
    deliverable_id: int,
    current_user: User = Depends(student_only),
    lifecycle: DeliverableLifecycle = Depends(get_lifecycle),
) -> Dict[str, Any]:
    deliverable = await lifecycle.open_for_grading(deliverable_id, Subject.of(current_user))
    return {"message": "Deliverable opened for grading", "deliverable": deliverable.to_dict()}


@deliverables_router.post("/{deliverable_id}/close-grading")
async def close_grading(
    deliverable_id: int,
    current_user: User = Depends(student_only),
    lifecycle: DeliverableLifecycle = Depends(get_lifecycle),
) -> Dict[str, Any]:
    deliverable = await lifecycle.close_grading(deliverable_id, Subject.of(current_user))
    return {"message": "Grading closed for deliverable", "deliverable": deliverable.to_dict()}
