"""
Project & Deliverable Service

Creation and content editing of projects and their deliverables. Only the
creator of a project may read or change it; deliverables are additionally
visible to their jury members and to professors.
"""
import logging
from typing import Any, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from peergrade.core.clock import SystemClock
from peergrade.database import atomic
from peergrade.orm.deliverable import Deliverable, DeliverableStatus
from peergrade.orm.project import Project, ProjectStatus
from peergrade.security.access_policy import AccessPolicy, Action, Subject
from peergrade.services.queries import (
    get_project_or_404, get_deliverable_or_404, get_jury_member_ids
)
from peergrade.services.validation import (
    validate_title, parse_due_date, validate_url, raise_if_violations
)

logger = logging.getLogger(__name__)

PROJECT_STATUSES = [s.value for s in ProjectStatus]


class ProjectService:

    def __init__(self, db: AsyncSession, policy: Optional[AccessPolicy] = None, clock=None):
        self.db = db
        self.policy = policy or AccessPolicy()
        self.clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def create_project(self, subject: Subject, title: Any, description: Optional[str]) -> Project:
        violations: List[str] = []
        clean_title = validate_title(title, violations)
        raise_if_violations(violations)

        now = self.clock.now()
        async with atomic(self.db, "create project"):
            project = Project(
                title=clean_title,
                description=description or None,
                user_id=subject.user_id,
                status=ProjectStatus.draft,
                created_at=now,
                updated_at=now
            )
            self.db.add(project)
            await self.db.flush()

        logger.info(f"Project {project.id} created by user {subject.user_id}")
        return project

    async def list_projects(self, subject: Subject) -> List[Project]:
        result = await self.db.execute(
            select(Project)
            .options(selectinload(Project.deliverables))
            .where(Project.user_id == subject.user_id)
            .order_by(Project.created_at.desc(), Project.id.desc())
        )
        return list(result.scalars().all())

    async def get_project(self, project_id: int, subject: Subject) -> Project:
        project = await get_project_or_404(self.db, project_id)
        self.policy.require(subject, Action.MANAGE_PROJECT, project)
        return project

    async def update_project(
        self,
        project_id: int,
        subject: Subject,
        title: Any = None,
        description: Optional[str] = None,
        status: Optional[str] = None
    ) -> Project:
        violations: List[str] = []
        clean_title = validate_title(title, violations, required=False)
        if status is not None and status not in PROJECT_STATUSES:
            violations.append(f"status must be one of: {', '.join(PROJECT_STATUSES)}")
        raise_if_violations(violations)

        async with atomic(self.db, "update project"):
            project = await get_project_or_404(self.db, project_id)
            self.policy.require(subject, Action.MANAGE_PROJECT, project)
            if clean_title is not None:
                project.title = clean_title
            if description is not None:
                project.description = description
            if status is not None:
                project.status = ProjectStatus(status)
            project.updated_at = self.clock.now()

        return project

    async def activate_project(self, project_id: int, subject: Subject) -> Project:
        return await self.update_project(project_id, subject, status=ProjectStatus.active.value)

    async def delete_project(self, project_id: int, subject: Subject) -> None:
        """Deliverables, assignments and evaluations go with it (FK cascade)."""
        async with atomic(self.db, "delete project"):
            project = await get_project_or_404(self.db, project_id)
            self.policy.require(subject, Action.MANAGE_PROJECT, project)
            await self.db.delete(project)

        logger.info(f"Project {project_id} deleted by user {subject.user_id}")

    # ------------------------------------------------------------------
    # Deliverables
    # ------------------------------------------------------------------

    async def create_deliverable(
        self,
        project_id: int,
        subject: Subject,
        title: Any,
        description: Optional[str],
        due_date: Any,
        video_url: Any = None,
        server_url: Any = None
    ) -> Deliverable:
        violations: List[str] = []
        clean_title = validate_title(title, violations)
        parsed_due = parse_due_date(due_date, violations)
        clean_video = validate_url(video_url, "videoUrl", violations)
        clean_server = validate_url(server_url, "serverUrl", violations)
        raise_if_violations(violations)

        now = self.clock.now()
        async with atomic(self.db, "create deliverable"):
            project = await get_project_or_404(self.db, project_id)
            self.policy.require(subject, Action.MANAGE_DELIVERABLE, project)

            deliverable = Deliverable(
                project_id=project.id,
                title=clean_title,
                description=description or None,
                due_date=parsed_due,
                video_url=clean_video,
                server_url=clean_server,
                status=DeliverableStatus.pending,
                created_at=now,
                updated_at=now
            )
            self.db.add(deliverable)
            await self.db.flush()

        logger.info(f"Deliverable {deliverable.id} created in project {project_id}")
        return deliverable

    async def get_deliverable(self, deliverable_id: int, subject: Subject) -> Deliverable:
        deliverable = await get_deliverable_or_404(self.db, deliverable_id)
        jury_member_ids = await get_jury_member_ids(self.db, deliverable_id)
        self.policy.require(subject, Action.VIEW_DELIVERABLE, deliverable, jury_member_ids)
        return deliverable

    async def update_deliverable(
        self,
        deliverable_id: int,
        subject: Subject,
        fields: dict
    ) -> Deliverable:
        """
        Change content fields. Only keys present in fields are touched;
        lifecycle status is not a content field.
        """
        violations: List[str] = []
        changes = {}
        if "title" in fields and fields["title"] is not None:
            changes["title"] = validate_title(fields["title"], violations)
        if "description" in fields:
            changes["description"] = fields["description"]
        if "due_date" in fields and fields["due_date"] is not None:
            changes["due_date"] = parse_due_date(fields["due_date"], violations)
        if "video_url" in fields:
            changes["video_url"] = validate_url(fields["video_url"], "videoUrl", violations)
        if "server_url" in fields:
            changes["server_url"] = validate_url(fields["server_url"], "serverUrl", violations)
        raise_if_violations(violations)

        async with atomic(self.db, "update deliverable"):
            deliverable = await get_deliverable_or_404(self.db, deliverable_id, for_update=True)
            self.policy.require(subject, Action.MANAGE_DELIVERABLE, deliverable)
            for name, value in changes.items():
                setattr(deliverable, name, value)
            deliverable.updated_at = self.clock.now()

        return deliverable
