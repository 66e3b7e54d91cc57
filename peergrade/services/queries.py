"""
Lookup helpers shared by the grading services.

Each helper eagerly loads the relationships the access policy needs and
raises NotFoundError instead of returning None.
"""
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from peergrade.errors import NotFoundError
from peergrade.orm.deliverable import Deliverable
from peergrade.orm.evaluation import Evaluation
from peergrade.orm.jury_assignment import JuryAssignment
from peergrade.orm.project import Project


async def get_project_or_404(db: AsyncSession, project_id: int) -> Project:
    result = await db.execute(
        select(Project)
        .options(selectinload(Project.deliverables))
        .where(Project.id == project_id)
    )
    project = result.scalar_one_or_none()
    if project is None:
        raise NotFoundError("Project", project_id)
    return project


async def get_deliverable_or_404(
    db: AsyncSession,
    deliverable_id: int,
    for_update: bool = False
) -> Deliverable:
    query = (
        select(Deliverable)
        .options(selectinload(Deliverable.project))
        .where(Deliverable.id == deliverable_id)
    )
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    deliverable = result.scalar_one_or_none()
    if deliverable is None:
        raise NotFoundError("Deliverable", deliverable_id)
    return deliverable


async def get_assignment_or_404(
    db: AsyncSession,
    assignment_id: int,
    for_update: bool = False
) -> JuryAssignment:
    query = (
        select(JuryAssignment)
        .options(
            selectinload(JuryAssignment.deliverable),
            selectinload(JuryAssignment.evaluation),
        )
        .where(JuryAssignment.id == assignment_id)
    )
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    assignment = result.scalar_one_or_none()
    if assignment is None:
        raise NotFoundError("Jury assignment", assignment_id)
    return assignment


async def get_evaluation_or_404(db: AsyncSession, evaluation_id: int) -> Evaluation:
    result = await db.execute(
        select(Evaluation)
        .options(selectinload(Evaluation.assignment))
        .where(Evaluation.id == evaluation_id)
    )
    evaluation = result.scalar_one_or_none()
    if evaluation is None:
        raise NotFoundError("Evaluation", evaluation_id)
    return evaluation


async def get_jury_member_ids(db: AsyncSession, deliverable_id: int) -> List[int]:
    result = await db.execute(
        select(JuryAssignment.jury_member_id)
        .where(JuryAssignment.deliverable_id == deliverable_id)
    )
    return [row[0] for row in result.all()]
