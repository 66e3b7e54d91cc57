"""
peergrade/dependencies.py
FastAPI dependencies that build services from the application state

The app carries one Settings, clock and random source (set in create_app);
every request gets fresh services bound to its own session.
"""
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from peergrade.config.settings import Settings
from peergrade.database import get_db
from peergrade.rbac import get_settings
from peergrade.security.access_policy import AccessPolicy
from peergrade.services.evaluation_service import EvaluationLedger
from peergrade.services.grade_report_service import GradeReportService
from peergrade.services.jury_selection_service import JurySelector
from peergrade.services.project_service import ProjectService
from peergrade.state_machines.deliverable_lifecycle import DeliverableLifecycle


def get_policy(request: Request) -> AccessPolicy:
    return request.app.state.policy


def get_project_service(
    request: Request,
    db: AsyncSession = Depends(get_db),
    policy: AccessPolicy = Depends(get_policy),
) -> ProjectService:
    return ProjectService(db, policy=policy, clock=request.app.state.clock)


def get_lifecycle(
    request: Request,
    db: AsyncSession = Depends(get_db),
    policy: AccessPolicy = Depends(get_policy),
) -> DeliverableLifecycle:
    return DeliverableLifecycle(db, policy=policy, clock=request.app.state.clock)


def get_jury_selector(
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    policy: AccessPolicy = Depends(get_policy),
) -> JurySelector:
    return JurySelector(
        db,
        settings,
        rng=request.app.state.rng,
        policy=policy,
        clock=request.app.state.clock
    )


def get_evaluation_ledger(
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    policy: AccessPolicy = Depends(get_policy),
) -> EvaluationLedger:
    return EvaluationLedger(db, settings, clock=request.app.state.clock, policy=policy)


def get_grade_report_service(
    db: AsyncSession = Depends(get_db),
    policy: AccessPolicy = Depends(get_policy),
) -> GradeReportService:
    return GradeReportService(db, policy=policy)
