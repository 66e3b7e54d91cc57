"""
Access policy for the grading engine.

One capability check keyed by (subject, action, resource) replaces the
scattered ownership comparisons. Every service asks the policy before acting;
a refusal is logged and raised as NotAuthorizedError.

Permission Matrix
Action                | Who
MANAGE_PROJECT        | project creator
MANAGE_DELIVERABLE    | project creator
SELECT_JURY           | project creator
ADVANCE_LIFECYCLE     | project creator
VIEW_DELIVERABLE      | project creator, assigned jury member, professor
VIEW_GRADE            | project creator, professor
SUBMIT_EVALUATION     | assigned jury member
READ_EVALUATION       | assigned jury member
OVERSEE               | professor
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional

from peergrade.errors import NotAuthorizedError
from peergrade.orm.deliverable import Deliverable
from peergrade.orm.evaluation import Evaluation
from peergrade.orm.jury_assignment import JuryAssignment
from peergrade.orm.project import Project
from peergrade.orm.user import UserRole

logger = logging.getLogger(__name__)


class Action(str, Enum):
    MANAGE_PROJECT = "manage_project"
    MANAGE_DELIVERABLE = "manage_deliverable"
    SELECT_JURY = "select_jury"
    ADVANCE_LIFECYCLE = "advance_lifecycle"
    VIEW_DELIVERABLE = "view_deliverable"
    VIEW_GRADE = "view_grade"
    SUBMIT_EVALUATION = "submit_evaluation"
    READ_EVALUATION = "read_evaluation"
    OVERSEE = "oversee"


OWNER_ACTIONS = {
    Action.MANAGE_PROJECT,
    Action.MANAGE_DELIVERABLE,
    Action.SELECT_JURY,
    Action.ADVANCE_LIFECYCLE,
}

EVALUATOR_ACTIONS = {
    Action.SUBMIT_EVALUATION,
    Action.READ_EVALUATION,
}

DENIAL_MESSAGES = {
    Action.MANAGE_PROJECT: "You cannot modify this project",
    Action.MANAGE_DELIVERABLE: "You cannot modify this deliverable",
    Action.SELECT_JURY: "You cannot select jury for this deliverable",
    Action.ADVANCE_LIFECYCLE: "You cannot change the grading status of this deliverable",
    Action.VIEW_DELIVERABLE: "You do not have access to this deliverable",
    Action.VIEW_GRADE: "You do not have access to this grade",
    Action.SUBMIT_EVALUATION: "This assignment does not belong to you",
    Action.READ_EVALUATION: "You do not have access to this evaluation",
    Action.OVERSEE: "This action requires the professor role",
}


@dataclass(frozen=True)
class Subject:
    """The requester as supplied by the identity surface."""
    user_id: int
    role: UserRole

    @classmethod
    def of(cls, user) -> "Subject":
        return cls(user_id=user.id, role=user.role)


def _owner_id(resource: Any) -> Optional[int]:
    if isinstance(resource, Project):
        return resource.user_id
    if isinstance(resource, Deliverable):
        return resource.project.user_id
    return None


def _jury_member_id(resource: Any) -> Optional[int]:
    if isinstance(resource, JuryAssignment):
        return resource.jury_member_id
    if isinstance(resource, Evaluation):
        return resource.assignment.jury_member_id
    return None


class AccessPolicy:
    """
    Capability checks. Resources must arrive with the relationships the
    check needs already loaded (Deliverable.project, Evaluation.assignment).
    """

    def is_allowed(
        self,
        subject: Subject,
        action: Action,
        resource: Any = None,
        jury_member_ids: Iterable[int] = ()
    ) -> bool:
        if action in OWNER_ACTIONS:
            return _owner_id(resource) == subject.user_id

        if action in EVALUATOR_ACTIONS:
            return _jury_member_id(resource) == subject.user_id

        if action == Action.VIEW_GRADE:
            return subject.role == UserRole.professor or _owner_id(resource) == subject.user_id

        if action == Action.VIEW_DELIVERABLE:
            return (
                subject.role == UserRole.professor
                or _owner_id(resource) == subject.user_id
                or subject.user_id in set(jury_member_ids)
            )

        if action == Action.OVERSEE:
            return subject.role == UserRole.professor

        return False

    def require(
        self,
        subject: Subject,
        action: Action,
        resource: Any = None,
        jury_member_ids: Iterable[int] = ()
    ) -> None:
        if not self.is_allowed(subject, action, resource, jury_member_ids):
            logger.warning(
                f"Access denied: user {subject.user_id} ({subject.role.value}) "
                f"attempted '{action.value}' on {type(resource).__name__ if resource is not None else 'nothing'} "
                f"{getattr(resource, 'id', '')}"
            )
            raise NotAuthorizedError(DENIAL_MESSAGES[action])
