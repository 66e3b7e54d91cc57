from .base import Base
from .user import User, UserRole
from .project import Project, ProjectStatus
from .deliverable import Deliverable, DeliverableStatus
from .jury_assignment import JuryAssignment, AssignmentStatus
from .evaluation import Evaluation

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Project",
    "ProjectStatus",
    "Deliverable",
    "DeliverableStatus",
    "JuryAssignment",
    "AssignmentStatus",
    "Evaluation",
]
