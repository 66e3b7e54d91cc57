"""
peergrade/orm/project.py
Project model. A project is owned by the student who created it and
ownership never transfers.
"""
from enum import Enum

from sqlalchemy import Column, Integer, String, Text, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship

from peergrade.orm.base import BaseModel


class ProjectStatus(str, Enum):
    draft = "draft"
    active = "active"
    completed = "completed"


class Project(BaseModel):
    __tablename__ = "projects"

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(SQLEnum(ProjectStatus), nullable=False, default=ProjectStatus.draft)

    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    creator = relationship("User", back_populates="projects")
    deliverables = relationship(
        "Deliverable",
        back_populates="project",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Deliverable.id"
    )

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value if self.status else None,
            "userId": self.user_id,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
