"""
peergrade/orm/deliverable.py
Deliverable model with its grading lifecycle status
"""
from enum import Enum

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship

from peergrade.orm.base import BaseModel


class DeliverableStatus(str, Enum):
    pending = "pending"
    open_for_grading = "open_for_grading"
    grading_closed = "grading_closed"


class Deliverable(BaseModel):
    __tablename__ = "deliverables"

    project_id = Column(
        Integer,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    due_date = Column(DateTime, nullable=False)
    video_url = Column(String(500), nullable=True)
    server_url = Column(String(500), nullable=True)
    status = Column(
        SQLEnum(DeliverableStatus),
        nullable=False,
        default=DeliverableStatus.pending,
        index=True
    )

    project = relationship("Project", back_populates="deliverables")
    jury_assignments = relationship(
        "JuryAssignment",
        back_populates="deliverable",
        cascade="all, delete-orphan",
        passive_deletes=True
    )

    def to_dict(self):
        return {
            "id": self.id,
            "projectId": self.project_id,
            "title": self.title,
            "description": self.description,
            "dueDate": self.due_date.isoformat() if self.due_date else None,
            "videoUrl": self.video_url,
            "serverUrl": self.server_url,
            "status": self.status.value if self.status else None,
        }
