"""
peergrade/orm/jury_assignment.py
JuryAssignment: binds one evaluator to one deliverable
"""
from enum import Enum

from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint, Index, Enum as SQLEnum
from sqlalchemy.orm import relationship

from peergrade.orm.base import BaseModel


class AssignmentStatus(str, Enum):
    assigned = "assigned"
    submitted = "submitted"
    # reserved for cancellation, nothing sets it yet
    withdrawn = "withdrawn"


class JuryAssignment(BaseModel):
    __tablename__ = "jury_assignments"

    deliverable_id = Column(
        Integer,
        ForeignKey("deliverables.id", ondelete="CASCADE"),
        nullable=False
    )
    jury_member_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False
    )
    status = Column(
        SQLEnum(AssignmentStatus),
        nullable=False,
        default=AssignmentStatus.assigned
    )

    deliverable = relationship("Deliverable", back_populates="jury_assignments")
    jury_member = relationship("User")
    evaluation = relationship(
        "Evaluation",
        back_populates="assignment",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True
    )

    __table_args__ = (
        UniqueConstraint('deliverable_id', 'jury_member_id', name='uq_jury_deliverable_member'),
        Index('idx_jury_assignments_deliverable', 'deliverable_id'),
        Index('idx_jury_assignments_member', 'jury_member_id'),
    )

    def to_dict(self, include_member: bool = True):
        """include_member=False for anything the project owner sees."""
        result = {
            "id": self.id,
            "deliverableId": self.deliverable_id,
            "status": self.status.value if self.status else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
        if include_member:
            result["juryMemberId"] = self.jury_member_id
        return result
