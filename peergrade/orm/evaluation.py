"""
peergrade/orm/evaluation.py
Evaluation: the score and feedback a jury member submits for one assignment
"""
from decimal import Decimal

from sqlalchemy import Column, Integer, Numeric, Text, ForeignKey
from sqlalchemy.orm import relationship

from peergrade.orm.base import BaseModel

QUANTIZER_2DP = Decimal("0.01")
MIN_SCORE = Decimal("1")
MAX_SCORE = Decimal("10")


class Evaluation(BaseModel):
    __tablename__ = "evaluations"

    jury_assignment_id = Column(
        Integer,
        ForeignKey("jury_assignments.id", ondelete="CASCADE"),
        nullable=False,
        unique=True
    )
    score = Column(Numeric(4, 2, asdecimal=True), nullable=False)
    feedback = Column(Text, nullable=True)

    assignment = relationship("JuryAssignment", back_populates="evaluation")

    @property
    def score_decimal(self) -> Decimal:
        return Decimal(str(self.score)).quantize(QUANTIZER_2DP)

    def to_dict(self):
        """Evaluator-facing shape. Never hand this to owners or oversight."""
        return {
            "id": self.id,
            "juryAssignmentId": self.jury_assignment_id,
            "score": float(self.score_decimal),
            "feedback": self.feedback,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
