"""
peergrade/orm/user.py
User model: students (evaluator-capable) and professors (oversight)
"""
from enum import Enum

from sqlalchemy import Column, String, Enum as SQLEnum
from sqlalchemy.orm import relationship

from peergrade.orm.base import BaseModel


class UserRole(str, Enum):
    """User roles. A role never changes after the account is created."""
    student = "student"
    professor = "professor"


class User(BaseModel):
    __tablename__ = "users"

    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(SQLEnum(UserRole), nullable=False, default=UserRole.student, index=True)

    projects = relationship("Project", back_populates="creator")

    def to_dict(self):
        return {
            "id": self.id,
            "fullName": self.full_name,
            "email": self.email,
            "role": self.role.value if self.role else None,
        }
