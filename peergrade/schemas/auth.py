"""
peergrade/schemas/auth.py
Authentication request/response schemas
"""
from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from peergrade.orm.user import UserRole


class UserRegister(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    full_name: str = Field(alias="fullName", min_length=2, max_length=255)
    email: EmailStr
    password: str = Field(min_length=6)
    confirm_password: str = Field(alias="confirmPassword")
    role: UserRole = UserRole.student

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("confirmPassword must match password")
        return self


class UserLogin(BaseModel):
    """JSON login schema"""
    email: EmailStr
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: str
    user_id: int
