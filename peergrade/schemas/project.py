"""
peergrade/schemas/project.py
Request schemas for project and deliverable endpoints
"""
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProjectCreate(BaseModel):
    title: Any = None
    description: Optional[str] = None


class ProjectUpdate(BaseModel):
    title: Any = None
    description: Optional[str] = None
    status: Optional[str] = None


class DeliverableCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Any = None
    description: Optional[str] = None
    due_date: Any = Field(default=None, alias="dueDate")
    video_url: Any = Field(default=None, alias="videoUrl")
    server_url: Any = Field(default=None, alias="serverUrl")


class DeliverableUpdate(DeliverableCreate):
    pass
