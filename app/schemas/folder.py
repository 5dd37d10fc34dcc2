"""
Folder Schemas
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class FolderBase(BaseModel):
    name: str = Field(..., max_length=255)
    description: Optional[str] = None


class FolderCreate(FolderBase):
    pass


class FolderUpdate(FolderBase):
    pass


class FolderResponse(FolderBase):
    id: int
    owner_id: str
    is_default: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
