"""
Record Schemas
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.models.record import RecordCategory


class RecordResponse(BaseModel):
    id: int
    folder_id: Optional[int] = None
    title: str
    description: Optional[str] = None
    recorded_at: datetime = Field(..., alias="datetime")
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    duration: int
    category: RecordCategory
    audio_url: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True, "populate_by_name": True}


class RecordPage(BaseModel):
    content: List[RecordResponse]
    total_elements: int
    total_pages: int


class SegmentIn(BaseModel):
    start: float = Field(..., ge=0)
    end: float = Field(..., ge=0)
    text: str = ""


class TranscribeRequest(BaseModel):
    segments: List[SegmentIn]


class TranscribeResponse(BaseModel):
    message: str
    record_id: int
    segments: int
