"""
Record Models

Audio record metadata and its transcription segments.
"""

import enum
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import DateTime, Enum, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from app.models.folder import Folder


class RecordCategory(str, enum.Enum):
    WORK = "Work"
    STUDY = "Study"
    PERSONAL = "Personal"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["RecordCategory"]:
        """Case-insensitive lookup, None when the value is not a known category"""
        if value is None:
            return None
        wanted = value.strip().lower()
        for category in cls:
            if category.value.lower() == wanted:
                return category
        return None


class Record(Base, TimestampMixin):
    __tablename__ = "records"

    id: Mapped[int] = mapped_column(primary_key=True)
    folder_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("folders.id"), index=True, nullable=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Client-supplied recording time, stored as given (no timezone)
    recorded_at: Mapped[datetime] = mapped_column("datetime", DateTime(timezone=False), index=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    duration: Mapped[int] = mapped_column(Integer, default=0, nullable=False)  # seconds
    category: Mapped[RecordCategory] = mapped_column(
        Enum(
            RecordCategory,
            native_enum=False,
            length=20,
            values_callable=lambda e: [member.value for member in e],
        ),
        nullable=False,
    )
    audio_url: Mapped[str] = mapped_column(String(512), nullable=False, default="")

    # Relationships
    folder: Mapped[Optional["Folder"]] = relationship(back_populates="records")
    segments: Mapped[List["TranscriptionSegment"]] = relationship(
        back_populates="record", order_by="TranscriptionSegment.start"
    )


class TranscriptionSegment(Base):
    __tablename__ = "transcription_segments"

    id: Mapped[int] = mapped_column(primary_key=True)
    record_id: Mapped[int] = mapped_column(ForeignKey("records.id"), index=True, nullable=False)

    # Temporal info, seconds from the start of the audio
    start: Mapped[float] = mapped_column(Float, nullable=False)
    end: Mapped[float] = mapped_column(Float, nullable=False)

    text: Mapped[str] = mapped_column(Text, nullable=False, default="")

    record: Mapped["Record"] = relationship(back_populates="segments")
