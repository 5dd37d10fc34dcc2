from app.models.base import Base
from app.models.folder import DEFAULT_FOLDER_NAMES, Folder
from app.models.record import Record, RecordCategory, TranscriptionSegment

__all__ = [
    "Base",
    "DEFAULT_FOLDER_NAMES",
    "Folder",
    "Record",
    "RecordCategory",
    "TranscriptionSegment",
]
