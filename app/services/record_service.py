"""
Record Service

Record upload, access control, transcript export and the transcription callback.
"""

import asyncio
import math
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ForbiddenError, InternalError, NotFoundError, ValidationError
from app.core.logging import get_logger
from app.crud.folder import FolderCRUD
from app.crud.record import RecordCRUD, TranscriptionCRUD
from app.infra.queue import QueueError, TranscriptionDispatcher
from app.infra.storage import BlobStore, StorageError
from app.models.record import Record, RecordCategory
from app.services.folder_service import FolderService
from app.services.pdf_service import PdfRenderer, PdfRenderError

logger = get_logger(__name__)


@dataclass
class RecordUpload:
    """Raw multipart fields of a record upload, validated by the service"""

    datetime: Optional[str]
    title: Optional[str]
    category: Optional[str]
    folder_id: Optional[int]
    filename: Optional[str]
    data: Optional[bytes]
    content_type: Optional[str] = None
    place: Optional[str] = None


@dataclass
class RecordPageResult:
    records: List[Record]
    total: int
    size: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.size) if self.size else 0


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """ISO-8601 local date-time, None when absent or unparsable"""
    if not value or not value.strip():
        return None
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    return parsed.replace(tzinfo=None)


def parse_place(value: Optional[str]) -> Tuple[Optional[float], Optional[float]]:
    """'lat,lon' into a coordinate pair; anything malformed yields (None, None)"""
    if not value:
        return None, None
    parts = value.split(",")
    if len(parts) != 2:
        return None, None
    try:
        latitude, longitude = float(parts[0].strip()), float(parts[1].strip())
    except ValueError:
        return None, None
    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        return None, None
    return latitude, longitude


class RecordService:
    def __init__(
        self,
        session: AsyncSession,
        blob_store: BlobStore,
        dispatcher: Optional[TranscriptionDispatcher] = None,
        pdf_renderer: Optional[PdfRenderer] = None,
    ):
        self.session = session
        self.blob_store = blob_store
        self.dispatcher = dispatcher
        self.pdf_renderer = pdf_renderer

    async def list_records(
        self,
        owner_id: str,
        search: Optional[str] = None,
        folder_id: Optional[int] = None,
        page: int = 0,
        size: int = 20,
    ) -> RecordPageResult:
        records, total = await RecordCRUD.search(
            self.session, owner_id, search or None, folder_id, page, size
        )
        return RecordPageResult(records=records, total=total, size=size)

    async def create_record(self, owner_id: str, upload: RecordUpload) -> Record:
        recorded_at = parse_datetime(upload.datetime)
        category = RecordCategory.parse(upload.category)
        title = upload.title.strip() if upload.title else ""
        if recorded_at is None or not title or category is None or not upload.data:
            raise ValidationError("Missing required fields")
        if upload.folder_id is None:
            raise ValidationError("folderId is required")

        folder = await FolderCRUD.get_by_id(self.session, upload.folder_id)
        if folder is None:
            raise NotFoundError("Folder not found")
        if folder.owner_id != owner_id:
            raise ForbiddenError("Access denied")

        latitude, longitude = parse_place(upload.place)

        try:
            audio_url = await self.blob_store.upload(
                upload.data,
                upload.filename or "recording.m4a",
                upload.content_type or "audio/m4a",
            )
        except StorageError as e:
            raise InternalError("Failed to upload audio file") from e

        try:
            record = await RecordCRUD.create(
                self.session,
                folder_id=folder.id,
                title=title,
                recorded_at=recorded_at,
                category=category,
                audio_url=audio_url,
                latitude=latitude,
                longitude=longitude,
            )
        except SQLAlchemyError as e:
            await self.session.rollback()
            await self._discard_upload(audio_url)
            raise InternalError("Failed to save record") from e
        logger.info("Record created", extra={"record_id": record.id, "folder_id": folder.id})

        await self._dispatch_transcription(record.id)
        return record

    async def _discard_upload(self, audio_url: str) -> None:
        try:
            await self.blob_store.delete(audio_url)
        except StorageError:
            logger.warning("Orphaned audio blob left behind: %s", audio_url, exc_info=True)

    async def _dispatch_transcription(self, record_id: int) -> None:
        if self.dispatcher is None:
            return
        try:
            await self.dispatcher.publish(record_id)
        except QueueError:
            # The record stays without a transcript until it is requested again
            logger.error(
                "Failed to dispatch transcription task",
                exc_info=True,
                extra={"record_id": record_id},
            )

    async def get_owned_record(self, owner_id: str, record_id: int) -> Record:
        """Resolve a record the caller owns through its folder"""
        record = await RecordCRUD.get_by_id(self.session, record_id)
        if record is None:
            raise NotFoundError("Record not found")
        if record.folder_id is None:
            raise ForbiddenError("Access denied")
        folder = await FolderCRUD.get_by_id(self.session, record.folder_id)
        if folder is None or folder.owner_id != owner_id:
            raise ForbiddenError("Access denied")
        return record

    async def get_record(self, owner_id: str, record_id: int) -> Record:
        return await self.get_owned_record(owner_id, record_id)

    async def get_audio(self, owner_id: str, record_id: int) -> bytes:
        record = await self.get_owned_record(owner_id, record_id)
        if not record.audio_url:
            raise NotFoundError("Audio file not found")
        data = await self.blob_store.download(record.audio_url)
        if data is None:
            raise NotFoundError("Audio file not found")
        return data

    async def get_pdf(self, owner_id: str, record_id: int) -> Tuple[str, bytes]:
        """Returns (title, pdf bytes)"""
        record = await self.get_owned_record(owner_id, record_id)
        segments = await TranscriptionCRUD.list_by_record(self.session, record.id)
        if not segments:
            raise NotFoundError("Transcription not found")

        renderer = self.pdf_renderer or PdfRenderer()
        try:
            data = await asyncio.to_thread(
                renderer.render_transcript,
                record.title,
                record.recorded_at,
                [(segment.start, segment.text) for segment in segments],
            )
        except PdfRenderError as e:
            raise InternalError("Failed to generate PDF") from e
        return record.title, data

    async def delete_record(self, owner_id: str, record_id: int) -> None:
        record = await self.get_owned_record(owner_id, record_id)
        await FolderService(self.session, self.blob_store).purge_record(record)
        logger.info("Record deleted", extra={"record_id": record_id})

    async def ingest_transcription(
        self, record_id: int, segments: Sequence[Tuple[float, float, str]]
    ) -> int:
        """
        Store the worker's segments for a record and rebuild its description.

        A redelivered callback replaces the earlier batch. Returns the number
        of segments stored.
        """
        record = await RecordCRUD.get_by_id(self.session, record_id)
        if record is None:
            raise NotFoundError("Record not found")
        if not segments:
            raise ValidationError("Segments list is empty")

        ordered = sorted(segments, key=lambda segment: segment[0])
        await TranscriptionCRUD.delete_by_record(self.session, record_id)
        await TranscriptionCRUD.create_batch(self.session, record_id, ordered)
        record.description = " ".join(text for _, _, text in ordered)
        await self.session.commit()

        logger.info("Transcription saved with %d segments", len(ordered), extra={"record_id": record_id})
        return len(ordered)
