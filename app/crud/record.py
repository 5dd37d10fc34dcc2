"""
CRUD operations for Record and TranscriptionSegment models.

Record and segment mutations do not commit: the record service owns the
transaction boundaries (one transaction per record on cleanup).
"""

from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.folder import Folder
from app.models.record import Record, RecordCategory, TranscriptionSegment


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class RecordCRUD:
    """CRUD operations for Record model"""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        folder_id: Optional[int],
        title: str,
        recorded_at: datetime,
        category: RecordCategory,
        audio_url: str,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        description: Optional[str] = None,
        duration: int = 0,
    ) -> Record:
        record = Record(
            folder_id=folder_id,
            title=title,
            description=description,
            recorded_at=recorded_at,
            latitude=latitude,
            longitude=longitude,
            duration=duration,
            category=category,
            audio_url=audio_url,
        )
        db.add(record)
        await db.commit()
        await db.refresh(record)
        return record

    @staticmethod
    async def get_by_id(db: AsyncSession, record_id: int) -> Optional[Record]:
        result = await db.execute(select(Record).where(Record.id == record_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def list_by_folder(db: AsyncSession, folder_id: int) -> list[Record]:
        result = await db.execute(
            select(Record).where(Record.folder_id == folder_id).order_by(Record.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def search(
        db: AsyncSession,
        owner_id: str,
        search: Optional[str],
        folder_id: Optional[int],
        page: int,
        size: int,
    ) -> tuple[list[Record], int]:
        """Owner-scoped search, returns one page and the unpaginated total"""
        conditions = [Folder.owner_id == owner_id]
        if search:
            pattern = f"%{_escape_like(search)}%"
            conditions.append(
                or_(
                    Record.title.ilike(pattern, escape="\\"),
                    Record.description.ilike(pattern, escape="\\"),
                )
            )
        if folder_id is not None:
            conditions.append(Record.folder_id == folder_id)

        total_result = await db.execute(
            select(func.count(Record.id))
            .join(Folder, Record.folder_id == Folder.id)
            .where(*conditions)
        )
        total = total_result.scalar_one()

        result = await db.execute(
            select(Record)
            .join(Folder, Record.folder_id == Folder.id)
            .where(*conditions)
            .order_by(Record.recorded_at.desc(), Record.id.desc())
            .offset(page * size)
            .limit(size)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def stats_by_owner(db: AsyncSession, owner_id: str) -> tuple[int, int]:
        """Number of records and total duration in seconds"""
        result = await db.execute(
            select(func.count(Record.id), func.coalesce(func.sum(Record.duration), 0))
            .join(Folder, Record.folder_id == Folder.id)
            .where(Folder.owner_id == owner_id)
        )
        count, seconds = result.one()
        return int(count), int(seconds)

    @staticmethod
    async def delete(db: AsyncSession, record_id: int) -> bool:
        result = await db.execute(delete(Record).where(Record.id == record_id))
        return result.rowcount > 0


class TranscriptionCRUD:
    """CRUD operations for TranscriptionSegment model"""

    @staticmethod
    async def create_batch(
        db: AsyncSession, record_id: int, segments: Iterable[tuple[float, float, str]]
    ) -> list[TranscriptionSegment]:
        rows = [
            TranscriptionSegment(record_id=record_id, start=start, end=end, text=text)
            for start, end, text in segments
        ]
        db.add_all(rows)
        await db.flush()
        return rows

    @staticmethod
    async def list_by_record(db: AsyncSession, record_id: int) -> list[TranscriptionSegment]:
        result = await db.execute(
            select(TranscriptionSegment)
            .where(TranscriptionSegment.record_id == record_id)
            .order_by(TranscriptionSegment.start, TranscriptionSegment.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def delete_by_record(db: AsyncSession, record_id: int) -> int:
        result = await db.execute(
            delete(TranscriptionSegment).where(TranscriptionSegment.record_id == record_id)
        )
        return result.rowcount
