"""
Folder Service

Folder lifecycle and the cross-system cleanup performed when a folder is deleted.
"""

from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ForbiddenError, InternalError, NotFoundError, ValidationError
from app.core.logging import get_logger
from app.crud.folder import FolderCRUD
from app.crud.record import RecordCRUD, TranscriptionCRUD
from app.infra.storage import BlobStore, StorageError
from app.models.folder import DEFAULT_FOLDER_NAMES, Folder
from app.models.record import Record

logger = get_logger(__name__)


class FolderService:
    def __init__(self, session: AsyncSession, blob_store: Optional[BlobStore] = None):
        self.session = session
        self.blob_store = blob_store

    async def ensure_default_folders(self, owner_id: str) -> None:
        """Give an owner the standard folder set unless they already have it"""
        if await FolderCRUD.count_defaults(self.session, owner_id) >= len(DEFAULT_FOLDER_NAMES):
            return
        await FolderCRUD.create_defaults(self.session, owner_id)
        logger.info("Created default folders for user %s", owner_id)

    async def list_folders(self, owner_id: str) -> List[Folder]:
        await self.ensure_default_folders(owner_id)
        return await FolderCRUD.list_by_owner(self.session, owner_id)

    async def create_folder(
        self, owner_id: str, name: str, description: Optional[str] = None
    ) -> Folder:
        if not name or not name.strip():
            raise ValidationError("Folder name is required")
        folder = await FolderCRUD.create(self.session, owner_id, name, description)
        logger.info("Folder created", extra={"folder_id": folder.id})
        return folder

    async def get_owned_folder(self, owner_id: str, folder_id: int) -> Folder:
        folder = await FolderCRUD.get_by_id(self.session, folder_id)
        if folder is None:
            raise NotFoundError("Folder not found")
        if folder.owner_id != owner_id:
            raise ForbiddenError("Access denied")
        return folder

    async def update_folder(
        self, owner_id: str, folder_id: int, name: str, description: Optional[str] = None
    ) -> Folder:
        folder = await self.get_owned_folder(owner_id, folder_id)
        if not name or not name.strip():
            raise ValidationError("Folder name is required")
        return await FolderCRUD.update(self.session, folder, name, description)

    async def delete_folder(self, owner_id: str, folder_id: int) -> None:
        """
        Delete a folder and everything in it.

        Each record is removed in its own transaction, so a failure part way
        leaves the records already processed deleted and the folder intact.
        """
        folder = await self.get_owned_folder(owner_id, folder_id)

        records = await RecordCRUD.list_by_folder(self.session, folder.id)
        for record in records:
            await self.purge_record(record)

        try:
            deleted = await FolderCRUD.delete(self.session, folder.id)
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise InternalError("Failed to delete folder") from e
        if not deleted:
            raise InternalError("Failed to delete folder")
        logger.info("Folder deleted with %d records", len(records), extra={"folder_id": folder.id})

    async def purge_record(self, record: Record) -> None:
        """Delete segments and row in one transaction, then the audio blob"""
        record_id = record.id
        audio_url = record.audio_url
        try:
            await TranscriptionCRUD.delete_by_record(self.session, record_id)
            deleted = await RecordCRUD.delete(self.session, record_id)
            if not deleted:
                await self.session.rollback()
                raise InternalError(f"Failed to delete record {record_id}")
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise InternalError(f"Failed to delete record {record_id}") from e

        if audio_url and audio_url.strip() and self.blob_store is not None:
            try:
                await self.blob_store.delete(audio_url)
            except StorageError:
                logger.warning(
                    "Audio blob of deleted record was not removed: %s",
                    audio_url,
                    exc_info=True,
                    extra={"record_id": record_id},
                )
