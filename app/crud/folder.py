"""
CRUD operations for Folder model.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.folder import DEFAULT_FOLDER_NAMES, Folder


class FolderCRUD:
    """CRUD operations for Folder model"""

    @staticmethod
    async def create(
        db: AsyncSession,
        owner_id: str,
        name: str,
        description: Optional[str] = None,
        is_default: bool = False,
    ) -> Folder:
        folder = Folder(
            owner_id=owner_id,
            name=name,
            description=description,
            is_default=is_default,
        )
        db.add(folder)
        await db.commit()
        await db.refresh(folder)
        return folder

    @staticmethod
    async def create_defaults(db: AsyncSession, owner_id: str) -> list[Folder]:
        """Create the standard folder set for an owner in one commit"""
        folders = [
            Folder(owner_id=owner_id, name=name, description=None, is_default=True)
            for name in DEFAULT_FOLDER_NAMES
        ]
        db.add_all(folders)
        await db.commit()
        return folders

    @staticmethod
    async def count_defaults(db: AsyncSession, owner_id: str) -> int:
        result = await db.execute(
            select(func.count(Folder.id)).where(
                Folder.owner_id == owner_id,
                Folder.is_default.is_(True),
            )
        )
        return result.scalar_one()

    @staticmethod
    async def get_by_id(db: AsyncSession, folder_id: int) -> Optional[Folder]:
        result = await db.execute(select(Folder).where(Folder.id == folder_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def list_by_owner(db: AsyncSession, owner_id: str) -> list[Folder]:
        result = await db.execute(
            select(Folder).where(Folder.owner_id == owner_id).order_by(Folder.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def update(
        db: AsyncSession, folder: Folder, name: str, description: Optional[str]
    ) -> Folder:
        folder.name = name
        folder.description = description
        folder.updated_at = datetime.now(timezone.utc)
        await db.commit()
        await db.refresh(folder)
        return folder

    @staticmethod
    async def delete(db: AsyncSession, folder_id: int) -> bool:
        result = await db.execute(delete(Folder).where(Folder.id == folder_id))
        await db.commit()
        return result.rowcount > 0
