"""
User Service

Profile views built from the verified token and the owner's record statistics.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import Principal
from app.crud.record import RecordCRUD
from app.services.folder_service import FolderService


@dataclass
class RecordStats:
    user_id: str
    username: Optional[str]
    email: Optional[str]
    full_name: Optional[str]
    count_records: int
    count_minutes: int


class UserService:
    def __init__(self, session: AsyncSession):
        self.session = session

    @staticmethod
    def token_info(principal: Principal) -> dict:
        return {
            "user_id": principal.subject,
            "email": principal.email,
            "full_name": principal.full_name,
        }

    async def record_info(self, principal: Principal) -> RecordStats:
        await FolderService(self.session).ensure_default_folders(principal.subject)
        count, seconds = await RecordCRUD.stats_by_owner(self.session, principal.subject)
        return RecordStats(
            user_id=principal.subject,
            username=principal.preferred_username,
            email=principal.email,
            full_name=principal.full_name,
            count_records=count,
            count_minutes=seconds // 60,
        )
