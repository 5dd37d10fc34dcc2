"""
User profile endpoints
"""

from fastapi import APIRouter

from app.core.deps import CurrentPrincipalDep, UserServiceDep
from app.schemas.auth import RecordInfoResponse
from app.schemas.common import error_responses

router = APIRouter()


@router.get(
    "/recordInfo",
    response_model=RecordInfoResponse,
    summary="Profile and recording statistics",
    responses=error_responses(401),
)
async def record_info(principal: CurrentPrincipalDep, user_service: UserServiceDep):
    """Number of records and total recorded minutes of the caller"""
    stats = await user_service.record_info(principal)
    return RecordInfoResponse(**vars(stats))
