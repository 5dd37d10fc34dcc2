"""
Folder endpoints
"""

from typing import List

from fastapi import APIRouter, Response, status

from app.core.deps import CurrentPrincipalDep, FolderServiceDep
from app.schemas.common import error_responses
from app.schemas.folder import FolderCreate, FolderResponse, FolderUpdate

router = APIRouter()


@router.get(
    "",
    response_model=List[FolderResponse],
    summary="List the caller's folders",
    responses=error_responses(401),
)
async def list_folders(principal: CurrentPrincipalDep, folder_service: FolderServiceDep):
    """The default Work, Study and Personal folders are created on first use"""
    folders = await folder_service.list_folders(principal.subject)
    return [FolderResponse.model_validate(folder) for folder in folders]


@router.post(
    "",
    response_model=FolderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a folder",
    responses=error_responses(400, 401),
)
async def create_folder(
    folder_in: FolderCreate,
    principal: CurrentPrincipalDep,
    folder_service: FolderServiceDep,
):
    folder = await folder_service.create_folder(
        principal.subject, folder_in.name, folder_in.description
    )
    return FolderResponse.model_validate(folder)


@router.put(
    "/{folder_id}",
    response_model=FolderResponse,
    summary="Rename a folder",
    responses=error_responses(400, 401, 403, 404),
)
async def update_folder(
    folder_id: int,
    folder_in: FolderUpdate,
    principal: CurrentPrincipalDep,
    folder_service: FolderServiceDep,
):
    folder = await folder_service.update_folder(
        principal.subject, folder_id, folder_in.name, folder_in.description
    )
    return FolderResponse.model_validate(folder)


@router.delete(
    "/{folder_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a folder with all its records",
    responses=error_responses(401, 403, 404, 500),
)
async def delete_folder(
    folder_id: int,
    principal: CurrentPrincipalDep,
    folder_service: FolderServiceDep,
):
    """
    Records, their transcripts and audio files are removed one record at a time.
    If a record cannot be removed the folder is kept with the remaining records.
    """
    await folder_service.delete_folder(principal.subject, folder_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
