"""
Record endpoints

Upload, listing, audio and transcript export, and the transcription worker callback.
"""

from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status

from app.core.deps import CurrentPrincipalDep, RecordServiceDep, require_service_api_key
from app.schemas.common import error_responses
from app.schemas.record import (
    RecordPage,
    RecordResponse,
    TranscribeRequest,
    TranscribeResponse,
)
from app.services.record_service import RecordUpload

router = APIRouter()


def content_disposition(filename: str) -> str:
    """Attachment header carrying both an ASCII fallback and the UTF-8 name"""
    fallback = filename.encode("ascii", "replace").decode("ascii").replace('"', "'")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


@router.get(
    "",
    response_model=RecordPage,
    summary="Search the caller's records",
    responses=error_responses(401),
)
async def list_records(
    principal: CurrentPrincipalDep,
    record_service: RecordServiceDep,
    search: Optional[str] = Query(None, description="Substring of title or transcript"),
    folder_id: Optional[int] = Query(None, alias="folderId"),
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
):
    """Newest recordings first"""
    result = await record_service.list_records(principal.subject, search, folder_id, page, size)
    return RecordPage(
        content=[RecordResponse.model_validate(record) for record in result.records],
        total_elements=result.total,
        total_pages=result.total_pages,
    )


@router.post(
    "",
    response_model=RecordResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a recording",
    responses=error_responses(400, 401, 403, 404, 500),
)
async def create_record(
    principal: CurrentPrincipalDep,
    record_service: RecordServiceDep,
    datetime: Optional[str] = Form(None, description="ISO-8601 recording time"),
    title: Optional[str] = Form(None),
    category: Optional[str] = Form(None, description="Work, Study or Personal"),
    folder_id: Optional[int] = Form(None, alias="folderId"),
    place: Optional[str] = Form(None, description="'latitude,longitude'"),
    record_file: Optional[UploadFile] = File(None, alias="recordFile"),
):
    """
    Store the audio file and queue it for transcription.
    The record starts with duration 0 and no description.
    """
    upload = RecordUpload(
        datetime=datetime,
        title=title,
        category=category,
        folder_id=folder_id,
        filename=record_file.filename if record_file else None,
        data=await record_file.read() if record_file else None,
        content_type=record_file.content_type if record_file else None,
        place=place,
    )
    record = await record_service.create_record(principal.subject, upload)
    return RecordResponse.model_validate(record)


@router.get(
    "/{record_id}",
    response_model=RecordResponse,
    summary="Get record metadata",
    responses=error_responses(401, 403, 404),
)
async def get_record(record_id: int, principal: CurrentPrincipalDep, record_service: RecordServiceDep):
    record = await record_service.get_record(principal.subject, record_id)
    return RecordResponse.model_validate(record)


@router.delete(
    "/{record_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a record with its transcript and audio",
    responses=error_responses(401, 403, 404, 500),
)
async def delete_record(record_id: int, principal: CurrentPrincipalDep, record_service: RecordServiceDep):
    await record_service.delete_record(principal.subject, record_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{record_id}/audio",
    response_class=Response,
    summary="Download the audio file",
    responses={
        200: {"content": {"audio/mp4": {}}, "description": "Audio bytes"},
        **error_responses(401, 403, 404),
    },
)
async def get_audio(record_id: int, principal: CurrentPrincipalDep, record_service: RecordServiceDep):
    data = await record_service.get_audio(principal.subject, record_id)
    return Response(content=data, media_type="audio/mp4")


@router.get(
    "/{record_id}/pdf",
    response_class=Response,
    summary="Export the transcript as PDF",
    responses={
        200: {"content": {"application/pdf": {}}, "description": "PDF document"},
        **error_responses(401, 403, 404, 500),
    },
)
async def get_pdf(record_id: int, principal: CurrentPrincipalDep, record_service: RecordServiceDep):
    title, data = await record_service.get_pdf(principal.subject, record_id)
    return Response(
        content=data,
        media_type="application/pdf",
        headers={"Content-Disposition": content_disposition(f"{title}.pdf")},
    )


@router.post(
    "/{record_id}/transcribe",
    response_model=TranscribeResponse,
    dependencies=[Depends(require_service_api_key)],
    summary="Transcription worker callback",
    responses=error_responses(400, 401, 404),
)
async def transcribe(
    record_id: int,
    transcribe_in: TranscribeRequest,
    record_service: RecordServiceDep,
):
    """
    Called by the ML worker with the `X-API-Key` header:
    - **segments**: list of `{start, end, text}`, replaces any earlier transcript
    """
    stored = await record_service.ingest_transcription(
        record_id,
        [(segment.start, segment.end, segment.text) for segment in transcribe_in.segments],
    )
    return TranscribeResponse(
        message="Transcription saved successfully",
        record_id=record_id,
        segments=stored,
    )
