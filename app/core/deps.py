"""
Dependency Injection

FastAPI dependencies for routes.
"""

import secrets
from typing import Annotated, Optional

from fastapi import Depends, Request
from fastapi.security import APIKeyHeader, HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import AuthenticationError
from app.core.security import Principal, TokenVerifier
from app.infra.db import get_db
from app.infra.keycloak import KeycloakClient
from app.infra.queue import TranscriptionDispatcher
from app.infra.storage import BlobStore
from app.services.auth_service import AuthService
from app.services.folder_service import FolderService
from app.services.pdf_service import PdfRenderer
from app.services.record_service import RecordService
from app.services.user_service import UserService

bearer_scheme = HTTPBearer(auto_error=False)
api_key_scheme = APIKeyHeader(name="X-API-Key", auto_error=False)

# Type aliases for common dependencies
SessionDep = Annotated[AsyncSession, Depends(get_db)]


# ---------- gateways (built once in create_app) ----------

def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store


def get_dispatcher(request: Request) -> TranscriptionDispatcher:
    return request.app.state.dispatcher


def get_pdf_renderer(request: Request) -> PdfRenderer:
    return request.app.state.pdf_renderer


def get_keycloak(request: Request) -> KeycloakClient:
    return request.app.state.keycloak


def get_token_verifier(request: Request) -> TokenVerifier:
    return request.app.state.token_verifier


BlobStoreDep = Annotated[BlobStore, Depends(get_blob_store)]
DispatcherDep = Annotated[TranscriptionDispatcher, Depends(get_dispatcher)]
PdfRendererDep = Annotated[PdfRenderer, Depends(get_pdf_renderer)]
KeycloakDep = Annotated[KeycloakClient, Depends(get_keycloak)]


# ---------- authentication ----------

async def get_current_principal(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
    verifier: Annotated[TokenVerifier, Depends(get_token_verifier)],
) -> Principal:
    """Verify the bearer token and return the caller"""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError()
    return await verifier.verify(credentials.credentials)


CurrentPrincipalDep = Annotated[Principal, Depends(get_current_principal)]


async def require_service_api_key(
    api_key: Annotated[Optional[str], Depends(api_key_scheme)],
) -> None:
    """Transcription worker callback guard"""
    expected = settings.transcription_api_key
    if not expected or not api_key:
        raise AuthenticationError("Invalid API key")
    if not secrets.compare_digest(api_key.encode(), expected.encode()):
        raise AuthenticationError("Invalid API key")


# ---------- services ----------

def get_folder_service(session: SessionDep, blob_store: BlobStoreDep) -> FolderService:
    return FolderService(session, blob_store)


def get_record_service(
    session: SessionDep,
    blob_store: BlobStoreDep,
    dispatcher: DispatcherDep,
    pdf_renderer: PdfRendererDep,
) -> RecordService:
    return RecordService(session, blob_store, dispatcher, pdf_renderer)


def get_user_service(session: SessionDep) -> UserService:
    return UserService(session)


def get_auth_service(keycloak: KeycloakDep) -> AuthService:
    return AuthService(keycloak)


FolderServiceDep = Annotated[FolderService, Depends(get_folder_service)]
RecordServiceDep = Annotated[RecordService, Depends(get_record_service)]
UserServiceDep = Annotated[UserService, Depends(get_user_service)]
AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]
