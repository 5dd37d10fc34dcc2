"""
Conftest
"""

import os

# Settings are read once at import time
os.environ.setdefault("TRANSCRIPTION_API_KEY", "test-api-key")
os.environ.setdefault("KEYCLOAK_SERVER_URL", "http://keycloak.test")
os.environ.setdefault("KEYCLOAK_REALM", "dictophone")

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Optional

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.deps import get_blob_store, get_db, get_dispatcher, get_token_verifier
from app.core.security import TokenVerifier
from app.infra.queue import QueueError
from app.infra.storage import StorageError
from app.main import app
from app.models.base import Base

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"
ISSUER = "http://keycloak.test/realms/dictophone"
API_KEY = "test-api-key"


# ============ Fakes ============

class FakeBlobStore:
    """In-memory stand-in for the S3 gateway"""

    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self.deleted: list[str] = []
        self.fail_uploads = False

    async def upload(self, data: bytes, filename: str, content_type: str = "audio/m4a") -> str:
        if self.fail_uploads:
            raise StorageError("upload refused")
        locator = f"http://s3.test/records/audio/{len(self.objects)}-{filename}"
        self.objects[locator] = data
        return locator

    async def download(self, locator: str) -> Optional[bytes]:
        return self.objects.get(locator)

    async def delete(self, locator: str) -> None:
        self.objects.pop(locator, None)
        self.deleted.append(locator)


class FakeDispatcher:
    def __init__(self):
        self.published: list[int] = []
        self.fail = False

    async def publish(self, record_id: int) -> None:
        if self.fail:
            raise QueueError("broker down")
        self.published.append(record_id)


# ============ Keys and tokens ============

@pytest.fixture(scope="session")
def rsa_private_pem() -> str:
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()


@pytest.fixture(scope="session")
def rsa_public_pem(rsa_private_pem: str) -> str:
    key = serialization.load_pem_private_key(rsa_private_pem.encode(), password=None)
    return key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()


@pytest.fixture(scope="session")
def make_token(rsa_private_pem: str):
    """Build a realm-signed access token for a subject"""

    def _make_token(
        subject: str = "user-a",
        email: Optional[str] = "a@example.com",
        issuer: str = ISSUER,
        expires_in: int = 300,
        **claims,
    ) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": subject,
            "iss": issuer,
            "iat": now,
            "exp": now + timedelta(seconds=expires_in),
            "preferred_username": claims.pop("preferred_username", subject),
            **claims,
        }
        if email:
            payload["email"] = email
        return jwt.encode(payload, rsa_private_pem, algorithm="RS256")

    return _make_token


@pytest.fixture
def auth_headers(make_token):
    def _auth_headers(subject: str = "user-a", **claims) -> dict[str, str]:
        return {"Authorization": f"Bearer {make_token(subject, **claims)}"}

    return _auth_headers


# ============ Database ============

@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def test_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ============ Application ============

@pytest.fixture
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def dispatcher() -> FakeDispatcher:
    return FakeDispatcher()


@pytest.fixture
async def client(
    session_factory, blob_store, dispatcher, rsa_public_pem
) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db():
        async with session_factory() as session:
            yield session

    verifier = TokenVerifier([ISSUER], public_key=rsa_public_pem)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_token_verifier] = lambda: verifier
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


# ============ Helpers ============

@pytest.fixture
def upload_record(client: AsyncClient):
    """POST /records as multipart, returns the response"""

    async def _upload_record(
        headers: dict[str, str],
        folder_id: Optional[int],
        title: Optional[str] = "Standup",
        category: Optional[str] = "Work",
        recorded_at: Optional[str] = "2025-01-01T10:00:00",
        place: Optional[str] = None,
        audio: Optional[bytes] = b"fake-m4a-bytes",
        filename: str = "standup.m4a",
    ):
        data = {}
        for key, value in (
            ("datetime", recorded_at),
            ("title", title),
            ("category", category),
            ("folderId", folder_id),
            ("place", place),
        ):
            if value is not None:
                data[key] = str(value)
        files = {"recordFile": (filename, audio, "audio/m4a")} if audio is not None else None
        return await client.post("/records", data=data, files=files, headers=headers)

    return _upload_record


@pytest.fixture
def transcribe(client: AsyncClient):
    async def _transcribe(record_id: int, segments: list[dict], api_key: Optional[str] = API_KEY):
        headers = {"X-API-Key": api_key} if api_key is not None else {}
        return await client.post(
            f"/records/{record_id}/transcribe", json={"segments": segments}, headers=headers
        )

    return _transcribe
