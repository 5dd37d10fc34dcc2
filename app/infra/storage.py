"""
S3-compatible blob storage

Audio files are stored in a single bucket. The locator handed back to callers
is "<endpoint>/<bucket>/<key>" so that it can also be fetched over plain HTTP
when the S3 API path fails.
"""

import asyncio
import uuid
from pathlib import PurePosixPath
from typing import Any, Optional

import boto3
import httpx
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)


class StorageError(Exception):
    """Blob store operation failed"""


class BlobStore:
    def __init__(
        self,
        endpoint: str | None = None,
        bucket: str | None = None,
        region: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        client: Any = None,
        http_timeout: float = 30.0,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.endpoint = (endpoint or settings.s3_endpoint).rstrip("/")
        self.bucket = bucket or settings.s3_bucket
        self.region = region or settings.s3_region
        self._access_key = access_key if access_key is not None else settings.s3_access_key
        self._secret_key = secret_key if secret_key is not None else settings.s3_secret_key
        self._client = client
        self._http_timeout = http_timeout
        self._http_transport = http_transport

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client(
                "s3",
                endpoint_url=self.endpoint,
                region_name=self.region,
                aws_access_key_id=self._access_key or None,
                aws_secret_access_key=self._secret_key or None,
                config=BotoConfig(s3={"addressing_style": "path"}),  # MinIO
            )
        return self._client

    def build_key(self, filename: str) -> str:
        """Fresh key per upload, the client filename is kept only as a suffix"""
        name = PurePosixPath(filename or "recording.m4a").name or "recording.m4a"
        return f"audio/{uuid.uuid4()}-{name}"

    def locator_for(self, key: str) -> str:
        return f"{self.endpoint}/{self.bucket}/{key}"

    def key_from_locator(self, locator: str) -> Optional[str]:
        marker = f"{self.bucket}/"
        if marker not in locator:
            return None
        key = locator.split(marker, 1)[1]
        return key or None

    async def upload(self, data: bytes, filename: str, content_type: str = "audio/m4a") -> str:
        """Store bytes under a generated key and return the locator"""
        key = self.build_key(filename)
        try:
            await asyncio.to_thread(
                self.client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("Failed to upload file %s", filename, exc_info=True)
            raise StorageError(f"Failed to upload file {filename}") from e

        logger.info("File uploaded successfully: %s (%d bytes)", key, len(data))
        return self.locator_for(key)

    async def download(self, locator: str) -> Optional[bytes]:
        """
        Fetch bytes by locator.

        Tries the S3 API first and falls back to a plain HTTP GET of the
        locator. Returns None when neither path yields the object.
        """
        key = self.key_from_locator(locator)
        if key:
            try:
                return await asyncio.to_thread(self._get_object, key)
            except (BotoCoreError, ClientError):
                logger.warning(
                    "Failed to download %s from S3, falling back to HTTP", key, exc_info=True
                )
        return await self._download_via_http(locator)

    async def delete(self, locator: str) -> None:
        key = self.key_from_locator(locator)
        if not key:
            logger.warning("Cannot delete object, no key in locator %s", locator)
            return
        try:
            await asyncio.to_thread(self.client.delete_object, Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Failed to delete object {key}") from e
        logger.info("Deleted S3 object: %s", key)

    def _get_object(self, key: str) -> bytes:
        response = self.client.get_object(Bucket=self.bucket, Key=key)
        return response["Body"].read()

    async def _download_via_http(self, locator: str) -> Optional[bytes]:
        if not locator.startswith(("http://", "https://")):
            return None
        logger.info("Downloading file via HTTP fallback: %s", locator)
        try:
            async with httpx.AsyncClient(
                timeout=self._http_timeout, transport=self._http_transport
            ) as client:
                response = await client.get(locator)
        except httpx.HTTPError:
            logger.error("HTTP fallback download failed for %s", locator, exc_info=True)
            return None
        if response.status_code != 200:
            logger.warning("HTTP fallback returned %s for %s", response.status_code, locator)
            return None
        return response.content
