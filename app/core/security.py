"""
Security utilities for authentication

Bearer tokens are issued by Keycloak and signed with the realm RS256 key.
The backend never issues tokens itself; it only verifies them.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Optional

from jose import JWTError, jwt

from app.core.errors import AuthenticationError
from app.core.logging import get_logger

logger = get_logger(__name__)

ALGORITHMS = ["RS256"]


@dataclass(frozen=True)
class Principal:
    """Authenticated caller extracted from a verified token"""

    subject: str
    issuer: str
    email: Optional[str] = None
    preferred_username: Optional[str] = None
    name: Optional[str] = None

    @property
    def full_name(self) -> Optional[str]:
        return self.name or self.preferred_username


def to_pem(public_key: str) -> str:
    """Wrap a bare base64 key (as published by Keycloak) into PEM"""
    if public_key.lstrip().startswith("-----BEGIN"):
        return public_key
    body = "".join(public_key.split())
    lines = [body[i:i + 64] for i in range(0, len(body), 64)]
    return "-----BEGIN PUBLIC KEY-----\n" + "\n".join(lines) + "\n-----END PUBLIC KEY-----\n"


class TokenVerifier:
    """
    Verify bearer tokens against the realm public key.

    The key is either given up front or fetched once through `key_loader`
    (first successful fetch is cached). Issuer must be one of `issuers`.
    """

    def __init__(
        self,
        issuers: Iterable[str],
        public_key: Optional[str] = None,
        key_loader: Optional[Callable[[], Awaitable[str]]] = None,
    ):
        self.issuers = set(issuers)
        self._public_key = to_pem(public_key) if public_key else None
        self._key_loader = key_loader
        self._lock = asyncio.Lock()

    async def _get_key(self) -> str:
        if self._public_key:
            return self._public_key
        if self._key_loader is None:
            raise AuthenticationError("Token verification is not configured")
        async with self._lock:
            if not self._public_key:
                try:
                    self._public_key = to_pem(await self._key_loader())
                except Exception as e:
                    logger.error("Failed to retrieve realm public key: %s", e)
                    raise AuthenticationError("Token verification is unavailable") from e
                logger.info("Retrieved realm public key for token verification")
        return self._public_key

    async def verify(self, token: str) -> Principal:
        key = await self._get_key()
        try:
            claims = jwt.decode(
                token,
                key,
                algorithms=ALGORITHMS,
                options={"verify_aud": False},
            )
        except JWTError as e:
            raise AuthenticationError() from e

        issuer = claims.get("iss")
        if issuer not in self.issuers:
            logger.warning("Rejected token from unexpected issuer %s", issuer)
            raise AuthenticationError()

        subject = claims.get("sub")
        email = claims.get("email")
        preferred_username = claims.get("preferred_username")
        if not subject or not (email or preferred_username):
            raise AuthenticationError()

        return Principal(
            subject=subject,
            issuer=issuer,
            email=email,
            preferred_username=preferred_username,
            name=claims.get("name"),
        )
