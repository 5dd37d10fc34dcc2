"""
Auth Service

Login, registration and token refresh, delegated to Keycloak.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from app.core.errors import (
    AuthenticationError,
    ConflictError,
    InternalError,
    ValidationError,
)
from app.core.logging import get_logger
from app.infra.keycloak import KeycloakClient, KeycloakError, KeycloakTokens, KeycloakUser

logger = get_logger(__name__)


@dataclass
class Profile:
    user_id: Optional[str]
    email: Optional[str]
    full_name: Optional[str]
    username: Optional[str]


@dataclass
class Registration:
    user_id: str
    profile: Profile
    tokens: Optional[KeycloakTokens] = None


def split_full_name(full_name: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """'Ada King Lovelace' -> ('Ada', 'King Lovelace')"""
    if not full_name or not full_name.strip():
        return None, None
    first, _, last = full_name.strip().partition(" ")
    return first, last.strip() or None


class AuthService:
    def __init__(self, keycloak: KeycloakClient):
        self.keycloak = keycloak

    async def login(self, email: str, password: str) -> Tuple[KeycloakTokens, Profile]:
        if not email or not email.strip() or not password:
            raise ValidationError("Email and password are required")
        email = email.strip()

        try:
            tokens = await self.keycloak.login(email, password)
        except KeycloakError as e:
            if e.status_code is None:
                raise InternalError("Identity provider is unavailable") from e
            raise AuthenticationError("Invalid email or password") from e

        user = await self._lookup_by_email(email)
        profile = Profile(
            user_id=user.id if user else None,
            email=(user.email if user else None) or email,
            full_name=user.full_name if user else None,
            username=user.username if user else email,
        )
        return tokens, profile

    async def register(
        self,
        email: str,
        password: str,
        full_name: Optional[str] = None,
        username: Optional[str] = None,
    ) -> Registration:
        first_name, last_name = split_full_name(full_name)
        username = username or email
        try:
            user_id = await self.keycloak.register_user(
                username=username,
                email=email,
                password=password,
                first_name=first_name,
                last_name=last_name,
            )
        except KeycloakError as e:
            if e.status_code == 409:
                raise ConflictError("User with this email already exists") from e
            raise InternalError("Registration failed") from e

        profile = Profile(
            user_id=user_id,
            email=email,
            full_name=" ".join(p for p in (first_name, last_name) if p) or None,
            username=username,
        )
        try:
            tokens = await self.keycloak.login(username, password)
        except KeycloakError:
            logger.warning("Auto-login after registration failed for %s", username, exc_info=True)
            return Registration(user_id=user_id, profile=profile)
        return Registration(user_id=user_id, profile=profile, tokens=tokens)

    async def refresh(self, refresh_token: Optional[str]) -> KeycloakTokens:
        if not refresh_token:
            raise ValidationError("Refresh token is required")
        try:
            tokens = await self.keycloak.refresh(refresh_token)
        except KeycloakError as e:
            if e.status_code is None:
                raise InternalError("Identity provider is unavailable") from e
            raise AuthenticationError("Invalid or expired refresh token") from e
        if not tokens.refresh_token:
            tokens.refresh_token = refresh_token
        return tokens

    async def _lookup_by_email(self, email: str) -> Optional[KeycloakUser]:
        # Profile enrichment only, login has already succeeded
        try:
            return await self.keycloak.get_user_by_email(email)
        except KeycloakError:
            logger.warning("Could not load Keycloak profile for %s", email, exc_info=True)
            return None
