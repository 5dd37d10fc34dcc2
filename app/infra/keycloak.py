"""
Keycloak client

Thin async wrapper around the realm token endpoint and the admin REST API.
"""

import time
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

# Refresh the cached admin token this many seconds before it expires
ADMIN_TOKEN_MARGIN_SECONDS = 60


class KeycloakError(Exception):
    """Keycloak call failed; status_code is the upstream HTTP status when there was one"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class KeycloakTokens:
    access_token: str
    expires_in: int
    token_type: str = "Bearer"
    refresh_token: Optional[str] = None
    refresh_expires_in: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "KeycloakTokens":
        return cls(
            access_token=payload["access_token"],
            expires_in=int(payload.get("expires_in", 0)),
            token_type=payload.get("token_type", "Bearer"),
            refresh_token=payload.get("refresh_token"),
            refresh_expires_in=payload.get("refresh_expires_in"),
        )


@dataclass
class KeycloakUser:
    id: Optional[str]
    username: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def full_name(self) -> Optional[str]:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) or None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "KeycloakUser":
        return cls(
            id=payload.get("id"),
            username=payload.get("username", ""),
            email=payload.get("email"),
            first_name=payload.get("firstName"),
            last_name=payload.get("lastName"),
        )


class KeycloakClient:
    def __init__(
        self,
        server_url: str | None = None,
        realm: str | None = None,
        client_id: str | None = None,
        client_secret: str | None = None,
        admin_username: str | None = None,
        admin_password: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.server_url = (server_url or settings.keycloak_server_url).rstrip("/")
        self.realm = realm or settings.keycloak_realm
        self.client_id = client_id or settings.keycloak_client_id
        self.client_secret = client_secret if client_secret is not None else settings.keycloak_client_secret
        self.admin_username = admin_username or settings.keycloak_admin_username
        self.admin_password = admin_password if admin_password is not None else settings.keycloak_admin_password
        self._timeout = timeout or settings.keycloak_timeout
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None
        self._admin_token: Optional[str] = None
        self._admin_token_expires_at = 0.0

    @property
    def token_url(self) -> str:
        return f"{self.server_url}/realms/{self.realm}/protocol/openid-connect/token"

    @property
    def admin_users_url(self) -> str:
        return f"{self.server_url}/admin/realms/{self.realm}/users"

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        return self._http

    async def close(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return await self.http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise KeycloakError(f"Keycloak is unreachable: {e}") from e

    # ---------- token endpoint ----------

    async def login(self, username: str, password: str) -> KeycloakTokens:
        response = await self._request(
            "POST",
            self.token_url,
            data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "grant_type": "password",
                "username": username,
                "password": password,
            },
        )
        if response.status_code != 200:
            logger.warning("Login failed for user %s: %s", username, _error_description(response))
            raise KeycloakError(_error_description(response) or "Authentication failed", response.status_code)
        logger.info("User %s successfully authenticated with Keycloak", username)
        return KeycloakTokens.from_payload(response.json())

    async def refresh(self, refresh_token: str) -> KeycloakTokens:
        response = await self._request(
            "POST",
            self.token_url,
            data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            },
        )
        if response.status_code != 200:
            raise KeycloakError("Token refresh failed", response.status_code)
        return KeycloakTokens.from_payload(response.json())

    async def get_realm_public_key(self) -> str:
        """Base64 DER public key published in the realm descriptor"""
        response = await self._request("GET", f"{self.server_url}/realms/{self.realm}")
        if response.status_code != 200:
            raise KeycloakError("Failed to get realm info", response.status_code)
        public_key = response.json().get("public_key")
        if not public_key:
            raise KeycloakError("Public key not found in realm info")
        return public_key

    # ---------- admin API ----------

    async def _get_admin_token(self) -> str:
        if self._admin_token and time.monotonic() < self._admin_token_expires_at - ADMIN_TOKEN_MARGIN_SECONDS:
            return self._admin_token

        response = await self._request(
            "POST",
            f"{self.server_url}/realms/master/protocol/openid-connect/token",
            data={
                "client_id": "admin-cli",
                "grant_type": "password",
                "username": self.admin_username,
                "password": self.admin_password,
            },
        )
        if response.status_code != 200:
            logger.error("Failed to get admin token: %s", response.status_code)
            raise KeycloakError("Failed to get admin token", response.status_code)

        tokens = KeycloakTokens.from_payload(response.json())
        self._admin_token = tokens.access_token
        self._admin_token_expires_at = time.monotonic() + tokens.expires_in
        logger.debug("Admin token obtained successfully")
        return self._admin_token

    async def _admin_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {await self._get_admin_token()}"}

    async def register_user(
        self,
        username: str,
        email: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> str:
        """Create an enabled user with a permanent password, returns the new user id"""
        representation = {
            "username": username,
            "email": email,
            "firstName": first_name,
            "lastName": last_name,
            "enabled": True,
            "emailVerified": False,
            "credentials": [{"type": "password", "value": password, "temporary": False}],
        }
        response = await self._request(
            "POST", self.admin_users_url, json=representation, headers=await self._admin_headers()
        )
        if response.status_code == 201:
            user_id = response.headers.get("Location", "").rstrip("/").rsplit("/", 1)[-1]
            logger.info("User %s registered in Keycloak with id %s", username, user_id)
            return user_id
        if response.status_code == 409:
            logger.warning("User %s already exists in Keycloak", username)
            raise KeycloakError("User already exists", 409)
        logger.error("Failed to register user %s: %s", username, response.text)
        raise KeycloakError("Registration failed", response.status_code)

    async def get_user_by_id(self, user_id: str) -> Optional[KeycloakUser]:
        response = await self._request(
            "GET", f"{self.admin_users_url}/{user_id}", headers=await self._admin_headers()
        )
        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise KeycloakError(f"Failed to get user info: {response.status_code}", response.status_code)
        return KeycloakUser.from_payload(response.json())

    async def get_user_by_email(self, email: str) -> Optional[KeycloakUser]:
        response = await self._request(
            "GET",
            self.admin_users_url,
            params={"email": email, "exact": "true"},
            headers=await self._admin_headers(),
        )
        if response.status_code != 200:
            raise KeycloakError(f"Failed to search user: {response.status_code}", response.status_code)
        users = response.json()
        return KeycloakUser.from_payload(users[0]) if users else None


def _error_description(response: httpx.Response) -> Optional[str]:
    try:
        payload = response.json()
    except ValueError:
        return response.text or None
    if not isinstance(payload, dict):
        return None
    return payload.get("error_description") or payload.get("errorMessage") or payload.get("error")
