"""
Token verification tests
"""

from unittest.mock import AsyncMock

import pytest

from app.core.errors import AuthenticationError
from app.core.security import TokenVerifier, to_pem

ISSUER = "http://keycloak.test/realms/dictophone"


@pytest.fixture
def verifier(rsa_public_pem: str) -> TokenVerifier:
    return TokenVerifier([ISSUER], public_key=rsa_public_pem)


class TestTokenVerifier:
    @pytest.mark.asyncio
    async def test_valid_token(self, verifier: TokenVerifier, make_token):
        principal = await verifier.verify(make_token("user-a", name="Ada"))
        assert principal.subject == "user-a"
        assert principal.email == "a@example.com"
        assert principal.issuer == ISSUER
        assert principal.full_name == "Ada"

    @pytest.mark.asyncio
    async def test_unknown_issuer(self, verifier: TokenVerifier, make_token):
        with pytest.raises(AuthenticationError):
            await verifier.verify(make_token(issuer="http://evil.test/realms/dictophone"))

    @pytest.mark.asyncio
    async def test_expired(self, verifier: TokenVerifier, make_token):
        with pytest.raises(AuthenticationError):
            await verifier.verify(make_token(expires_in=-60))

    @pytest.mark.asyncio
    async def test_needs_email_or_username(self, verifier: TokenVerifier, make_token):
        principal = await verifier.verify(make_token(email=None))
        assert principal.preferred_username == "user-a"

        with pytest.raises(AuthenticationError):
            await verifier.verify(make_token(email=None, preferred_username=None))

    @pytest.mark.asyncio
    async def test_tampered_signature(self, verifier: TokenVerifier, make_token):
        header, payload, signature = make_token().split(".")
        with pytest.raises(AuthenticationError):
            await verifier.verify(f"{header}.{payload}.{signature[::-1]}")

    @pytest.mark.asyncio
    async def test_key_loaded_once(self, rsa_public_pem: str, make_token):
        loader = AsyncMock(return_value=rsa_public_pem)
        verifier = TokenVerifier([ISSUER], key_loader=loader)

        await verifier.verify(make_token())
        await verifier.verify(make_token())
        loader.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_key_loader_failure(self, make_token):
        verifier = TokenVerifier([ISSUER], key_loader=AsyncMock(side_effect=RuntimeError("down")))
        with pytest.raises(AuthenticationError):
            await verifier.verify(make_token())


def test_to_pem_wraps_bare_key():
    pem = to_pem("A" * 100)
    lines = pem.strip().splitlines()
    assert lines[0] == "-----BEGIN PUBLIC KEY-----"
    assert lines[-1] == "-----END PUBLIC KEY-----"
    assert lines[1] == "A" * 64


def test_to_pem_keeps_pem(rsa_public_pem: str):
    assert to_pem(rsa_public_pem) == rsa_public_pem
