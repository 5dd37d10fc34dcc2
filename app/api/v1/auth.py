"""
Authentication endpoints

Credentials are checked by Keycloak; this API only relays tokens.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.deps import AuthServiceDep, CurrentPrincipalDep
from app.schemas.auth import (
    LoginRequest,
    LoginResponse,
    ProfileResponse,
    RegisterRequest,
    RegisterResponse,
    TokenInfoResponse,
    TokenResponse,
)
from app.schemas.common import error_responses
from app.services.user_service import UserService

router = APIRouter()

refresh_scheme = HTTPBearer(auto_error=False, description="Refresh token")


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Log in with email and password",
    responses=error_responses(400, 401),
)
async def login(login_in: LoginRequest, auth_service: AuthServiceDep):
    """
    Exchange credentials for Keycloak tokens:
    - **email**: account email or username
    - **password**: account password
    """
    tokens, profile = await auth_service.login(login_in.email, login_in.password)
    return LoginResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        expires_in=tokens.expires_in,
        token_type=tokens.token_type,
        user=ProfileResponse(**vars(profile)),
    )


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account",
    responses=error_responses(400, 409, 500),
)
async def register(register_in: RegisterRequest, auth_service: AuthServiceDep):
    """
    Create the account in Keycloak and log it in:
    - **email**: becomes the username unless one is given
    - **password**: at least 6 characters
    - **fullname**: split into first and last name
    """
    registration = await auth_service.register(
        email=register_in.email,
        password=register_in.password,
        full_name=register_in.fullname,
        username=register_in.username,
    )
    tokens = registration.tokens
    if tokens is None:
        return RegisterResponse(
            user_id=registration.user_id,
            user=ProfileResponse(**vars(registration.profile)),
            message="User registered successfully, please log in",
        )
    return RegisterResponse(
        user_id=registration.user_id,
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        expires_in=tokens.expires_in,
        token_type=tokens.token_type,
        user=ProfileResponse(**vars(registration.profile)),
        message="User registered successfully",
    )


@router.post(
    "/refresh",
    response_model=TokenResponse,
    summary="Refresh the access token",
    responses=error_responses(400, 401),
)
async def refresh(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(refresh_scheme)],
    auth_service: AuthServiceDep,
):
    """Send the refresh token as `Authorization: Bearer <refresh_token>`"""
    tokens = await auth_service.refresh(credentials.credentials if credentials else None)
    return TokenResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        expires_in=tokens.expires_in,
        token_type=tokens.token_type,
    )


@router.post(
    "/loginOnToken",
    response_model=TokenInfoResponse,
    summary="Resolve the caller of a bearer token",
    responses=error_responses(401),
)
async def login_on_token(principal: CurrentPrincipalDep):
    return TokenInfoResponse(**UserService.token_info(principal))
