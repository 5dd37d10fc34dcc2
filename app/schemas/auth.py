"""
Auth Schemas
"""

from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class LoginRequest(BaseModel):
    email: str = Field(..., description="User email (or username)")
    password: str


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    fullname: Optional[str] = None
    username: Optional[str] = Field(None, description="Defaults to the email")


class ProfileResponse(BaseModel):
    user_id: Optional[str] = None
    email: Optional[str] = None
    full_name: Optional[str] = None
    username: Optional[str] = None


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: int
    token_type: str = "Bearer"


class LoginResponse(TokenResponse):
    user: ProfileResponse


class RegisterResponse(BaseModel):
    user_id: str
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    token_type: Optional[str] = None
    user: ProfileResponse
    message: str


class TokenInfoResponse(BaseModel):
    user_id: str
    email: Optional[str] = None
    full_name: Optional[str] = None


class RecordInfoResponse(BaseModel):
    user_id: str
    username: Optional[str] = None
    email: Optional[str] = None
    full_name: Optional[str] = None
    count_records: int
    count_minutes: int
