"""User API schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from notes_api.core.passwords import check_password_length

Provider = Literal["local", "federated"]


class RegisterUserRequest(BaseModel):
    name: str = Field(min_length=1, max_length=64)
    email: EmailStr
    password: str = Field(min_length=6)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("Name is required for user")
        return stripped

    @field_validator("password")
    @classmethod
    def password_fits_hash(cls, value: str) -> str:
        return check_password_length(value)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)

    @field_validator("password")
    @classmethod
    def password_fits_hash(cls, value: str) -> str:
        return check_password_length(value)


class ChangePasswordRequest(BaseModel):
    current_password: str | None = Field(default=None, max_length=72)
    new_password: str = Field(min_length=6)

    @field_validator("new_password")
    @classmethod
    def password_fits_hash(cls, value: str) -> str:
        return check_password_length(value)


class UserPayload(BaseModel):
    """Identity fields exposed to clients and embedded in local tokens."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    name: str
    email: str


class AuthenticatedUser(UserPayload):
    access_token: str


class AuthResponse(BaseModel):
    success: bool = True
    message: str
    user: AuthenticatedUser


class UserProfile(UserPayload):
    picture: str | None = None
    provider: Provider
    created_at: datetime
    updated_at: datetime


class ProfileResponse(BaseModel):
    success: bool = True
    user: UserProfile


class MessageResponse(BaseModel):
    success: bool = True
    message: str
