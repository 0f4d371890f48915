"""User routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from notes_api.routes.dependencies import CurrentUser, get_user_service
from notes_api.schemas.error import ErrorResponse
from notes_api.schemas.user import (
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    MessageResponse,
    ProfileResponse,
    RegisterUserRequest,
)
from notes_api.services.users import UserService

router = APIRouter(prefix="/users", tags=["Users"])

ACCESS_TOKEN_HEADER = "x-access-token"


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def register_user(
    payload: RegisterUserRequest,
    response: Response,
    service: Annotated[UserService, Depends(get_user_service)],
) -> AuthResponse:
    user = await service.register(name=payload.name, email=payload.email, password=payload.password)
    response.headers[ACCESS_TOKEN_HEADER] = user.access_token
    return AuthResponse(message="User registration successful", user=user)


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
async def login_user(
    payload: LoginRequest,
    response: Response,
    service: Annotated[UserService, Depends(get_user_service)],
) -> AuthResponse:
    user = await service.login(email=payload.email, password=payload.password)
    response.headers[ACCESS_TOKEN_HEADER] = user.access_token
    return AuthResponse(message="User login successful", user=user)


@router.get("/me", response_model=ProfileResponse, responses={401: {"model": ErrorResponse}})
async def get_profile(
    user: CurrentUser,
    service: Annotated[UserService, Depends(get_user_service)],
) -> ProfileResponse:
    return ProfileResponse(user=service.profile(user))


@router.put(
    "/me/password",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
async def change_password(
    payload: ChangePasswordRequest,
    user: CurrentUser,
    service: Annotated[UserService, Depends(get_user_service)],
) -> MessageResponse:
    await service.change_password(
        user,
        current_password=payload.current_password,
        new_password=payload.new_password,
    )
    return MessageResponse(message="Password has been changed")
