"""
Authentication API endpoints.
"""

from typing import Any

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_db
from ..schemas.auth import (
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    ResetPasswordRequest,
    TokenResponse,
    UserLogin,
    UserRegistration,
)
from ..services.user_service import UserService, build_token_response

router = APIRouter(prefix="/auth", tags=["authentication"])

RESET_REQUESTED_MESSAGE = "If an account exists with this email, a password reset link has been sent"


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    user_data: UserRegistration,
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Register a new user.

    Providers must name the category of service they offer.

    Returns:
        Token response with user information
    """
    user = await UserService(db).create_user(user_data)
    return build_token_response(user)


@router.post("/login", response_model=TokenResponse)
async def login_user(
    login_data: UserLogin,
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Authenticate user and return access token.

    Wrong credentials give 401, a deactivated account 403.
    """
    user = await UserService(db).authenticate_user(login_data.email, login_data.password)
    return build_token_response(user)


@router.post("/forgot-password", response_model=ForgotPasswordResponse)
async def forgot_password(
    request: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Start a password reset.

    The response is the same whether or not the e-mail is known. Outside
    production the reset token is returned so it can be used without mail.
    """
    token = await UserService(db).request_password_reset(request.email)
    return ForgotPasswordResponse(
        message=RESET_REQUESTED_MESSAGE,
        reset_token=token if token and settings.environment != "production" else None,
    )


@router.post("/reset-password", response_model=TokenResponse)
async def reset_password(
    request: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Set a new password with a reset token and log the user in."""
    user = await UserService(db).reset_password(request.token, request.password)
    return build_token_response(user)
