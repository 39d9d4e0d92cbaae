"""
Admin authentication endpoint.
"""

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..schemas.auth import TokenResponse, UserLogin
from ..services.user_service import UserService, build_token_response

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/login", response_model=TokenResponse)
async def admin_login(
    login_data: UserLogin,
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Log in to the admin console; non-admin accounts get 403."""
    user = await UserService(db).authenticate_admin(login_data.email, login_data.password)
    return build_token_response(user)
