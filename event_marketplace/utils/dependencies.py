"""
FastAPI dependencies for authentication and authorization.
"""

from typing import Callable, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.user import User, UserRole
from ..services.user_service import UserService
from .auth import verify_token
from .logging_config import log_security_event

# HTTP Bearer token scheme
security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


async def _user_from_token(token: str, db: AsyncSession) -> Optional[User]:
    token_data = verify_token(token)
    if token_data is None or token_data.user_id is None:
        return None
    try:
        user_id = UUID(token_data.user_id)
    except ValueError:
        return None
    return await UserService(db).get_user_by_id(user_id)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Get the current authenticated user from JWT token.

    Args:
        credentials: HTTP Bearer credentials
        db: Database session

    Returns:
        The authenticated user

    Raises:
        HTTPException: If token is invalid, the user is unknown or deactivated
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    user = await _user_from_token(credentials.credentials, db)
    if user is None:
        raise credentials_exception

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account has been deactivated"
        )

    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    db: AsyncSession = Depends(get_db)
) -> Optional[User]:
    """The authenticated user for public endpoints, or None for anonymous callers."""
    if credentials is None:
        return None
    user = await _user_from_token(credentials.credentials, db)
    if user is None or not user.is_active:
        return None
    return user


def require_roles(*roles: UserRole) -> Callable:
    """
    Dependency factory restricting an endpoint to the given roles.

    Returns:
        Dependency resolving to the current user when their role is allowed
    """
    async def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            log_security_event(
                "forbidden_role",
                {"user_id": str(current_user.id), "role": current_user.role.value},
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not enough permissions"
            )
        return current_user

    return dependency


get_current_admin_user = require_roles(UserRole.ADMIN)
