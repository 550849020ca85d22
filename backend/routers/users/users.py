from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from config import get_db
from routers.auth.auth import get_current_user
from dependencies.rbac import require_user_read, require_user_write, require_self_service
from utils.response_helpers import ApiResponse, safe_model_validate, safe_model_validate_list, user_to_dict
from .schemas import (
    UserCreate, UserUpdate, UserResponse, UserRole,
    AvatarUpdate, EmailUpdate, PasswordUpdate,
)
from .helpers import user_helpers
from typing import Optional, List
import logging
import uuid

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def _user_response(user) -> UserResponse:
    return safe_model_validate(UserResponse, user_to_dict(user))


@router.get("", response_model=ApiResponse[List[UserResponse]])
async def list_users(
    role: Optional[UserRole] = Query(None),
    current_user = Depends(get_current_user),
    _: bool = Depends(require_user_read),
    db: AsyncSession = Depends(get_db)
):
    """List accounts, newest first, optionally filtered by role"""
    try:
        users = await user_helpers.list_users(db, role.value if role else None)
        return ApiResponse(data=safe_model_validate_list(UserResponse, [user_to_dict(u) for u in users]))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error listing users: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to list users: {str(e)}"
        )


@router.post("", response_model=ApiResponse[UserResponse])
async def create_user(
    user_data: UserCreate,
    current_user = Depends(get_current_user),
    _: bool = Depends(require_user_write),
    db: AsyncSession = Depends(get_db)
):
    try:
        user = await user_helpers.create_user(db, user_data)
        return ApiResponse(data=_user_response(user))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating user: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create user: {str(e)}"
        )


@router.put("/{user_id}", response_model=ApiResponse[UserResponse])
async def update_user(
    user_id: uuid.UUID,
    user_data: UserUpdate,
    current_user = Depends(get_current_user),
    _: bool = Depends(require_user_write),
    db: AsyncSession = Depends(get_db)
):
    try:
        user = await user_helpers.update_user(db, user_id, user_data)
        return ApiResponse(data=_user_response(user))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating user {user_id}: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update user: {str(e)}"
        )


@router.patch("/{user_id}/status", response_model=ApiResponse[UserResponse])
async def toggle_user_status(
    user_id: uuid.UUID,
    current_user = Depends(get_current_user),
    _: bool = Depends(require_user_write),
    db: AsyncSession = Depends(get_db)
):
    """Flip ACTIVE <-> DISABLED"""
    try:
        user = await user_helpers.toggle_status(db, user_id, uuid.UUID(current_user["user_id"]))
        return ApiResponse(data=_user_response(user))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error toggling status for user {user_id}: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update user status: {str(e)}"
        )


@router.patch("/{user_id}/avatar", response_model=ApiResponse[UserResponse])
async def update_avatar(
    user_id: uuid.UUID,
    avatar_data: AvatarUpdate,
    current_user = Depends(get_current_user),
    _: bool = Depends(require_self_service),
    db: AsyncSession = Depends(get_db)
):
    try:
        user = await user_helpers.update_avatar(db, user_id, avatar_data.avatar, current_user)
        return ApiResponse(data=_user_response(user))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating avatar for user {user_id}: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update avatar: {str(e)}"
        )


@router.patch("/{user_id}/email", response_model=ApiResponse[UserResponse])
async def update_email(
    user_id: uuid.UUID,
    email_data: EmailUpdate,
    current_user = Depends(get_current_user),
    _: bool = Depends(require_self_service),
    db: AsyncSession = Depends(get_db)
):
    try:
        user = await user_helpers.update_email(db, user_id, email_data.email, current_user)
        return ApiResponse(data=_user_response(user))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating email for user {user_id}: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update email: {str(e)}"
        )


@router.patch("/{user_id}/password", response_model=ApiResponse[None])
async def change_password(
    user_id: uuid.UUID,
    password_data: PasswordUpdate,
    current_user = Depends(get_current_user),
    _: bool = Depends(require_self_service),
    db: AsyncSession = Depends(get_db)
):
    try:
        await user_helpers.change_password(
            db, user_id, password_data.old_password, password_data.new_password, current_user
        )
        return ApiResponse(message="Password updated")

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error changing password for user {user_id}: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to change password: {str(e)}"
        )
