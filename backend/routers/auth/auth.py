from fastapi import APIRouter, Depends, HTTPException, status, Request, BackgroundTasks
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from config import get_db, FRONTEND_URL
from models import User
from .schemas import (
    UserLogin,
    LoginResponse,
    ResetPasswordRequest,
    ResetPasswordConfirm,
)
from .helpers import auth_helpers
from routers.users.schemas import UserResponse
from utils.errors import AuthenticationError, NotFoundError
from utils.response_helpers import ApiResponse, safe_model_validate, user_to_dict
from utils.notifications import notify_user, get_password_reset_email, get_password_reset_sms
from typing import Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

security = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
):
    """Get current user from JWT token"""
    if credentials is None:
        raise AuthenticationError("Authentication required")

    payload = auth_helpers.verify_token(credentials.credentials)
    if payload.get("purpose"):
        # Reset tokens only work on /auth/reset-password/confirm
        raise AuthenticationError("Invalid token")
    user_id = auth_helpers.parse_user_id(payload["sub"])

    user = await db.get(User, user_id)
    if not user:
        logger.warning(f"Token for unknown user {user_id}")
        raise AuthenticationError("User not found")
    if user.status != "ACTIVE":
        logger.warning(f"Disabled user {user_id} attempted access")
        raise AuthenticationError("User is disabled")

    current_user = {
        "user_id": str(user.id),
        "role": user.role,
        "name": user.name,
    }

    request.state.current_user = current_user
    return current_user


@router.post("/login", response_model=ApiResponse[LoginResponse])
async def login(
    user_data: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    try:
        auth_helpers.require_login_fields(user_data.phone, user_data.role)

        result = await db.execute(
            select(User).where(
                User.phone == user_data.phone,
                User.role == user_data.role,
                User.status == "ACTIVE"
            )
        )
        user = result.scalar_one_or_none()

        if not user:
            raise AuthenticationError("User does not exist or is disabled")

        if user.password_hash and not auth_helpers.check_password(user.password_hash, user_data.password):
            logger.warning(f"Wrong password for user {user.id}")
            raise AuthenticationError("Invalid credentials")

        logger.info(f"User {user.id} logged in as {user.role}")

        return ApiResponse(data=LoginResponse(
            user=safe_model_validate(UserResponse, user_to_dict(user)),
            access_token=auth_helpers.create_access_token(user)
        ))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Login failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Login failed: {str(e)}"
        )


@router.post("/reset-password", response_model=ApiResponse[None])
async def reset_password(
    reset_data: ResetPasswordRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db)
):
    """Send a password reset link to the user's phone and email"""
    try:
        user = await db.get(User, reset_data.user_id)
        if not user:
            raise NotFoundError("User not found")

        token = auth_helpers.create_reset_token(user)
        reset_link = f"{FRONTEND_URL}/reset-password?token={token}"

        subject, body = get_password_reset_email(user.name, reset_link)
        background_tasks.add_task(
            notify_user, user.email, user.phone, subject, body, get_password_reset_sms(reset_link)
        )

        logger.info(f"Password reset requested for user {user.id}")

        return ApiResponse(
            message=f"Reset link sent to phone: {user.phone or '-'} and email: {user.email or '-'}"
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Password reset request failed: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Password reset failed: {str(e)}"
        )


@router.post("/reset-password/confirm", response_model=ApiResponse[None])
async def confirm_reset_password(
    confirm_data: ResetPasswordConfirm,
    db: AsyncSession = Depends(get_db)
):
    try:
        user_id = auth_helpers.verify_reset_token(confirm_data.token)

        user = await db.get(User, user_id)
        if not user or user.status != "ACTIVE":
            raise AuthenticationError("User does not exist or is disabled")

        user.password_hash = auth_helpers.hash_password(confirm_data.new_password)
        await db.commit()

        logger.info(f"Password reset completed for user {user.id}")
        return ApiResponse(message="Password reset successfully. You can now log in with your new password.")

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Password reset failed: {str(e)}")
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Password reset failed: {str(e)}"
        )


@router.get("/me", response_model=ApiResponse[UserResponse])
async def get_me(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get the current user's account"""
    user = await db.get(User, auth_helpers.parse_user_id(current_user["user_id"]))
    return ApiResponse(data=safe_model_validate(UserResponse, user_to_dict(user)))
