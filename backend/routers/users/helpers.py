from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from models import User
from routers.auth.helpers import auth_helpers
from utils.errors import ValidationError, AuthorizationError, NotFoundError
from .schemas import UserCreate, UserUpdate, ADDRESS_REQUIRED_ROLES
from typing import List, Optional
import uuid
import logging

logger = logging.getLogger(__name__)


class UserHelpers:
    """Helper functions for user account operations"""

    def generate_avatar_url(self) -> str:
        """Placeholder avatar for new accounts"""
        return f"https://picsum.photos/seed/{uuid.uuid4().hex[:12]}/200/200"

    def validate_address(self, role: Optional[str], address: Optional[str]) -> None:
        if role in ADDRESS_REQUIRED_ROLES and not (address or "").strip():
            raise ValidationError("Manufacturers and suppliers must have a contact address")

    async def get_user(self, db: AsyncSession, user_id: uuid.UUID) -> User:
        user = await db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    async def list_users(self, db: AsyncSession, role: Optional[str] = None) -> List[User]:
        query = select(User)
        if role:
            query = query.where(User.role == role)
        query = query.order_by(User.created_at.desc())

        result = await db.execute(query)
        return result.scalars().all()

    async def ensure_phone_available(
        self,
        db: AsyncSession,
        phone: Optional[str],
        role: str,
        exclude_user_id: Optional[uuid.UUID] = None
    ) -> None:
        """A phone number identifies one account per role"""
        if not phone:
            return

        query = select(User.id).where(User.phone == phone, User.role == role)
        if exclude_user_id is not None:
            query = query.where(User.id != exclude_user_id)

        result = await db.execute(query)
        if result.first():
            raise ValidationError(f"Phone {phone} is already registered for role {role}")

    async def create_user(self, db: AsyncSession, user_data: UserCreate) -> User:
        role = user_data.role.value
        self.validate_address(role, user_data.address)
        await self.ensure_phone_available(db, user_data.phone, role)

        user = User(
            name=user_data.name,
            role=role,
            phone=user_data.phone,
            email=user_data.email,
            address=user_data.address,
            avatar=self.generate_avatar_url(),
            status="ACTIVE",
            password_hash=auth_helpers.hash_password(user_data.password) if user_data.password else None
        )

        db.add(user)
        await db.commit()
        await db.refresh(user)

        logger.info(f"Created {role} user {user.id}")
        return user

    async def update_user(self, db: AsyncSession, user_id: uuid.UUID, user_data: UserUpdate) -> User:
        user = await self.get_user(db, user_id)
        changes = user_data.model_dump(exclude_unset=True)

        if changes.get("role") is not None:
            changes["role"] = changes["role"].value if hasattr(changes["role"], "value") else changes["role"]

        role = changes.get("role") or user.role
        address = changes["address"] if "address" in changes else user.address
        phone = changes["phone"] if "phone" in changes else user.phone

        self.validate_address(role, address)
        await self.ensure_phone_available(db, phone, role, exclude_user_id=user.id)

        for field, value in changes.items():
            if field in ("name", "role") and value is None:
                continue
            setattr(user, field, value)

        await db.commit()
        await db.refresh(user)

        logger.info(f"Updated user {user.id}: {sorted(changes.keys())}")
        return user

    async def toggle_status(self, db: AsyncSession, user_id: uuid.UUID, actor_id: uuid.UUID) -> User:
        """ACTIVE <-> DISABLED. Platform users cannot lock themselves out."""
        user = await self.get_user(db, user_id)

        if user.status == "ACTIVE" and user.id == actor_id:
            raise ValidationError("You cannot disable your own account")

        user.status = "DISABLED" if user.status == "ACTIVE" else "ACTIVE"

        await db.commit()
        await db.refresh(user)

        logger.info(f"User {user.id} is now {user.status} (by {actor_id})")
        return user

    async def update_avatar(self, db: AsyncSession, user_id: uuid.UUID, avatar: str, current_user: dict) -> User:
        if str(user_id) != current_user["user_id"] and current_user["role"] != "PLATFORM":
            raise AuthorizationError("You can only change your own avatar")

        user = await self.get_user(db, user_id)
        user.avatar = avatar

        await db.commit()
        await db.refresh(user)
        return user

    async def update_email(self, db: AsyncSession, user_id: uuid.UUID, email: str, current_user: dict) -> User:
        if str(user_id) != current_user["user_id"]:
            raise AuthorizationError("You can only change your own email")

        user = await self.get_user(db, user_id)
        user.email = email

        await db.commit()
        await db.refresh(user)
        return user

    async def change_password(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        old_password: Optional[str],
        new_password: str,
        current_user: dict
    ) -> User:
        if str(user_id) != current_user["user_id"]:
            raise AuthorizationError("You can only change your own password")

        user = await self.get_user(db, user_id)

        if user.password_hash:
            if not old_password:
                raise ValidationError("Current password is required")
            if not auth_helpers.check_password(user.password_hash, old_password):
                raise AuthorizationError("Current password is incorrect")

        user.password_hash = auth_helpers.hash_password(new_password)

        await db.commit()
        await db.refresh(user)

        logger.info(f"Password changed for user {user.id}")
        return user


user_helpers = UserHelpers()
