"""
Bootstrap accounts for a fresh database.

Only a PLATFORM account can create users, so an empty database needs one
seeded before anyone can log in. Run from the backend directory:

    python seed.py

SEED_PLATFORM_PHONE, SEED_PLATFORM_NAME and SEED_PLATFORM_PASSWORD configure
the platform account. SEED_DEMO_ACCOUNTS=false skips the demo manufacturer,
suppliers and general manager.
"""
import asyncio
import logging
import os
from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config import AsyncSessionLocal, LOG_LEVEL
from models import User
from routers.auth.helpers import auth_helpers
from routers.users.helpers import user_helpers

logger = logging.getLogger(__name__)

DEFAULT_PLATFORM_PHONE = "13900139000"
DEFAULT_PLATFORM_NAME = "包材合规审核中心"

DEMO_ACCOUNTS = {
    "manufacturer": {
        "name": "康美中药饮片有限公司",
        "role": "MANUFACTURER",
        "phone": "13800138001",
        "email": "contact@kangmei.com",
        "address": "广东省广州市天河区科技园路123号",
    },
    "supplier": {
        "name": "常青环保包装厂",
        "role": "SUPPLIER",
        "phone": "13600136003",
        "email": "sales@evergreen-pack.com",
        "address": "江苏省苏州市工业园区环保路456号",
    },
    "second_supplier": {
        "name": "华南玻璃制品厂",
        "role": "SUPPLIER",
        "phone": "13700137004",
        "email": "sales@huanan-glass.com",
        "address": "广东省深圳市宝安区工业大道789号",
    },
    "general_manager": {
        "name": "总经理",
        "role": "GENERAL_MANAGER",
        "phone": "13500135000",
        "email": "gm@tcm-platform.com",
    },
}


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


async def upsert_user(db: AsyncSession, fields: dict, password: Optional[str] = None) -> User:
    """Create the account for (phone, role) unless it already exists"""
    result = await db.execute(
        select(User).where(User.phone == fields["phone"], User.role == fields["role"])
    )
    user = result.scalar_one_or_none()

    if user is None:
        user = User(avatar=user_helpers.generate_avatar_url(), status="ACTIVE", **fields)
        db.add(user)
        logger.info(f"Created {fields['role']} account {fields['phone']}")
    else:
        logger.info(f"{fields['role']} account {fields['phone']} already exists")

    if password:
        user.password_hash = auth_helpers.hash_password(password)

    await db.flush()
    return user


async def seed_users(
    db: AsyncSession,
    platform_phone: Optional[str] = None,
    platform_name: Optional[str] = None,
    platform_password: Optional[str] = None,
    include_demo: Optional[bool] = None,
) -> Dict[str, User]:
    """Upsert the platform account and, unless disabled, the demo accounts"""
    platform_phone = platform_phone or os.getenv("SEED_PLATFORM_PHONE", DEFAULT_PLATFORM_PHONE)
    platform_name = platform_name or os.getenv("SEED_PLATFORM_NAME", DEFAULT_PLATFORM_NAME)
    platform_password = platform_password or os.getenv("SEED_PLATFORM_PASSWORD")
    if include_demo is None:
        include_demo = _env_flag("SEED_DEMO_ACCOUNTS", True)

    try:
        seeded = {}
        platform = await upsert_user(
            db, {"name": platform_name, "role": "PLATFORM", "phone": platform_phone}, platform_password
        )
        # Rerunning reactivates a disabled platform account
        platform.status = "ACTIVE"
        seeded["platform"] = platform

        if include_demo:
            for key, fields in DEMO_ACCOUNTS.items():
                seeded[key] = await upsert_user(db, fields)

        await db.commit()
        return seeded

    except Exception:
        await db.rollback()
        raise


async def main():
    if AsyncSessionLocal is None:
        raise Exception("Database not configured")

    async with AsyncSessionLocal() as db:
        seeded = await seed_users(db)

    platform = seeded["platform"]
    logger.info(
        f"Platform login: phone {platform.phone}, role PLATFORM"
        + ("" if platform.password_hash else ", no password")
    )


if __name__ == "__main__":
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    asyncio.run(main())
