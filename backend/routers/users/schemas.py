from pydantic import EmailStr, Field
from typing import Optional
from datetime import datetime
from enum import Enum
from utils.response_helpers import CamelModel


class UserRole(str, Enum):
    MANUFACTURER = "MANUFACTURER"
    SUPPLIER = "SUPPLIER"
    PLATFORM = "PLATFORM"
    GENERAL_MANAGER = "GENERAL_MANAGER"


# Roles that trade physical goods and therefore need a contact address
ADDRESS_REQUIRED_ROLES = {UserRole.MANUFACTURER.value, UserRole.SUPPLIER.value}


class UserCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    role: UserRole
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[EmailStr] = None
    address: Optional[str] = Field(None, max_length=500)
    password: Optional[str] = Field(None, min_length=6)


class UserUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    role: Optional[UserRole] = None
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[EmailStr] = None
    address: Optional[str] = Field(None, max_length=500)


class AvatarUpdate(CamelModel):
    avatar: str = Field(..., min_length=1)


class EmailUpdate(CamelModel):
    email: EmailStr


class PasswordUpdate(CamelModel):
    old_password: Optional[str] = None
    new_password: str = Field(..., min_length=6)


class UserResponse(CamelModel):
    id: str
    name: str
    role: str
    avatar: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    status: str
    has_password: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserSummary(CamelModel):
    id: str
    name: str
    role: str
