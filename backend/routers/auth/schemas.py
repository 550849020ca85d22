import uuid
from pydantic import Field
from typing import Optional
from utils.response_helpers import CamelModel
from routers.users.schemas import UserResponse


# Request schemas
class UserLogin(CamelModel):
    # Optional here so a missing field yields the login error message instead of a schema error
    phone: Optional[str] = None
    role: Optional[str] = None
    password: Optional[str] = None


class ResetPasswordRequest(CamelModel):
    user_id: uuid.UUID


class ResetPasswordConfirm(CamelModel):
    token: str
    new_password: str = Field(..., min_length=6)


# Response schemas
class LoginResponse(CamelModel):
    user: UserResponse
    access_token: str
    token_type: str = "bearer"
