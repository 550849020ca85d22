from config import JWT_SECRET_KEY, JWT_ALGORITHM, JWT_ACCESS_TOKEN_EXPIRE_MINUTES, PASSWORD_RESET_EXPIRE_MINUTES
from utils.errors import AuthenticationError, AuthorizationError, ValidationError
from werkzeug.security import generate_password_hash, check_password_hash
from datetime import datetime, timedelta, timezone
from typing import Optional
import jwt
import uuid
import logging

logger = logging.getLogger(__name__)

RESET_TOKEN_PURPOSE = "password_reset"


class AuthHelpers:
    """Helper functions for authentication operations"""

    def hash_password(self, password: str) -> str:
        return generate_password_hash(password)

    def check_password(self, password_hash: Optional[str], password: Optional[str]) -> bool:
        if not password_hash or not password:
            return False
        return check_password_hash(password_hash, password)

    def _encode(self, claims: dict, expires_in: timedelta) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            **claims,
            "iat": now,
            "exp": now + expires_in,
        }
        return jwt.encode(payload, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)

    def create_access_token(self, user) -> str:
        return self._encode(
            {"sub": str(user.id), "role": user.role},
            timedelta(minutes=JWT_ACCESS_TOKEN_EXPIRE_MINUTES)
        )

    def create_reset_token(self, user) -> str:
        return self._encode(
            {"sub": str(user.id), "purpose": RESET_TOKEN_PURPOSE},
            timedelta(minutes=PASSWORD_RESET_EXPIRE_MINUTES)
        )

    def verify_token(self, token: str) -> dict:
        """
        Verify a JWT issued by this service and return its payload
        """
        try:
            payload = jwt.decode(
                token,
                JWT_SECRET_KEY,
                algorithms=[JWT_ALGORITHM],
                options={
                    "verify_exp": True,
                    "verify_iat": True,
                    "verify_signature": True,
                    "verify_aud": False
                }
            )
        except jwt.ExpiredSignatureError:
            logger.warning("JWT token expired")
            raise AuthenticationError("Token expired")
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid JWT token: {str(e)}")
            raise AuthenticationError("Invalid token")

        if not payload.get("sub"):
            raise AuthenticationError("Invalid token: missing user ID")

        return payload

    def verify_reset_token(self, token: str) -> uuid.UUID:
        payload = self.verify_token(token)
        if payload.get("purpose") != RESET_TOKEN_PURPOSE:
            raise AuthenticationError("Invalid reset token")
        return self.parse_user_id(payload["sub"])

    def parse_user_id(self, value: str) -> uuid.UUID:
        try:
            return uuid.UUID(str(value))
        except ValueError:
            raise AuthenticationError("Invalid token: malformed user ID")

    def resolve_actor_id(self, current_user: dict, claimed_id: Optional[uuid.UUID] = None) -> uuid.UUID:
        """
        Bodies may name the acting user (reviewerId, supplierId). It has to be the caller.
        """
        caller_id = uuid.UUID(current_user["user_id"])
        if claimed_id is not None and claimed_id != caller_id:
            logger.warning(f"User {caller_id} tried to act as {claimed_id}")
            raise AuthorizationError("You can only act on your own behalf")
        return caller_id

    def require_login_fields(self, phone: Optional[str], role: Optional[str]) -> None:
        if not phone or not role:
            raise ValidationError("Phone and role are required")


auth_helpers = AuthHelpers()
