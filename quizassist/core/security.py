"""Password hashing, JWT token utilities and the explicit auth context."""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
import bcrypt

from quizassist.config import settings
from quizassist.db.models import RoleEnum

# ── Auth context ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class AuthContext:
    """Who is calling. Passed explicitly into every service operation."""

    user_id: uuid.UUID
    role: RoleEnum

    @property
    def is_teacher(self) -> bool:
        return self.role == RoleEnum.TEACHER

    @property
    def is_student(self) -> bool:
        return self.role == RoleEnum.STUDENT

    @classmethod
    def for_user(cls, user) -> "AuthContext":
        return cls(user_id=user.id, role=user.role)


# ── Password hashing ──────────────────────────────────────────────────────────


def hash_password(plain: str) -> str:
    """Return bcrypt hash of *plain* password.

    Raises:
        ValueError: If password is longer than 72 bytes
    """
    size = len(plain.encode("utf-8"))
    if size > 72:
        raise ValueError(
            f"Password is {size} bytes, but bcrypt has a 72-byte limit. "
            f"Please use a shorter password."
        )
    hashed = bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Check *plain* against *hashed*; a malformed hash never matches."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# ── JWT tokens ────────────────────────────────────────────────────────────────


def create_access_token(
    data: dict,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict | None:
    """Decode and validate a JWT. Returns payload dict or None on failure."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
