import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import jwt
from passlib.context import CryptContext

from app.core.config import settings

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.PASSWORD_HASH_ROUNDS,
)


ALGORITHM = "HS256"
REFRESH_TOKEN_BYTES = 64

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Naive UTC timestamp, the form every persisted datetime uses."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def create_access_token(
    subject: str | Any,
    expires_delta: timedelta | None = None,
    now: datetime | None = None,
) -> str:
    """
    Create JWT access token

    Args:
        subject: User ID (sub claim), the only identity claim carried
        expires_delta: Token expiration time (optional, defaults to ACCESS_TOKEN_EXPIRE_MINUTES)
        now: Issue time as naive UTC (optional, defaults to the current time)

    Returns:
        Encoded JWT token
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    if now is None:
        now = utc_now()

    expire = now.replace(tzinfo=timezone.utc) + expires_delta
    to_encode = {"exp": expire, "sub": str(subject)}
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt


def decode_access_token(token: str) -> dict[str, Any]:
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])


def generate_refresh_token() -> str:
    """Opaque refresh token: 64 random bytes as 128 hex characters."""
    return secrets.token_hex(REFRESH_TOKEN_BYTES)


def generate_verification_code() -> str:
    """Uniform 6 digit code in [100000, 999999]."""
    return str(secrets.randbelow(900000) + 100000)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)
