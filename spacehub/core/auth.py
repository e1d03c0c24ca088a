"""
JWT authentication utilities and the payload signer.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

from spacehub.config import settings
from spacehub.core.exceptions import UnauthorizedError


# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

USER_TOKEN_TYPES = frozenset({"access", "refresh"})


class TokenData(BaseModel):
    """Data extracted from a JWT token."""

    user_id: int
    exp: datetime
    token_type: str  # 'access' or 'refresh'


class TokenPair(BaseModel):
    """Access and refresh token pair."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_at: datetime


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def hash_password(password: str) -> str:
    """Hash a password for storage."""
    return pwd_context.hash(password)


def _encode(claims: dict[str, Any]) -> str:
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(user_id: int) -> tuple[str, datetime]:
    """
    Create a JWT access token.

    Args:
        user_id: User's unique ID

    Returns:
        Encoded JWT token and its expiry
    """
    now = datetime.now(timezone.utc)
    expire = now + timedelta(minutes=settings.jwt_access_expire_minutes)
    payload = {
        "sub": str(user_id),
        "exp": expire,
        "type": "access",
        "iat": now,
    }
    return _encode(payload), expire


def create_refresh_token(user_id: int) -> str:
    """Create a JWT refresh token."""
    now = datetime.now(timezone.utc)
    expire = now + timedelta(days=settings.jwt_refresh_expire_days)
    payload = {
        "sub": str(user_id),
        "exp": expire,
        "type": "refresh",
        "iat": now,
    }
    return _encode(payload)


def create_token_pair(user_id: int) -> TokenPair:
    """Create both access and refresh tokens."""
    access_token, expires_at = create_access_token(user_id)
    return TokenPair(
        access_token=access_token,
        refresh_token=create_refresh_token(user_id),
        expires_at=expires_at,
    )


def decode_token(token: str) -> Optional[TokenData]:
    """
    Decode and validate a user JWT token.

    Only tokens typed as access or refresh tokens count; other signed
    payloads never resolve to a user.

    Returns:
        TokenData if valid, None otherwise
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
        token_type = payload.get("type")
        if token_type not in USER_TOKEN_TYPES:
            return None
        return TokenData(
            user_id=int(payload["sub"]),
            exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            token_type=token_type,
        )
    except (JWTError, KeyError, ValueError):
        return None


def sign_payload(payload: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Sign an arbitrary payload.

    Tokens without ``expires_delta`` never expire; they stay valid for as
    long as whatever they reference still exists.
    """
    claims = dict(payload)
    if expires_delta is not None:
        claims["exp"] = datetime.now(timezone.utc) + expires_delta
    return _encode(claims)


def verify_payload(token: str) -> dict[str, Any]:
    """
    Verify a signed payload and return its claims.

    Raises:
        UnauthorizedError: expired, tampered or malformed token
    """
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as e:
        raise UnauthorizedError(f"Token verification failed: {e}", "Invalid token") from e
