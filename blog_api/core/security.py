"""Password hashing and bearer token issue/validation."""
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from jose import jwt
from passlib.context import CryptContext

from blog_api.core.config import settings

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def password_policy_errors(password: str) -> List[str]:
    """Return the rules a candidate password breaks, empty when it is acceptable."""
    errors = []
    if len(password) < 8:
        errors.append("Password must be at least 8 characters.")
    if not any(ch.isdigit() for ch in password):
        errors.append("Password must contain a digit.")
    if not any(ch.islower() for ch in password):
        errors.append("Password must contain a lowercase letter.")
    if not any(ch.isupper() for ch in password):
        errors.append("Password must contain an uppercase letter.")
    return errors


def create_access_token(
    user_id: int,
    email: str,
    display_name: str,
    roles: List[str],
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Mint a signed token for a user.

    The token carries the subject id, email, display name, a fresh token id
    and one ``roles`` entry per role. Lifetime defaults to
    ``ACCESS_TOKEN_EXPIRE_HOURS``; nothing revokes a token before it expires.
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(hours=settings.ACCESS_TOKEN_EXPIRE_HOURS))
    to_encode = {
        "sub": str(user_id),
        "email": email,
        "display_name": display_name,
        "jti": str(uuid.uuid4()),
        "roles": list(roles),
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Check signature, issuer, audience and expiry. Raises ``JWTError`` on any failure."""
    return jwt.decode(
        token,
        settings.JWT_SECRET_KEY,
        algorithms=[settings.JWT_ALGORITHM],
        audience=settings.JWT_AUDIENCE,
        issuer=settings.JWT_ISSUER,
    )
