"""Bearer token issue and verification.

Accounts and passwords belong to the account service; this API only checks
tokens signed with the shared key and reads the caller's id and role.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from fedmatch.app.config import get_settings


@dataclass(frozen=True)
class Identity:
    user_id: str
    role: str = "broker"


def create_access_token(user_id: str, role: str = "broker", expires_in: timedelta | None = None) -> str:
    """Sign a token for ``user_id``; used by tests and internal tooling."""
    settings = get_settings()
    lifetime = expires_in or timedelta(minutes=settings.jwt_expiration_minutes)
    claims = {
        "sub": user_id,
        "role": role,
        "exp": datetime.now(timezone.utc) + lifetime,
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict | None:
    """Verified claims, or None for a bad signature, malformed token or expiry."""
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def identity_from_token(token: str) -> Identity | None:
    claims = decode_token(token)
    if not claims or not claims.get("sub"):
        return None
    return Identity(user_id=str(claims["sub"]), role=str(claims.get("role") or "broker"))
