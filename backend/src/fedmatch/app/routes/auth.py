"""Bearer-token dependency shared by the write endpoints."""

from fastapi import HTTPException, Request, status

from fedmatch.services.auth_service import Identity, identity_from_token


async def get_current_identity(request: Request) -> Identity:
    """Dependency: resolve the caller from the Bearer token or fail with 401."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid token",
        )
    identity = identity_from_token(auth_header.removeprefix("Bearer "))
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    return identity
