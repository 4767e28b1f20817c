from fastapi import Request, HTTPException, status
from typing import Optional
import logging
from auth import decode_access_token, auth_required
from utils.errors import ForbiddenError

logger = logging.getLogger(__name__)

async def get_current_user(request: Request) -> Optional[dict]:
    """Extract and validate current user from JWT token."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None

    token = auth_header.split(" ")[1]
    payload = decode_access_token(token)

    if not payload:
        return None

    return payload

async def require_auth(request: Request) -> dict:
    """Require valid authentication."""
    user = await get_current_user(request)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )
    return user

async def authorize_principal(request: Request, user_id: str) -> None:
    """Check that the caller may act as ``user_id``.

    A bearer token, when present, must be valid and its ``sub`` must match.
    Without a token the call passes unless AUTH_REQUIRED is set.
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        if auth_required():
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Not authenticated"
            )
        return

    user = await require_auth(request)
    if user.get("sub") != user_id:
        logger.warning(f"Token subject {user.get('sub')} tried to act as {user_id} on {request.url.path}")
        raise ForbiddenError("Token does not match the requested user")
