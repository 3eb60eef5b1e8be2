"""Request-scoped user context.

Sessions are handled by the gateway in front of this service, which forwards
the authenticated user's id in the ``X-User-Id`` header.
"""

from uuid import UUID

from fastapi import Header, HTTPException, status


async def get_current_user_id(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
) -> UUID:
    """Resolve the current user ID from the gateway header."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )
    try:
        return UUID(x_user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user ID format in X-User-Id header",
        )
