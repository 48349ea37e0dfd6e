"""FastAPI dependencies."""
import hmac
import logging
from uuid import UUID

from fastapi import Header, HTTPException

from arena.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


def _mask_identifier(identifier: str) -> str:
    """Mask a sensitive identifier for logging."""
    if not identifier:
        return "<missing>"
    if len(identifier) <= 8:
        return f"{identifier[:2]}...{identifier[-2:]}"
    return f"{identifier[:4]}...{identifier[-4:]}"


async def get_current_user_id(
        x_user_id: str | None = Header(default=None, alias="X-User-Id"),
) -> UUID:
    """Resolve the authenticated user id.

    Session verification happens upstream; the gateway forwards the verified
    user id in the ``X-User-Id`` header.
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    try:
        return UUID(x_user_id)
    except ValueError:
        logger.warning(f"Rejected malformed user id {_mask_identifier(x_user_id)}")
        raise HTTPException(status_code=401, detail="Invalid X-User-Id header")


async def require_admin(
        x_admin_key: str | None = Header(default=None, alias="X-Admin-Key"),
) -> None:
    """Gate admin-only routes on the shared admin key."""
    if not x_admin_key or not hmac.compare_digest(x_admin_key, settings.admin_api_key):
        logger.warning(f"Rejected admin request with key {_mask_identifier(x_admin_key or '')}")
        raise HTTPException(status_code=403, detail="Admin access required")
