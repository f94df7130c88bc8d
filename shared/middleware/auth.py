"""
shared/middleware/auth.py
FastAPI dependency functions for admin authentication.

Authentication never rejects a request on its own: a missing, malformed,
expired or revoked token resolves to "no actor" and the policy guard
(shared/middleware/policy.py) decides what that means for the operation.
"""

import logging
import uuid
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from config.redis_client import TokenDenyList, get_redis
from shared.models.models import Admin
from shared.utils.security import verify_access_token

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


async def get_access_token_payload(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    redis=Depends(get_redis),
) -> Optional[dict]:
    """
    Decode the bearer token and check the Redis deny-list.
    Returns None instead of raising for anything that is not a live access token.
    """
    if not credentials:
        return None

    try:
        payload = verify_access_token(credentials.credentials)
    except JWTError:
        logger.debug("Rejected malformed or expired access token")
        return None

    # Revoked on logout
    jti = payload.get("jti")
    if not jti or await TokenDenyList(redis).is_revoked(jti):
        return None

    return payload


async def get_current_admin(
    payload: Optional[dict] = Depends(get_access_token_payload),
    db: AsyncSession = Depends(get_db),
) -> Optional[Admin]:
    """
    Load the acting Admin named by the token's sub claim.
    Re-read on every request so role changes and deactivation apply immediately.
    """
    if payload is None:
        return None

    try:
        admin_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        return None

    result = await db.execute(
        select(Admin).where(
            Admin.id == admin_id,
            Admin.is_active.is_(True),
            Admin.is_deleted.is_(False),
        )
    )
    return result.scalar_one_or_none()
