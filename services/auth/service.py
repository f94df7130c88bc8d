"""
services/auth/service.py
Admin login, refresh-token rotation and logout.

Access tokens are short-lived JWTs. Refresh tokens are opaque random strings;
only their SHA-256 hash is stored on the admin row, one live token per admin.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select

from config.redis_client import TokenDenyList
from config.settings import settings
from shared.errors import Unauthorized
from shared.models.models import Admin, AuditOutcome
from shared.utils.base_service import BaseService
from shared.utils.security import (
    create_access_token,
    create_refresh_token,
    get_token_remaining_ttl,
    hash_token,
    verify_password,
)

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class AdminAuthService(BaseService):

    async def login(self, email: str, password: str) -> dict:
        admin = await self.db.scalar(select(Admin).where(Admin.email == email))

        if not admin or not admin.is_active or admin.is_deleted:
            self._failed_login(email, "Admin not found or inactive", admin)
            raise Unauthorized("Admin not found or inactive")
        if not verify_password(password, admin.password_hash):
            self._failed_login(email, "Invalid credentials", admin)
            raise Unauthorized("Invalid credentials")

        tokens = await self._issue_tokens(admin)
        self.audit.record("login_admin", "admin", admin.id, admin_id=admin.id)
        logger.info(f"Admin {admin.email} logged in")
        return {"admin": admin, **tokens}

    async def refresh(self, raw_refresh_token: str) -> dict:
        """Rotate: the presented refresh token stops working once a new pair is issued."""
        admin = await self.db.scalar(
            select(Admin).where(Admin.refresh_token_hash == hash_token(raw_refresh_token))
        )
        if (
            not admin
            or not admin.is_active
            or admin.is_deleted
            or admin.refresh_token_expires_at is None
            or _as_utc(admin.refresh_token_expires_at) < datetime.now(timezone.utc)
        ):
            raise Unauthorized("Invalid or revoked refresh token")

        tokens = await self._issue_tokens(admin)
        return {"admin": admin, **tokens}

    async def logout(self, actor: Admin, token_payload: Optional[dict], deny_list: TokenDenyList) -> str:
        """Drop the stored refresh token and deny-list the access token until it expires."""
        actor.refresh_token_hash = None
        actor.refresh_token_expires_at = None
        await self._flush()

        if token_payload and token_payload.get("jti"):
            await deny_list.revoke(token_payload["jti"], get_token_remaining_ttl(token_payload))

        self.audit.record("logout_admin", "admin", actor.id, admin_id=actor.id)
        logger.info(f"Admin {actor.email} logged out")
        return "Admin logged out successfully"

    async def _issue_tokens(self, admin: Admin) -> dict:
        access_token, _ = create_access_token(str(admin.id), admin.role.name, admin.email)
        raw_refresh, refresh_hash = create_refresh_token()

        admin.refresh_token_hash = refresh_hash
        admin.refresh_token_expires_at = datetime.now(timezone.utc) + timedelta(
            days=settings.JWT_REFRESH_TOKEN_EXPIRE_DAYS
        )
        await self._flush()
        await self.db.refresh(admin)

        return {
            "access_token": access_token,
            "refresh_token": raw_refresh,
            "expires_in": settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        }

    def _failed_login(self, email: str, reason: str, admin: Optional[Admin]) -> None:
        logger.warning(f"Failed admin login for {email}: {reason}")
        self.audit.emit(
            "login_admin",
            "admin",
            admin.id if admin else None,
            admin_id=admin.id if admin else None,
            outcome=AuditOutcome.FAILED,
            payload={"email": email, "reason": reason},
        )
