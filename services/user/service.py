"""
services/user/service.py
End-user moderation. Users are soft-deleted only: the row stays, flagged
is_deleted and inactive, and is no longer found by get_active_user.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import or_, select

from shared.errors import NotFound, ValidationFailed
from shared.models.models import Admin, User
from shared.utils.base_service import BaseService
from shared.utils.pagination import PageParams, paginate

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "mobile", "gender", "birth_date", "birth_time", "occupation", "is_active")


class UserService(BaseService):

    async def list_users(self, params: PageParams) -> dict:
        """Every user including soft-deleted ones, newest first."""
        query = select(User).order_by(User.created_at.desc())
        return await paginate(self.db, query, params)

    async def search_users(self, params: PageParams, query_text: Optional[str] = None) -> dict:
        """Match name (case-insensitive) or mobile (substring)."""
        query = select(User).order_by(User.created_at.desc())
        if query_text:
            query = query.where(
                or_(
                    User.name.icontains(query_text, autoescape=True),
                    User.mobile.contains(query_text, autoescape=True),
                )
            )
        return await paginate(self.db, query, params)

    async def get_active_user(self, user_id: uuid.UUID) -> User:
        user = await self.db.get(User, user_id)
        if user is None or user.is_deleted:
            raise NotFound("User not found")
        return user

    async def update_user(self, actor: Admin, user_id: uuid.UUID, **changes) -> User:
        user = await self.get_active_user(user_id)

        mobile = changes.get("mobile")
        if mobile:
            duplicate = await self.db.scalar(
                select(User).where(User.mobile == mobile, User.id != user.id)
            )
            if duplicate:
                raise ValidationFailed("Mobile already in use")

        for field in UPDATABLE_FIELDS:
            if field in changes:
                setattr(user, field, changes[field])

        await self._flush(on_conflict=ValidationFailed("Mobile already in use"))
        await self.db.refresh(user)

        self.audit.record("update_user", "user", user.id, admin_id=actor.id, payload=changes)
        return user

    async def delete_user(self, actor: Admin, user_id: uuid.UUID) -> str:
        user = await self.get_active_user(user_id)
        user.is_deleted = True
        user.is_active = False
        await self._flush()

        self.audit.record("delete_user", "user", user.id, admin_id=actor.id)
        logger.info(f"User {user.id} soft-deleted by {actor.id}")
        return "User deleted successfully"
