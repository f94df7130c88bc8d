"""
services/astrologer/service.py
Astrologer record store: profile CRUD and the read-side queues.

approval_status is never written here. New astrologers start PENDING and
only services/workflow moves them on.
"""

import json
import logging
import uuid
from enum import Enum
from typing import Optional

from sqlalchemy import String, cast, or_, select, type_coerce
from sqlalchemy.dialects.postgresql import JSONB

from config.settings import settings
from shared.errors import AlreadyExists
from shared.models.models import (
    IN_REVIEW_STATUSES,
    Address,
    Admin,
    ApprovalStatus,
    Astrologer,
    AstrologerDocument,
    ExperiencePlatform,
    Interview,
)
from shared.utils.base_service import BaseService
from shared.utils.pagination import PageParams, paginate

logger = logging.getLogger(__name__)

PROFILE_FIELDS = (
    "profile_pic", "name", "email", "contact_no", "gender", "date_of_birth",
    "languages", "skills", "experience", "price", "about",
)


class SortField(str, Enum):
    EXPERIENCE = "EXPERIENCE"
    PRICE = "PRICE"
    RATING = "RATING"


class SortOrder(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


SORT_COLUMNS = {
    SortField.EXPERIENCE: Astrologer.experience,
    SortField.PRICE: Astrologer.price,
    SortField.RATING: Astrologer.rating,
}


class AstrologerStore(BaseService):

    # ── Records ───────────────────────────────────────────────

    async def get(self, astrologer_id: uuid.UUID) -> Astrologer:
        return await self._get_or_404(Astrologer, astrologer_id, "Astrologer not found")

    async def add_astrologer(self, actor: Admin, data: dict) -> Astrologer:
        if await self._by_email(data["email"]):
            raise AlreadyExists("Astrologer with this email already exists")

        astrologer = Astrologer(
            profile_pic=data.get("profile_pic") or settings.DEFAULT_ASTROLOGER_PROFILE_PIC,
            name=data["name"],
            email=data["email"],
            contact_no=data["contact_no"],
            gender=data["gender"],
            date_of_birth=data["date_of_birth"],
            languages=list(data.get("languages") or []),
            skills=list(data.get("skills") or []),
            experience=data.get("experience") or 0,
            price=data.get("price") or 0,
            about=data["about"],
            approval_status=ApprovalStatus.PENDING,
            addresses=[Address(**a) for a in data.get("addresses") or []],
            experiences=[ExperiencePlatform(**e) for e in data.get("experiences") or []],
        )
        self.db.add(astrologer)
        await self._flush(on_conflict=AlreadyExists("Astrologer with this email already exists"))
        await self.db.refresh(astrologer)

        self.audit.record("add_astrologer", "astrologer", astrologer.id, admin_id=actor.id,
                          payload={"email": astrologer.email})
        logger.info(f"Astrologer {astrologer.email} added by {actor.id}")
        return astrologer

    async def update_astrologer(self, actor: Admin, astrologer_id: uuid.UUID, **changes) -> Astrologer:
        """Merge profile fields; anything outside PROFILE_FIELDS is ignored."""
        astrologer = await self.get(astrologer_id)

        email = changes.get("email")
        if email and email != astrologer.email:
            if await self._by_email(email):
                raise AlreadyExists("Astrologer with this email already exists")

        applied = {}
        for field in PROFILE_FIELDS:
            if changes.get(field) is not None:
                setattr(astrologer, field, changes[field])
                applied[field] = changes[field]

        await self._flush(on_conflict=AlreadyExists("Astrologer with this email already exists"))
        await self.db.refresh(astrologer)

        self.audit.record("update_astrologer", "astrologer", astrologer.id,
                          admin_id=actor.id, payload=applied)
        return astrologer

    async def delete_astrologer(self, actor: Admin, astrologer_id: uuid.UUID) -> str:
        """Hard delete together with addresses, interviews, documents and history."""
        astrologer = await self.get(astrologer_id)
        await self.db.delete(astrologer)
        await self._flush()

        self.audit.record("delete_astrologer", "astrologer", astrologer_id,
                          admin_id=actor.id, payload={"email": astrologer.email})
        logger.info(f"Astrologer {astrologer.email} deleted by {actor.id}")
        return "Astrologer deleted successfully"

    # ── Queries ───────────────────────────────────────────────

    async def search(
        self,
        params: PageParams,
        query_text: Optional[str] = None,
        sort_field: Optional[SortField] = None,
        sort_order: Optional[SortOrder] = None,
    ) -> dict:
        """
        Name contains `query_text` (case-insensitive), or `query_text` is one of
        the astrologer's skills or languages. Sorted by the given field, else newest first.
        """
        query = select(Astrologer)
        if query_text:
            query = query.where(
                or_(
                    Astrologer.name.icontains(query_text, autoescape=True),
                    self._list_has(Astrologer.skills, query_text),
                    self._list_has(Astrologer.languages, query_text),
                )
            )

        if sort_field:
            column = SORT_COLUMNS[SortField(sort_field)]
            ordering = column.asc() if sort_order == SortOrder.ASC else column.desc()
            query = query.order_by(ordering, Astrologer.created_at.desc())
        else:
            query = query.order_by(Astrologer.created_at.desc())

        return await paginate(self.db, query, params)

    async def list_pending(self, params: PageParams) -> dict:
        """Astrologers still in onboarding: PENDING, INTERVIEW or DOCUMENT_VERIFICATION."""
        query = (
            select(Astrologer)
            .where(Astrologer.approval_status.in_(IN_REVIEW_STATUSES))
            .order_by(Astrologer.created_at.desc())
        )
        return await paginate(self.db, query, params)

    async def list_approved(self, params: PageParams) -> dict:
        query = (
            select(Astrologer)
            .where(Astrologer.approval_status == ApprovalStatus.APPROVED)
            .order_by(Astrologer.created_at.desc())
        )
        return await paginate(self.db, query, params)

    async def list_registered(self, params: PageParams) -> dict:
        query = select(Astrologer).order_by(Astrologer.created_at.desc())
        return await paginate(self.db, query, params)

    async def list_interviews(self, astrologer_id: uuid.UUID, params: PageParams) -> dict:
        await self.get(astrologer_id)
        query = (
            select(Interview)
            .where(Interview.astrologer_id == astrologer_id)
            .order_by(Interview.round_number.asc())
        )
        return await paginate(self.db, query, params)

    async def list_documents(self, astrologer_id: uuid.UUID, params: PageParams) -> dict:
        await self.get(astrologer_id)
        query = (
            select(AstrologerDocument)
            .where(AstrologerDocument.astrologer_id == astrologer_id)
            .order_by(AstrologerDocument.created_at.desc(), AstrologerDocument.id.desc())
        )
        return await paginate(self.db, query, params)

    # ── Helpers ───────────────────────────────────────────────

    async def _by_email(self, email: str) -> Optional[Astrologer]:
        return await self.db.scalar(select(Astrologer).where(Astrologer.email == email))

    def _list_has(self, column, value: str):
        """Exact element match on a JSON string array."""
        if self.db.get_bind().dialect.name == "postgresql":
            return type_coerce(column, JSONB).contains([value])
        return cast(column, String).contains(json.dumps(value), autoescape=True)
