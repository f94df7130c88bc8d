"""
shared/utils/base_service.py
Common constructor and transaction contract for every back-office service.

Services flush, never commit. The request session from config.database.get_db
owns commit/rollback, so a multi-row operation is all-or-nothing.
"""

from typing import Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shared.errors import DomainError, NotFound
from shared.utils.audit import AuditLogger

ModelType = TypeVar("ModelType")


class BaseService:
    def __init__(self, db: AsyncSession, audit: Optional[AuditLogger] = None):
        self.db = db
        self.audit = audit or AuditLogger(db)

    async def _get_or_404(self, model: Type[ModelType], pk, message: str) -> ModelType:
        obj = await self.db.get(model, pk)
        if obj is None:
            raise NotFound(message)
        return obj

    async def _flush(self, on_conflict: Optional[DomainError] = None) -> None:
        """
        Flush pending writes. A unique-constraint race that slipped past the
        pre-checks surfaces as `on_conflict` instead of a raw IntegrityError.
        """
        try:
            await self.db.flush()
        except IntegrityError:
            if on_conflict is None:
                raise
            raise on_conflict
