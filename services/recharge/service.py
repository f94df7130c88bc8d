"""
services/recharge/service.py
Recharge pack catalogue: coin and talk-time bundles sold to end users.
"""

import logging
import uuid
from typing import List

from sqlalchemy import select

from shared.models.models import Admin, RechargePack
from shared.utils.base_service import BaseService

logger = logging.getLogger(__name__)


class RechargePackService(BaseService):

    async def list_packs(self) -> List[RechargePack]:
        result = await self.db.execute(
            select(RechargePack).order_by(RechargePack.created_at.desc())
        )
        return list(result.scalars().all())

    async def create_pack(self, actor: Admin, data: dict) -> RechargePack:
        pack = RechargePack(**data)
        self.db.add(pack)
        await self._flush()
        await self.db.refresh(pack)

        self.audit.record("create_recharge_pack", "recharge_pack", pack.id,
                          admin_id=actor.id, payload=data)
        logger.info(f"Recharge pack {pack.name} created by {actor.id}")
        return pack

    async def update_pack(self, actor: Admin, pack_id: uuid.UUID, **changes) -> RechargePack:
        pack = await self._get_or_404(RechargePack, pack_id, "Recharge pack not found")
        for field, value in changes.items():
            setattr(pack, field, value)
        await self._flush()
        await self.db.refresh(pack)

        self.audit.record("update_recharge_pack", "recharge_pack", pack.id,
                          admin_id=actor.id, payload=changes)
        return pack

    async def delete_pack(self, actor: Admin, pack_id: uuid.UUID) -> str:
        pack = await self._get_or_404(RechargePack, pack_id, "Recharge pack not found")
        await self.db.delete(pack)
        await self._flush()

        self.audit.record("delete_recharge_pack", "recharge_pack", pack_id,
                          admin_id=actor.id, payload={"name": pack.name})
        return "Recharge pack deleted successfully"
