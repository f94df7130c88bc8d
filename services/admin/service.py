"""
services/admin/service.py
Admin directory: staff accounts and their roles, plus the audit-log reader.
SUPER_ADMIN accounts cannot be edited or removed through this service.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import select

from shared.errors import AlreadyExists, Forbidden, InvalidReference
from shared.models.models import Admin, AdminAuditLog, AuditOutcome, Role, RoleName
from shared.utils.base_service import BaseService
from shared.utils.pagination import PageParams, paginate
from shared.utils.security import hash_password

logger = logging.getLogger(__name__)


class AdminDirectory(BaseService):

    async def list_admins(self, params: PageParams) -> dict:
        """Accounts holding the ADMIN role, newest first."""
        query = (
            select(Admin)
            .join(Role, Role.id == Admin.role_id)
            .where(Role.name == RoleName.ADMIN.value)
            .order_by(Admin.created_at.desc())
        )
        return await paginate(self.db, query, params)

    async def create_admin(
        self,
        actor: Admin,
        name: str,
        email: str,
        phone_no: str,
        password: str,
        role_id: uuid.UUID,
        department: Optional[str] = None,
    ) -> Admin:
        role = await self.db.get(Role, role_id)
        if role is None:
            raise InvalidReference("Invalid role")
        if await self._by_email(email):
            raise AlreadyExists("Email already in use")
        if await self.db.scalar(select(Admin).where(Admin.phone_no == phone_no)):
            raise AlreadyExists("Phone number already in use")

        admin = Admin(
            name=name,
            email=email,
            phone_no=phone_no,
            department=department,
            password_hash=hash_password(password),
            role_id=role.id,
        )
        self.db.add(admin)
        await self._flush(on_conflict=AlreadyExists("Email already in use"))
        await self.db.refresh(admin)

        self.audit.record("create_admin", "admin", admin.id, admin_id=actor.id,
                          payload={"email": email, "role": role.name})
        logger.info(f"Admin {email} created with role {role.name} by {actor.id}")
        return admin

    async def update_admin(self, actor: Admin, admin_id: uuid.UUID, **changes) -> Admin:
        """Partial update; only keys present in `changes` are touched."""
        admin = await self._get_or_404(Admin, admin_id, "Admin not found")
        if admin.role.name == RoleName.SUPER_ADMIN.value:
            raise Forbidden("Cannot update SUPER_ADMIN")

        email = changes.get("email")
        if email:
            duplicate = await self._by_email(email)
            if duplicate and duplicate.id != admin.id:
                raise AlreadyExists("Email already in use")

        phone_no = changes.get("phone_no")
        if phone_no:
            duplicate = await self.db.scalar(select(Admin).where(Admin.phone_no == phone_no))
            if duplicate and duplicate.id != admin.id:
                raise AlreadyExists("Phone number already in use")

        role_id = changes.get("role_id")
        if role_id and await self.db.get(Role, role_id) is None:
            raise InvalidReference("Invalid role")

        password = changes.pop("password", None)
        if password:
            admin.password_hash = hash_password(password)
        for field in ("name", "email", "phone_no", "department", "role_id", "is_active"):
            if changes.get(field) is not None:
                setattr(admin, field, changes[field])

        await self._flush(on_conflict=AlreadyExists("Email already in use"))
        await self.db.refresh(admin)

        self.audit.record("update_admin", "admin", admin.id, admin_id=actor.id,
                          payload={k: v for k, v in changes.items() if v is not None})
        return admin

    async def delete_admin(self, actor: Admin, admin_id: uuid.UUID) -> str:
        admin = await self._get_or_404(Admin, admin_id, "Admin not found")
        if admin.role.name == RoleName.SUPER_ADMIN.value:
            raise Forbidden("Cannot delete SUPER_ADMIN")

        await self.db.delete(admin)
        await self._flush()

        self.audit.record("delete_admin", "admin", admin_id, admin_id=actor.id,
                          payload={"email": admin.email})
        logger.info(f"Admin {admin.email} deleted by {actor.id}")
        return "Admin deleted successfully"

    async def list_audit_logs(
        self,
        params: PageParams,
        admin_id: Optional[uuid.UUID] = None,
        action: Optional[str] = None,
        outcome: Optional[AuditOutcome] = None,
    ) -> dict:
        query = select(AdminAuditLog).order_by(AdminAuditLog.created_at.desc())
        if admin_id:
            query = query.where(AdminAuditLog.admin_id == admin_id)
        if action:
            query = query.where(AdminAuditLog.action == action)
        if outcome:
            query = query.where(AdminAuditLog.outcome == outcome)
        return await paginate(self.db, query, params)

    async def _by_email(self, email: str) -> Optional[Admin]:
        return await self.db.scalar(select(Admin).where(Admin.email == email))
