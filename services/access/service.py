"""
services/access/service.py
Permission and role stores.

Names are stored trimmed and upper-cased, so "create_reports" and
" CREATE_REPORTS " are the same permission.
"""

import logging
import uuid
from typing import Iterable, List, Optional

from sqlalchemy import delete, func, select

from shared.errors import AlreadyExists, InUse, InvalidReference, ValidationFailed
from shared.models.models import Admin, Permission, Role, RolePermission
from shared.utils.base_service import BaseService

logger = logging.getLogger(__name__)


def normalize_name(name: str) -> str:
    normalized = name.strip().upper()
    if not normalized:
        raise ValidationFailed("Name is required")
    return normalized


class AccessService(BaseService):

    # ── Permissions ───────────────────────────────────────────

    async def list_permissions(self) -> List[Permission]:
        result = await self.db.execute(
            select(Permission).order_by(Permission.created_at.desc(), Permission.name)
        )
        return list(result.scalars().all())

    async def create_permission(
        self, actor: Admin, name: str, description: Optional[str] = None
    ) -> Permission:
        name = normalize_name(name)
        if await self._permission_by_name(name):
            raise AlreadyExists("Permission already exists")

        permission = Permission(name=name, description=description)
        self.db.add(permission)
        await self._flush(on_conflict=AlreadyExists("Permission already exists"))
        await self.db.refresh(permission)

        self.audit.record("create_permission", "permission", permission.id,
                          admin_id=actor.id, payload={"name": name})
        logger.info(f"Permission {name} created by {actor.id}")
        return permission

    async def update_permission(
        self,
        actor: Admin,
        permission_id: uuid.UUID,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Permission:
        permission = await self._get_or_404(Permission, permission_id, "Permission not found")

        if name is not None:
            name = normalize_name(name)
            duplicate = await self._permission_by_name(name)
            if duplicate and duplicate.id != permission.id:
                raise AlreadyExists("Permission name already exists")
            permission.name = name
        if description is not None:
            permission.description = description

        await self._flush(on_conflict=AlreadyExists("Permission name already exists"))
        await self.db.refresh(permission)

        self.audit.record("update_permission", "permission", permission.id,
                          admin_id=actor.id, payload={"name": name, "description": description})
        return permission

    async def delete_permission(self, actor: Admin, permission_id: uuid.UUID) -> str:
        permission = await self._get_or_404(Permission, permission_id, "Permission not found")

        in_use = await self.db.scalar(
            select(func.count(RolePermission.id)).where(
                RolePermission.permission_id == permission.id
            )
        )
        if in_use:
            raise InUse("Cannot delete permission assigned to roles")

        await self.db.delete(permission)
        await self._flush()

        self.audit.record("delete_permission", "permission", permission_id,
                          admin_id=actor.id, payload={"name": permission.name})
        logger.info(f"Permission {permission.name} deleted by {actor.id}")
        return "Permission deleted successfully"

    # ── Roles ─────────────────────────────────────────────────

    async def list_roles(self) -> List[Role]:
        result = await self.db.execute(
            select(Role).order_by(Role.created_at.desc(), Role.name)
        )
        return list(result.scalars().all())

    async def create_role(
        self,
        actor: Admin,
        name: str,
        description: Optional[str] = None,
        permission_ids: Iterable[uuid.UUID] = (),
    ) -> Role:
        name = normalize_name(name)
        if await self._role_by_name(name):
            raise AlreadyExists("Role already exists")

        # Validate every id before writing anything
        permission_ids = await self._validated_permission_ids(permission_ids)

        role = Role(name=name, description=description)
        self.db.add(role)
        await self._flush(on_conflict=AlreadyExists("Role already exists"))

        for permission_id in permission_ids:
            self.db.add(RolePermission(role_id=role.id, permission_id=permission_id))
        await self._flush()
        await self.db.refresh(role)

        self.audit.record("create_role", "role", role.id, admin_id=actor.id,
                          payload={"name": name, "permission_ids": permission_ids})
        logger.info(f"Role {name} created by {actor.id} with {len(permission_ids)} permission(s)")
        return role

    async def update_role(
        self,
        actor: Admin,
        role_id: uuid.UUID,
        name: Optional[str] = None,
        description: Optional[str] = None,
        permission_ids: Optional[Iterable[uuid.UUID]] = None,
    ) -> Role:
        """
        Partial update. When permission_ids is given, the role's permission
        set is replaced by exactly those ids.
        """
        role = await self._get_or_404(Role, role_id, "Role not found")

        if name is not None:
            name = normalize_name(name)
            duplicate = await self._role_by_name(name)
            if duplicate and duplicate.id != role.id:
                raise AlreadyExists("Role name already exists")

        if permission_ids is not None:
            permission_ids = await self._validated_permission_ids(permission_ids)

        if name is not None:
            role.name = name
        if description is not None:
            role.description = description
        await self._flush(on_conflict=AlreadyExists("Role name already exists"))

        if permission_ids is not None:
            # Delete before insert; the unit of work would otherwise insert first
            await self.db.execute(delete(RolePermission).where(RolePermission.role_id == role.id))
            for permission_id in permission_ids:
                self.db.add(RolePermission(role_id=role.id, permission_id=permission_id))
            await self._flush()

        await self.db.refresh(role)

        self.audit.record("update_role", "role", role.id, admin_id=actor.id,
                          payload={"name": name, "description": description,
                                   "permission_ids": permission_ids})
        return role

    async def delete_role(self, actor: Admin, role_id: uuid.UUID) -> str:
        role = await self._get_or_404(Role, role_id, "Role not found")

        assigned = await self.db.scalar(
            select(func.count(Admin.id)).where(Admin.role_id == role.id)
        )
        if assigned:
            raise InUse("Cannot delete role assigned to admins")

        # Links go with the role through the delete-orphan cascade
        await self.db.delete(role)
        await self._flush()

        self.audit.record("delete_role", "role", role_id, admin_id=actor.id,
                          payload={"name": role.name})
        logger.info(f"Role {role.name} deleted by {actor.id}")
        return "Role deleted successfully"

    async def assign_permissions_to_role(
        self, actor: Admin, role_id: uuid.UUID, permission_ids: Iterable[uuid.UUID]
    ) -> Role:
        """Add the given permissions to the role. Already-linked ids are skipped."""
        role = await self._get_or_404(Role, role_id, "Role not found")
        permission_ids = await self._validated_permission_ids(permission_ids)

        existing = set(
            (await self.db.execute(
                select(RolePermission.permission_id).where(RolePermission.role_id == role.id)
            )).scalars().all()
        )
        added = [pid for pid in permission_ids if pid not in existing]
        for permission_id in added:
            self.db.add(RolePermission(role_id=role.id, permission_id=permission_id))
        await self._flush()
        await self.db.refresh(role)

        if added:
            self.audit.record("assign_permissions_to_role", "role", role.id,
                              admin_id=actor.id, payload={"added": added})
        return role

    # ── Helpers ───────────────────────────────────────────────

    async def _permission_by_name(self, name: str) -> Optional[Permission]:
        return await self.db.scalar(select(Permission).where(Permission.name == name))

    async def _role_by_name(self, name: str) -> Optional[Role]:
        return await self.db.scalar(select(Role).where(Role.name == name))

    async def _validated_permission_ids(self, permission_ids: Iterable[uuid.UUID]) -> List[uuid.UUID]:
        """De-duplicate ids (order kept) and check that every one exists."""
        ids = list(dict.fromkeys(permission_ids))
        if not ids:
            return ids
        found = await self.db.scalar(
            select(func.count(Permission.id)).where(Permission.id.in_(ids))
        )
        if found != len(ids):
            raise InvalidReference("One or more permission IDs are invalid")
        return ids
