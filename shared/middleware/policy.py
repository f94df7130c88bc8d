"""
shared/middleware/policy.py
Role-based authorization for every back-office operation.

One table maps each operation to the role names allowed to run it and the
message returned when the actor is refused. Permissions attached to roles
are descriptive only; the guard looks at the role name alone.
"""

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional

from fastapi import Depends

from shared.errors import Unauthorized
from shared.middleware.auth import get_current_admin
from shared.models.models import Admin, AuditOutcome, RoleName
from shared.utils.audit import AuditLogger, get_audit_logger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Policy:
    # None means any authenticated admin
    roles: Optional[FrozenSet[str]]
    message: str


def _only(*roles: RoleName) -> FrozenSet[str]:
    return frozenset(r.value for r in roles)


ADMIN_ONLY = Policy(_only(RoleName.ADMIN), "Admin only")
ANY_ADMIN = Policy(None, "Not authorized")


def _super_admin(message: str) -> Policy:
    return Policy(_only(RoleName.SUPER_ADMIN), message)


OPERATION_POLICIES: Dict[str, Policy] = {
    # Users
    "list_users": ADMIN_ONLY,
    "search_users": ADMIN_ONLY,
    "update_user": ADMIN_ONLY,
    "delete_user": ADMIN_ONLY,

    # Astrologer queries
    "list_pending_astrologers": ADMIN_ONLY,
    "list_approved_astrologers": ADMIN_ONLY,
    "list_registered_astrologers": ADMIN_ONLY,
    "list_astrologer_interviews": ADMIN_ONLY,
    "list_astrologer_documents": ADMIN_ONLY,
    "search_astrologers": ANY_ADMIN,

    # Approval workflow
    "schedule_interview": ADMIN_ONLY,
    "record_interview_result": ADMIN_ONLY,
    "upload_document": ADMIN_ONLY,
    "verify_document": ADMIN_ONLY,
    "reject_astrologer": ADMIN_ONLY,
    "approve_astrologer": ADMIN_ONLY,

    # Astrologer records
    "add_astrologer": Policy(_only(RoleName.SUPER_ADMIN, RoleName.MANAGER), "Not authorized"),
    "update_astrologer": Policy(_only(RoleName.SUPER_ADMIN, RoleName.MANAGER), "Not authorized"),
    "delete_astrologer": Policy(_only(RoleName.SUPER_ADMIN, RoleName.MANAGER), "Not authorized"),

    # Permissions
    "list_permissions": Policy(
        _only(RoleName.ADMIN, RoleName.SUPER_ADMIN), "Not authorized to view permissions"
    ),
    "create_permission": _super_admin("Only SUPER_ADMIN can create permissions"),
    "update_permission": _super_admin("Only SUPER_ADMIN can update permissions"),
    "delete_permission": _super_admin("Only SUPER_ADMIN can delete permissions"),

    # Roles
    "list_roles": _super_admin("Only SUPER_ADMIN can view roles"),
    "create_role": _super_admin("Only SUPER_ADMIN can create roles"),
    "update_role": _super_admin("Only SUPER_ADMIN can update roles"),
    "delete_role": _super_admin("Only SUPER_ADMIN can delete roles"),
    "assign_permissions_to_role": _super_admin("Only SUPER_ADMIN can assign permissions"),

    # Admins
    "list_admins": _super_admin("Only SUPER_ADMIN can view admins"),
    "create_admin": _super_admin("Only SUPER_ADMIN can create admins"),
    "update_admin": _super_admin("Only SUPER_ADMIN can update admins"),
    "delete_admin": _super_admin("Only SUPER_ADMIN can delete admins"),
    "list_audit_logs": _super_admin("Only SUPER_ADMIN can view audit logs"),

    # Session
    "logout_admin": Policy(None, "Unauthorized"),
    "current_admin": Policy(None, "Unauthorized"),

    # Recharge packs
    "list_recharge_packs": ANY_ADMIN,
    "create_recharge_pack": Policy(
        _only(RoleName.SUPER_ADMIN, RoleName.ADMIN), "Not authorized to manage recharge packs"
    ),
    "update_recharge_pack": Policy(
        _only(RoleName.SUPER_ADMIN, RoleName.ADMIN), "Not authorized to manage recharge packs"
    ),
    "delete_recharge_pack": Policy(
        _only(RoleName.SUPER_ADMIN, RoleName.ADMIN), "Not authorized to manage recharge packs"
    ),
}


def authorize(actor: Optional[Admin], operation: str) -> Admin:
    """
    Return the actor when it may run `operation`, else raise Unauthorized.
    Unknown operations are refused.
    """
    policy = OPERATION_POLICIES.get(operation)
    if policy is None:
        raise Unauthorized("Not authorized", authenticated=actor is not None)
    if actor is None:
        raise Unauthorized(policy.message)

    role_name = actor.role.name if actor.role is not None else None
    if policy.roles is not None and role_name not in policy.roles:
        raise Unauthorized(policy.message, authenticated=True)
    return actor


class Guard:
    """
    Dependency factory enforcing OPERATION_POLICIES on a route.

    Usage:
        @router.get("/users")
        async def list_users(actor: Admin = Depends(Guard("list_users"))):
            ...
    """

    def __init__(self, operation: str):
        if operation not in OPERATION_POLICIES:
            raise KeyError(f"No policy registered for operation '{operation}'")
        self.operation = operation

    async def __call__(
        self,
        actor: Optional[Admin] = Depends(get_current_admin),
        audit: AuditLogger = Depends(get_audit_logger),
    ) -> Admin:
        try:
            return authorize(actor, self.operation)
        except Unauthorized as e:
            logger.warning(
                f"Denied {self.operation} for admin "
                f"{actor.id if actor else 'anonymous'}: {e.message}"
            )
            audit.emit(
                self.operation,
                "authorization",
                admin_id=actor.id if actor else None,
                outcome=AuditOutcome.DENIED,
                payload={"reason": e.message},
            )
            raise
