"""
tests/test_policy.py
Unit tests for the role policy table and the authorize() check.
"""

import uuid
from types import SimpleNamespace

import pytest

from shared.errors import Unauthorized
from shared.middleware.policy import OPERATION_POLICIES, Guard, authorize


def actor(role_name):
    role = SimpleNamespace(name=role_name) if role_name else None
    return SimpleNamespace(id=uuid.uuid4(), role=role)


@pytest.mark.parametrize(
    "operation, allowed, denied",
    [
        ("list_users", ["ADMIN"], ["SUPER_ADMIN", "MANAGER"]),
        ("approve_astrologer", ["ADMIN"], ["SUPER_ADMIN", "MANAGER"]),
        ("add_astrologer", ["SUPER_ADMIN", "MANAGER"], ["ADMIN"]),
        ("search_astrologers", ["SUPER_ADMIN", "ADMIN", "MANAGER"], []),
        ("list_permissions", ["SUPER_ADMIN", "ADMIN"], ["MANAGER"]),
        ("create_role", ["SUPER_ADMIN"], ["ADMIN", "MANAGER"]),
        ("list_audit_logs", ["SUPER_ADMIN"], ["ADMIN", "MANAGER"]),
        ("create_recharge_pack", ["SUPER_ADMIN", "ADMIN"], ["MANAGER"]),
    ],
)
def test_role_matrix(operation, allowed, denied):
    for role_name in allowed:
        assert authorize(actor(role_name), operation).role.name == role_name
    for role_name in denied:
        with pytest.raises(Unauthorized) as exc:
            authorize(actor(role_name), operation)
        assert exc.value.status_code == 403
        assert exc.value.message == OPERATION_POLICIES[operation].message


def test_anonymous_gets_401_with_policy_message():
    with pytest.raises(Unauthorized) as exc:
        authorize(None, "create_permission")
    assert exc.value.status_code == 401
    assert exc.value.message == "Only SUPER_ADMIN can create permissions"


def test_unknown_operation_is_refused():
    with pytest.raises(Unauthorized):
        authorize(actor("SUPER_ADMIN"), "drop_database")


def test_custom_role_name_is_refused_everywhere_roles_are_named():
    with pytest.raises(Unauthorized):
        authorize(actor("SUPPORT"), "list_users")
    # Open policies only require an authenticated admin
    assert authorize(actor("SUPPORT"), "list_recharge_packs")


def test_admin_without_role_is_refused():
    with pytest.raises(Unauthorized) as exc:
        authorize(actor(None), "delete_user")
    assert exc.value.status_code == 403


def test_guard_requires_registered_operation():
    with pytest.raises(KeyError):
        Guard("drop_database")
