from types import SimpleNamespace

import pytest

from shiftboard.auth.capabilities import (
    APPROVE_CAPABILITY_BY_TYPE,
    has_capability,
    highest_role,
    is_admin_role,
    is_kiosk_role,
    is_owner_role,
    rank_of_role,
    role_for_store,
)
from shiftboard.core.enums import ApprovalType, Capability, Role


@pytest.mark.parametrize(
    "role,capability,expected",
    [
        ("manager", Capability.APPROVE_ATTENDANCE, True),
        ("senior", Capability.APPROVE_ATTENDANCE, False),
        ("manager", Capability.APPROVE_EMPLOYMENT, False),
        ("admin", Capability.APPROVE_EMPLOYMENT, True),
        ("staff", "approve_employment", False),
        ("owner", "approve_attendance", True),
        ("senior", Capability.REQUEST_ALLOWANCE, True),
        ("staff", Capability.REQUEST_JOIN_STORE, True),
        ("kiosk", Capability.REQUEST_JOIN_STORE, False),
        (None, Capability.REQUEST_JOIN_STORE, False),
        ("owner", "approve_everything", False),
    ],
)
def test_capability_follows_rank(role, capability, expected):
    assert has_capability(role, capability) is expected


def test_unknown_roles_rank_zero():
    assert rank_of_role("intern") == 0
    assert rank_of_role(Role.OWNER) == 6


def test_role_predicates():
    assert is_admin_role("manager")
    assert not is_admin_role("senior")
    assert is_owner_role(Role.OWNER)
    assert is_kiosk_role("kiosk")
    assert not is_kiosk_role(None)


def test_every_approval_type_has_an_approve_capability():
    assert set(APPROVE_CAPABILITY_BY_TYPE) == set(ApprovalType)


def test_highest_role_ignores_missing_values():
    assert highest_role(["staff", None, "admin", "senior"]) == "admin"
    assert highest_role([]) is None


def test_role_for_store_skips_resigned_assignments():
    assignments = [
        SimpleNamespace(store_id="s1", role="manager", is_resigned=True),
        SimpleNamespace(store_id="s1", role="staff", is_resigned=False),
        SimpleNamespace(store_id="s2", role="owner", is_resigned=False),
    ]

    assert role_for_store(assignments, "s1") == "staff"
    assert role_for_store(assignments, "s3") is None
