import pytest

from wacrm.api.permissions import (
    can_manage_company,
    can_read_company,
    can_write_company,
    get_company_membership,
    is_company_owner,
)
from wacrm.utils.role_permissions import get_role_permissions, resolve_permissions

COMPANY_ID = "a4e7e61c-1e1a-42f8-8e3c-21a67e206d1d"


def _ctx(role=None, can_read=True, can_write=False, superadmin=False):
    memberships = []
    if role:
        memberships.append({"company_id": COMPANY_ID, "role": role, "can_read": can_read, "can_write": can_write})
    return {
        "is_superadmin": superadmin,
        "memberships": memberships,
        "memberships_by_company": {m["company_id"]: m for m in memberships},
    }


def test_superadmin_bypasses_every_check():
    ctx = _ctx(superadmin=True)
    assert can_read_company(COMPANY_ID, ctx)
    assert can_write_company(COMPANY_ID, ctx)
    assert can_manage_company(COMPANY_ID, ctx)
    assert is_company_owner(COMPANY_ID, ctx)


def test_non_member_is_denied():
    ctx = _ctx()
    assert get_company_membership(COMPANY_ID, ctx) is None
    assert not can_read_company(COMPANY_ID, ctx)
    assert not can_write_company(COMPANY_ID, ctx)


def test_none_context_is_denied():
    assert not can_read_company(COMPANY_ID, None)
    assert not can_manage_company(COMPANY_ID, None)


def test_viewer_reads_but_cannot_write():
    ctx = _ctx(role="viewer", can_write=False)
    assert can_read_company(COMPANY_ID, ctx)
    assert not can_write_company(COMPANY_ID, ctx)
    assert not can_manage_company(COMPANY_ID, ctx)


def test_write_follows_the_flag_not_the_role():
    assert can_write_company(COMPANY_ID, _ctx(role="viewer", can_write=True))
    assert not can_write_company(COMPANY_ID, _ctx(role="editor", can_write=False))


@pytest.mark.parametrize("role,manage,owner", [
    ("owner", True, True),
    ("admin", True, False),
    ("editor", False, False),
    ("viewer", False, False),
])
def test_manage_and_owner_by_role(role, manage, owner):
    ctx = _ctx(role=role, can_write=True)
    assert can_manage_company(COMPANY_ID, ctx) is manage
    assert is_company_owner(COMPANY_ID, ctx) is owner


def test_membership_found_by_list_when_index_missing():
    ctx = _ctx(role="editor")
    ctx["memberships_by_company"] = {}
    assert get_company_membership(COMPANY_ID, ctx)["role"] == "editor"


def test_role_defaults_and_overrides():
    assert get_role_permissions("viewer") == {"can_read": True, "can_write": False}
    assert resolve_permissions("viewer", can_write=True) == {"can_read": True, "can_write": True}
    with pytest.raises(ValueError):
        get_role_permissions("guest")
