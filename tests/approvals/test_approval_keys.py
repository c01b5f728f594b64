import pytest

from shiftboard.approvals.keys import build_allowance_doc_id, parse_role_doc_id, resolve_target_role, slugify
from shiftboard.approvals.model import ApprovalSummary
from shiftboard.core.exceptions import ErrorCode, NotFoundError, ValidationError
from shiftboard.documents.model import DocumentSnapshot


def _approval(data):
    base = {"type": "commute_update", "status": "pending", "storeId": "s1"}
    return ApprovalSummary.from_snapshot(DocumentSnapshot("approvals/a1", {**base, **data}))


def test_allowance_doc_id_uses_slug():
    assert slugify("  Night Shift! ") == "night-shift"
    assert build_allowance_doc_id("u1_s1", "Night Shift!") == "u1_s1__night-shift"


def test_allowance_name_must_produce_a_slug():
    with pytest.raises(ValidationError) as exc:
        build_allowance_doc_id("u1_s1", "!!!")

    assert exc.value.code == ErrorCode.ALLOWANCE_NAME_REQUIRED


@pytest.mark.parametrize(
    "doc_id,expected",
    [
        ("u1_s1", ("u1", "s1")),
        ("line_user_7_store9", ("line_user_7", "store9")),
        ("u1", ("u1", None)),
        ("u1_", ("u1_", None)),
        (None, (None, None)),
    ],
)
def test_parse_role_doc_id(doc_id, expected):
    assert parse_role_doc_id(doc_id) == expected


def test_target_role_comes_from_target_then_payload():
    from_target = resolve_target_role(_approval({"target": {"col": "userStoreRoles", "id": "u1_s2"}}))
    from_payload = resolve_target_role(_approval({"payload": {"targetRoleDocId": "u2_s1", "targetUserId": "u2x"}}))

    assert (from_target.user_id, from_target.store_id) == ("u1", "s2")
    assert (from_payload.role_doc_id, from_payload.user_id, from_payload.store_id) == ("u2_s1", "u2x", "s1")


def test_missing_target_role():
    with pytest.raises(NotFoundError) as exc:
        resolve_target_role(_approval({}))

    assert exc.value.code == ErrorCode.MISSING_ROLE_DOCUMENT
