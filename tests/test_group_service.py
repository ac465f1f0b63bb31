"""
群组目录 & 成员关系
"""
import pytest
from sqlalchemy import func, select

from grindhub.core.errors import NotFoundError, StoreError, ValidationError
from grindhub.models.group_members import GroupMember
from grindhub.services import group_service


def count_members(db, group_id=None):
    stmt = select(func.count(GroupMember.id))
    if group_id:
        stmt = stmt.where(GroupMember.group_id == group_id)
    return db.scalar(stmt)


def test_create_group_assigns_id_and_code(db):
    group = group_service.create_group(db, "CS2030 Study", "exam prep")

    assert group.id
    assert group.name == "CS2030 Study"
    assert group.description == "exam prep"
    assert len(group.invitation_code) == 6
    assert all(c in group_service.INVITE_CODE_ALPHABET for c in group.invitation_code)


def test_create_group_does_not_auto_join(db):
    group = group_service.create_group(db, "CS2030 Study", "exam prep")
    assert count_members(db, group.id) == 0


@pytest.mark.parametrize("name", [None, "", "   "])
def test_create_group_requires_name(db, name):
    with pytest.raises(ValidationError):
        group_service.create_group(db, name, "desc")


def test_resolve_invitation_code_is_pure_lookup(db):
    group = group_service.create_group(db, "Algo", None)

    first = group_service.resolve_invitation_code(db, group.invitation_code)
    second = group_service.resolve_invitation_code(db, group.invitation_code)

    assert first.id == group.id
    assert second.id == first.id


def test_resolve_unknown_code(db):
    group_service.create_group(db, "Algo", None)
    with pytest.raises(NotFoundError):
        group_service.resolve_invitation_code(db, "ZZZZZZ")


def test_resolve_is_case_sensitive(db, monkeypatch):
    codes = iter("abcdef")
    monkeypatch.setattr(group_service.secrets, "choice", lambda alphabet: next(codes))
    group = group_service.create_group(db, "Algo", None)
    assert group.invitation_code == "abcdef"

    with pytest.raises(NotFoundError):
        group_service.resolve_invitation_code(db, "ABCDEF")


def test_invitation_code_retries_on_collision(db, monkeypatch):
    # 第一个群拿到 AAAAAA，第二个群先撞 AAAAAA 再拿到 BBBBBB
    sequence = iter("AAAAAA" + "AAAAAA" + "BBBBBB")
    monkeypatch.setattr(group_service.secrets, "choice", lambda alphabet: next(sequence))

    first = group_service.create_group(db, "One", None)
    second = group_service.create_group(db, "Two", None)

    assert first.invitation_code == "AAAAAA"
    assert second.invitation_code == "BBBBBB"


def test_invitation_code_retries_exhausted(db, monkeypatch):
    monkeypatch.setattr(group_service.secrets, "choice", lambda alphabet: "Q")
    group_service.create_group(db, "One", None)

    with pytest.raises(StoreError):
        group_service.create_group(db, "Two", None)


def test_join_group_links_user_to_resolved_group(db, make_user):
    user_id = make_user("alice")
    group = group_service.create_group(db, "CS2030 Study", "exam prep")

    member, created = group_service.join_group(db, group.invitation_code, user_id)

    assert created is True
    assert member.group_id == group.id
    assert member.user_id == user_id
    assert member.id


def test_join_group_unknown_code_creates_nothing(db, make_user):
    user_id = make_user()
    group_service.create_group(db, "CS2030 Study", None)

    with pytest.raises(NotFoundError):
        group_service.join_group(db, "ZZZZZZ", user_id)

    assert count_members(db) == 0


def test_join_group_unknown_user(db):
    group = group_service.create_group(db, "CS2030 Study", None)

    with pytest.raises(NotFoundError):
        group_service.join_group(db, group.invitation_code, "no-such-user")

    assert count_members(db) == 0


def test_join_group_missing_fields(db, make_user):
    user_id = make_user()
    with pytest.raises(ValidationError):
        group_service.join_group(db, "", user_id)
    with pytest.raises(ValidationError):
        group_service.join_group(db, "ABCDEF", None)


def test_join_group_twice_keeps_one_row(db, make_user):
    user_id = make_user()
    group = group_service.create_group(db, "CS2030 Study", None)

    first, created_first = group_service.join_group(db, group.invitation_code, user_id)
    second, created_second = group_service.join_group(db, group.invitation_code, user_id)

    assert created_first is True
    assert created_second is False
    assert second.id == first.id
    assert count_members(db, group.id) == 1


def test_join_group_race_on_unique_constraint(db, make_user, monkeypatch):
    """并发入群：查重时还没有记录，插入时撞上唯一约束，按已入群返回"""
    user_id = make_user()
    group = group_service.create_group(db, "CS2030 Study", None)
    winner, _ = group_service.join_group(db, group.invitation_code, user_id)

    real_find = group_service._find_membership
    calls = {"n": 0}

    def find_once_missing(session, uid, gid):
        calls["n"] += 1
        if calls["n"] == 1:
            return None
        return real_find(session, uid, gid)

    monkeypatch.setattr(group_service, "_find_membership", find_once_missing)

    member, created = group_service.join_group(db, group.invitation_code, user_id)

    assert created is False
    assert member.id == winner.id
    assert count_members(db, group.id) == 1


def test_list_groups_for_user(db, make_user):
    user_id = make_user()
    algo = group_service.create_group(db, "Algo", None)
    bio = group_service.create_group(db, "Bio", None)
    group_service.create_group(db, "Chem", None)

    group_service.join_group(db, bio.invitation_code, user_id)
    group_service.join_group(db, algo.invitation_code, user_id)

    groups = group_service.list_groups_for_user(db, user_id)
    assert [g.name for g in groups] == ["Algo", "Bio"]


def test_list_groups_empty_is_valid(db, make_user):
    user_id = make_user()
    assert group_service.list_groups_for_user(db, user_id) == []


def test_group_summary_lists_members(db, make_user):
    alice = make_user("alice")
    bob = make_user("bob")
    group = group_service.create_group(db, "CS2030 Study", "exam prep")
    group_service.join_group(db, group.invitation_code, alice)
    group_service.join_group(db, group.invitation_code, bob)

    summary = group_service.get_group_summary(db, group.id)

    assert summary.name == "CS2030 Study"
    assert summary.description == "exam prep"
    assert summary.invitation_code == group.invitation_code
    assert {(m.user_id, m.username) for m in summary.members} == {(alice, "alice"), (bob, "bob")}


def test_group_summary_memberless_group(db):
    group = group_service.create_group(db, "Empty", None)
    summary = group_service.get_group_summary(db, group.id)
    assert summary.members == []


def test_group_summary_unknown_group(db):
    with pytest.raises(NotFoundError):
        group_service.get_group_summary(db, "no-such-group")


def test_get_member_ids(db, make_user):
    alice = make_user()
    bob = make_user()
    group = group_service.create_group(db, "CS2030 Study", None)
    group_service.join_group(db, group.invitation_code, alice)
    group_service.join_group(db, group.invitation_code, bob)

    assert sorted(group_service.get_member_ids(db, group.id)) == sorted([alice, bob])
