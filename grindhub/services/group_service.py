from sqlalchemy.orm import Session
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import logging
import secrets
import string
import uuid
from grindhub.core.config import settings
from grindhub.core.errors import NotFoundError, StoreError, ValidationError
from grindhub.models.groups import Group
from grindhub.models.group_members import GroupMember
from grindhub.models.user import User
from grindhub.schemas.groups import GroupMemberInfo, GroupSummary

logger = logging.getLogger(__name__)

# 邀请码字符集：大小写字母 + 数字
INVITE_CODE_ALPHABET = string.ascii_letters + string.digits


def _new_id() -> str:
    return str(uuid.uuid4())


def _require_user(db: Session, user_id: str) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


# ==================== 群组管理 ====================

def generate_invitation_code(db: Session, length: int = None, max_retries: int = None) -> str:
    """生成一个当前未被占用的邀请码，撞码就重试，重试用完抛 StoreError"""
    length = length or settings.INVITE_CODE_LENGTH
    max_retries = max_retries or settings.INVITE_CODE_MAX_RETRIES

    for attempt in range(max_retries):
        code = "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(length))
        taken = db.scalar(select(Group.id).where(Group.invitation_code == code))
        if not taken:
            return code
        logger.warning(f"邀请码冲突，重新生成 (尝试 {attempt + 1}/{max_retries})")

    raise StoreError("无法生成唯一的邀请码")


def create_group(db: Session, name: str | None, description: str | None) -> Group:
    """创建群组。创建者不会自动入群，需要客户端再调用入群接口"""
    name = (name or "").strip()
    if not name:
        raise ValidationError("Missing required field: name")

    new_group = Group(
        id=_new_id(),
        name=name,
        description=description,
        invitation_code=generate_invitation_code(db),
    )
    db.add(new_group)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreError(f"创建群组失败: {e}") from e
    db.refresh(new_group)
    logger.info(f"群组已创建: {new_group.id} ({new_group.name})")
    return new_group


def resolve_invitation_code(db: Session, code: str | None) -> Group:
    """邀请码 -> 群组，精确匹配（区分大小写）"""
    group = None
    if code:
        group = db.scalar(select(Group).where(Group.invitation_code == code))
    if not group:
        raise NotFoundError("Invitation code does not belong to any group")
    return group


def get_group_summary(db: Session, group_id: str | None) -> GroupSummary:
    """群资料：名称、描述、邀请码和成员列表。没有成员时 members 为空列表"""
    if not group_id:
        raise ValidationError("Missing required field: group_id")

    group = db.get(Group, group_id)
    if not group:
        raise NotFoundError("Group not found")

    stmt = (
        select(User.id, User.username)
        .join(GroupMember, GroupMember.user_id == User.id)
        .where(GroupMember.group_id == group_id)
        .order_by(GroupMember.joined_at.asc(), GroupMember.id.asc())
    )
    members = [
        GroupMemberInfo(user_id=user_id, username=username)
        for user_id, username in db.execute(stmt).all()
    ]

    return GroupSummary(
        group_id=group.id,
        name=group.name,
        description=group.description,
        invitation_code=group.invitation_code,
        members=members,
    )


# ==================== 群成员管理 ====================

def _find_membership(db: Session, user_id: str, group_id: str) -> GroupMember | None:
    return db.scalar(
        select(GroupMember).where(
            GroupMember.group_id == group_id,
            GroupMember.user_id == user_id
        )
    )


def join_group(db: Session, invitation_code: str | None, user_id: str | None) -> tuple[GroupMember, bool]:
    """
    通过邀请码入群

    Returns:
        (成员记录, 是否新建)。已经在群里时直接返回原记录，不算失败
    """
    if not invitation_code or not user_id:
        raise ValidationError("Missing required fields: invitation_code and user_id are both required.")

    group = resolve_invitation_code(db, invitation_code)
    _require_user(db, user_id)

    existing = _find_membership(db, user_id, group.id)
    if existing:
        return existing, False

    new_member = GroupMember(id=_new_id(), group_id=group.id, user_id=user_id)
    db.add(new_member)
    try:
        db.commit()
    except IntegrityError:
        # 并发入群撞上唯一约束：回滚后返回先写进去的那条
        db.rollback()
        existing = _find_membership(db, user_id, group.id)
        if existing:
            logger.info(f"用户 {user_id} 并发重复入群 {group.id}，按已入群处理")
            return existing, False
        raise StoreError("入群失败")
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreError(f"入群失败: {e}") from e

    db.refresh(new_member)
    logger.info(f"用户 {user_id} 加入群 {group.id}")
    return new_member, True


def list_groups_for_user(db: Session, user_id: str | None) -> list[Group]:
    """用户加入的所有群，没有就返回空列表"""
    if not user_id:
        raise ValidationError("Missing required field: user_id")

    stmt = (
        select(Group)
        .join(GroupMember, Group.id == GroupMember.group_id)
        .where(GroupMember.user_id == user_id)
        .order_by(Group.name.asc(), Group.id.asc())
    )
    return list(db.scalars(stmt).unique().all())


def get_member_ids(db: Session, group_id: str) -> list[str]:
    """群内所有成员的 user_id（推送用）"""
    stmt = select(GroupMember.user_id).where(GroupMember.group_id == group_id).distinct()
    return list(db.scalars(stmt).all())
