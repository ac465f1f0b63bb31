# services/messages_service.py
import logging
import uuid
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from grindhub.core.errors import NotFoundError, StoreError, ValidationError
from grindhub.models.group_messages import GroupMessage
from grindhub.models.groups import Group
from grindhub.models.user import User
from grindhub.schemas.group_messages import GroupMessageResponse
from grindhub.utils import timezone

logger = logging.getLogger(__name__)

MISSING_FIELDS_MESSAGE = "Missing required fields: group_id, user_id, and content are all required."


def _to_response(msg: GroupMessage, username: str | None) -> GroupMessageResponse:
    return GroupMessageResponse.model_validate({
        "id": msg.id,
        "group_id": msg.group_id,
        "user_id": msg.user_id,
        "username": username,
        "content": msg.content,
        "sent_date": msg.sent_date,
        "sent_time": msg.sent_time,
    })


# --------------------------------------------------
# 追加一条群消息
# --------------------------------------------------
def append_message(
    db: Session,
    group_id: str | None,
    user_id: str | None,
    content: str | None
) -> GroupMessageResponse:
    if not group_id or not user_id or not content or not content.strip():
        raise ValidationError(MISSING_FIELDS_MESSAGE)

    if not db.get(Group, group_id):
        raise NotFoundError("Group not found")
    author = db.get(User, user_id)
    if not author:
        raise NotFoundError("User not found")

    # 时间只取服务器时钟，不信任客户端
    sent_date, sent_time = timezone.split_timestamp(timezone.now())

    new_message = GroupMessage(
        id=str(uuid.uuid4()),
        group_id=group_id,
        user_id=user_id,
        content=content,
        sent_date=sent_date,
        sent_time=sent_time,
    )
    db.add(new_message)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreError(f"写入群消息失败: {e}") from e
    db.refresh(new_message)

    return _to_response(new_message, author.username)


# --------------------------------------------------
# 获取群聊天记录（按发送时间升序）
# --------------------------------------------------
def list_messages(db: Session, group_id: str | None) -> list[GroupMessageResponse]:
    if not group_id:
        raise ValidationError("Missing required field: group_id")

    stmt = (
        select(GroupMessage, User.username)
        .outerjoin(User, GroupMessage.user_id == User.id)
        .where(GroupMessage.group_id == group_id)
        .order_by(
            GroupMessage.sent_date.asc(),
            GroupMessage.sent_time.asc(),
            GroupMessage.id.asc()
        )
    )
    return [_to_response(msg, username) for msg, username in db.execute(stmt).all()]
