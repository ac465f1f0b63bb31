from fastapi import APIRouter, BackgroundTasks, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from grindhub.db.database import get_db
from grindhub.schemas.group_messages import GroupMessageCreate, GroupMessageListRequest
from grindhub.services import group_service, messages_service
from grindhub.websocket.manager import manager

router = APIRouter()


@router.post("/send", status_code=201)
def send_message(
    message_data: GroupMessageCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    """
    发送群消息

    Body:
        - group_id: 群组ID
        - user_id: 发送人ID
        - content: 消息内容

    说明：
        先写库，响应返回后再推送给群内在线成员（推送失败不影响本次请求）
    """
    message = messages_service.append_message(
        db,
        message_data.group_id,
        message_data.user_id,
        message_data.content
    )
    payload = message.model_dump(mode="json")

    member_ids = group_service.get_member_ids(db, message.group_id)
    push_data = {**payload, "sender": message.username, "message": message.content}
    background_tasks.add_task(manager.publish, message.group_id, push_data, member_ids)

    return {
        "success": True,
        "message": "Message added successfully!",
        "data": payload,
    }


@router.post("/list")
def list_messages(
    req: GroupMessageListRequest,
    db: Session = Depends(get_db)
):
    """
    获取群聊天记录

    Returns:
        按 (日期, 当日秒数, 消息ID) 升序；没有消息时返回 404（沿用旧接口行为）
    """
    messages = messages_service.list_messages(db, req.group_id)
    if not messages:
        return JSONResponse(
            status_code=404,
            content={"success": False, "message": "No messages found!"},
        )
    return {
        "success": True,
        "message": "Messages retrieved!",
        "messages": [m.model_dump(mode="json") for m in messages],
    }
