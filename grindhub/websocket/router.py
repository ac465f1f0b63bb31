from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Query
from grindhub.websocket.manager import ASSISTANT_CHANNEL, ConnectionSession, manager
from grindhub.core.security import get_token_user_id
from grindhub.services import assistant_service
from jose import JWTError
import json
import logging

logger = logging.getLogger(__name__)
router = APIRouter()

ASSISTANT_SENDER = "Bot"


async def relay_assistant(conn: ConnectionSession, prompt: str, context: list):
    """把助手的回复逐条推回同一条连接（不落库，不进群聊）"""
    try:
        replies = await assistant_service.ask_assistant(prompt, context)
    except Exception as e:
        logger.error(f"助手请求出错: {e}")
        return
    for reply in replies:
        await conn.send_event(
            "assistant_reply",
            {"sender": ASSISTANT_SENDER, "message": reply},
            channel=ASSISTANT_CHANNEL,
        )


async def handle_client_event(conn: ConnectionSession, message: dict):
    """处理客户端发来的一帧 JSON"""
    msg_type = message.get("type")
    data = message.get("data") or {}

    # 心跳检测
    if msg_type == "ping":
        await conn.send_event("pong", {"timestamp": message.get("timestamp")})

    # 向助手提问
    elif msg_type == "user_message":
        prompt = str(data.get("message") or "").strip()
        context = data.get("context")
        if not prompt:
            await conn.send_event("error", {"message": "Empty message"})
            return
        if not isinstance(context, list):
            context = []
        # 后台等回复，不阻塞接收循环；连接关闭时会被取消
        conn.spawn(relay_assistant(conn, prompt, context))

    else:
        await conn.send_event("error", {"message": f"Unknown event type: {msg_type}"})


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    token: str = Query(...)
):
    """
    WebSocket连接端点

    Query参数:
        - token: JWT认证令牌

    群聊新消息由 REST 发送接口写库后推送到这里；
    客户端只通过这条连接和助手对话。
    """
    try:
        user_id = get_token_user_id(token)
    except JWTError:
        await websocket.close(code=1008, reason="Token验证失败")
        return

    if not user_id:
        await websocket.close(code=1008, reason="Invalid token")
        return

    async with manager.session(user_id, websocket) as conn:
        await conn.send_event("connected", {"user_id": user_id, "message": "Connected"})

        # 保持连接，监听客户端消息
        while True:
            try:
                data = await websocket.receive_text()
            except WebSocketDisconnect:
                logger.info(f"用户 {user_id} 主动断开连接")
                break
            except Exception as e:
                logger.error(f"接收消息时出错: {e}")
                break

            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                logger.warning(f"收到无效JSON: {data}")
                await conn.send_event("error", {"message": "Invalid JSON"})
                continue

            if not isinstance(message, dict):
                await conn.send_event("error", {"message": "Invalid event"})
                continue

            await handle_client_event(conn, message)
