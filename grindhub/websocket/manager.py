from contextlib import asynccontextmanager
from enum import Enum
from typing import Dict, Iterable, Set
from fastapi import WebSocket
import json
import logging
import asyncio

logger = logging.getLogger(__name__)

# 实时通道里的两个逻辑频道：群聊推送 / 助手对话
GROUP_CHANNEL = "group"
ASSISTANT_CHANNEL = "assistant"


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class ConnectionSession:
    """一条连接的生命周期，退出时保证释放"""

    def __init__(self, user_id: str, websocket: WebSocket):
        self.user_id = user_id
        self.websocket = websocket
        self.state = ConnectionState.CONNECTING
        # 正在等待回复的助手请求，断开时全部取消
        self.tasks: Set[asyncio.Task] = set()

    def spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self.tasks.add(task)
        task.add_done_callback(self.tasks.discard)
        return task

    async def send_event(self, event_type: str, data: dict, channel: str | None = None) -> bool:
        if self.state != ConnectionState.CONNECTED:
            return False
        event = {"type": event_type, "data": data}
        if channel:
            event["channel"] = channel
        try:
            await self.websocket.send_text(json.dumps(event, ensure_ascii=False))
            return True
        except Exception as e:
            logger.warning(f"发送给用户 {self.user_id} 失败: {e}")
            return False

    def cancel_tasks(self):
        for task in list(self.tasks):
            task.cancel()
        self.tasks.clear()


class ConnectionManager:
    """WebSocket连接管理器"""

    def __init__(self):
        # 存储活跃连接: {user_id: ConnectionSession}
        self.active_connections: Dict[str, ConnectionSession] = {}

    @asynccontextmanager
    async def session(self, user_id: str, websocket: WebSocket):
        """建立连接，退出时（正常断开 / 异常 / 被顶号）一定清理"""
        conn = ConnectionSession(user_id, websocket)
        # 如果用户已有连接，先关闭旧连接
        if user_id in self.active_connections:
            await self.close_connection(user_id)

        await websocket.accept()
        conn.state = ConnectionState.CONNECTED
        self.active_connections[user_id] = conn
        logger.info(f"用户 {user_id} 已连接，当前在线: {len(self.active_connections)}")
        try:
            yield conn
        finally:
            conn.state = ConnectionState.DISCONNECTED
            conn.cancel_tasks()
            # 只移除自己，避免把新连接误删
            if self.active_connections.get(user_id) is conn:
                del self.active_connections[user_id]
            logger.info(f"用户 {user_id} 已断开，当前在线: {len(self.active_connections)}")

    async def close_connection(self, user_id: str):
        """安全关闭连接"""
        conn = self.active_connections.pop(user_id, None)
        if conn is None:
            return
        conn.state = ConnectionState.DISCONNECTED
        conn.cancel_tasks()
        try:
            await conn.websocket.close()
        except Exception as e:
            logger.warning(f"关闭用户 {user_id} 连接时出错: {e}")

    def disconnect(self, user_id: str, conn: ConnectionSession | None = None) -> bool:
        """
        断开连接（同步版本）

        传了 conn 时只在它仍是当前登记的连接时才移除；
        await 期间用户可能已经重连，不能把新连接误删。
        """
        current = self.active_connections.get(user_id)
        if conn is None:
            conn = current
        if conn is None:
            return False
        conn.state = ConnectionState.DISCONNECTED
        conn.cancel_tasks()
        if current is not conn:
            return False
        del self.active_connections[user_id]
        logger.info(f"用户 {user_id} 已断开，当前在线: {len(self.active_connections)}")
        return True

    async def send_personal_message(self, user_id: str, message: dict) -> bool:
        """发送消息给指定用户，失败就把这条连接当作失效"""
        conn = self.active_connections.get(user_id)
        if conn is None:
            return False
        try:
            await conn.websocket.send_text(json.dumps(message, ensure_ascii=False))
            return True
        except Exception as e:
            logger.error(f"发送消息给用户 {user_id} 失败: {e}")
            self.disconnect(user_id, conn)
            return False

    def is_online(self, user_id: str) -> bool:
        """检查用户是否在线"""
        return user_id in self.active_connections

    async def publish(self, group_id: str, message: dict, member_ids: Iterable[str]) -> int:
        """
        把一条新群消息推给群里当前在线的成员

        尽力而为：不在线的成员直接跳过（之后靠拉历史补齐），发送失败的连接被移除。

        Returns:
            成功送达的连接数
        """
        event = {
            "type": "chat_message",
            "channel": GROUP_CHANNEL,
            "data": {**message, "group_id": group_id},
        }
        targets = [uid for uid in set(member_ids) if self.is_online(uid)]
        if not targets:
            return 0

        results = await asyncio.gather(
            *(self.send_personal_message(uid, event) for uid in targets),
            return_exceptions=True
        )
        delivered = sum(1 for r in results if r is True)
        logger.info(f"群 {group_id} 新消息推送: {delivered}/{len(targets)} 个在线成员")
        return delivered

    async def cleanup_stale_connections(self):
        """清理失效的连接，返回实际移除的数量"""
        stale = []
        for user_id, conn in list(self.active_connections.items()):
            try:
                # 尝试发送 ping 检测连接状态
                await asyncio.wait_for(
                    conn.websocket.send_text(json.dumps({"type": "ping"})),
                    timeout=1.0
                )
            except Exception:
                stale.append((user_id, conn))

        removed = 0
        for user_id, conn in stale:
            if self.disconnect(user_id, conn):
                removed += 1
                logger.info(f"清理失效连接: 用户 {user_id}")
        return removed


# 全局单例
manager = ConnectionManager()
