"""
实时通道客户端

一个登录身份对应一条连接。用 async with 管理生命周期：
退出（正常结束、登出、离开页面、异常）时一定取消订阅并关闭连接。

    async with RealtimeSession(url, token) as session:
        session.subscribe(on_group_message)
        await session.listen()
"""
import json
import logging
from typing import Any, Callable, Dict, List
from urllib.parse import urlencode

import websockets
from websockets.exceptions import ConnectionClosed

from grindhub.core.errors import ChannelError
from grindhub.websocket.manager import ASSISTANT_CHANNEL, GROUP_CHANNEL, ConnectionState

logger = logging.getLogger(__name__)

Handler = Callable[[Dict[str, Any]], None]


class RealtimeSession:

    def __init__(self, url: str, token: str, open_timeout: float = 10):
        self.url = f"{url}?{urlencode({'token': token})}"
        self.open_timeout = open_timeout
        self.state = ConnectionState.CONNECTING
        self._ws = None
        self._group_handlers: List[Handler] = []
        self._assistant_handlers: List[Handler] = []
        self._error_handlers: List[Callable[[ChannelError], None]] = []

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def connect(self):
        self.state = ConnectionState.CONNECTING
        try:
            self._ws = await websockets.connect(self.url, open_timeout=self.open_timeout)
        except Exception as e:
            self.state = ConnectionState.DISCONNECTED
            raise ChannelError(f"Realtime connection failed: {e}") from e
        self.state = ConnectionState.CONNECTED
        logger.info("实时通道已连接")

    # ==================== 订阅 ====================

    @staticmethod
    def _register(handlers: list, handler) -> Callable[[], None]:
        handlers.append(handler)

        def unsubscribe():
            if handler in handlers:
                handlers.remove(handler)
        return unsubscribe

    def subscribe(self, handler: Handler) -> Callable[[], None]:
        """群聊新消息，每条推送调用一次，按收到的顺序"""
        return self._register(self._group_handlers, handler)

    def on_assistant(self, handler: Handler) -> Callable[[], None]:
        """助手回复，和群聊完全分开"""
        return self._register(self._assistant_handlers, handler)

    def on_error(self, handler: Callable[[ChannelError], None]) -> Callable[[], None]:
        return self._register(self._error_handlers, handler)

    # ==================== 收发 ====================

    def dispatch(self, raw: str):
        """分发一帧服务端消息"""
        if self.state != ConnectionState.CONNECTED:
            return
        try:
            event = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"收到无效JSON: {raw}")
            return
        if not isinstance(event, dict):
            return

        event_type = event.get("type")
        channel = event.get("channel")
        data = event.get("data") or {}

        if event_type == "chat_message" and channel == GROUP_CHANNEL:
            handlers = self._group_handlers
        elif event_type == "assistant_reply" and channel == ASSISTANT_CHANNEL:
            handlers = self._assistant_handlers
        else:
            return

        for handler in list(handlers):
            self._safe_call(handler, data)

    @staticmethod
    def _safe_call(handler, payload):
        # 单个回调出错不能拖垮整条连接
        try:
            handler(payload)
        except Exception as e:
            logger.error(f"实时回调出错: {e}")

    def _report(self, error: ChannelError):
        for handler in list(self._error_handlers):
            self._safe_call(handler, error)

    async def listen(self):
        """
        一直收消息直到连接结束；断线只通知错误回调，不往外抛

        服务端正常关闭（1000/1001，比如重启或同一用户在别处重连）
        迭代会直接结束、不抛异常，也算一次断线。
        只有 close() 主动关闭时不通知。
        """
        ws = self._ws
        if ws is None:
            return
        detail = None
        try:
            async for raw in ws:
                if isinstance(raw, bytes):
                    continue
                self.dispatch(raw)
            detail = f"closed by server (code={ws.close_code}, reason={ws.close_reason!r})"
        except ConnectionClosed as e:
            detail = str(e)
        finally:
            dropped = detail is not None and self.state == ConnectionState.CONNECTED
            self.state = ConnectionState.DISCONNECTED

        if dropped:
            logger.warning(f"实时通道断开: {detail}")
            self._report(ChannelError(f"Realtime connection dropped: {detail}"))

    async def send_prompt(self, message: str, context: list | None = None):
        """向助手提问，回复通过 on_assistant 回调异步返回"""
        if self.state != ConnectionState.CONNECTED or self._ws is None:
            raise ChannelError("Realtime connection is not open")
        event = {"type": "user_message", "data": {"message": message, "context": context or []}}
        try:
            await self._ws.send(json.dumps(event, ensure_ascii=False))
        except ConnectionClosed as e:
            self.state = ConnectionState.DISCONNECTED
            raise ChannelError(f"Realtime connection dropped: {e}") from e

    async def close(self):
        """可以重复调用；先清空回调，关闭之后不会再触发任何回调"""
        already_closed = self.state == ConnectionState.DISCONNECTED
        self.state = ConnectionState.DISCONNECTED
        self._group_handlers.clear()
        self._assistant_handlers.clear()
        self._error_handlers.clear()
        if self._ws is not None:
            ws, self._ws = self._ws, None
            try:
                await ws.close()
            except Exception as e:
                logger.warning(f"关闭实时连接时出错: {e}")
        if not already_closed:
            logger.info("实时通道已关闭")
