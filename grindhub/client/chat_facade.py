"""
群聊页面的数据层

把两路消息合成一份有序、不重复的视图：
    - 拉取：REST 返回的持久化历史（权威）
    - 推送：实时通道的新消息（尽力而为，可能缺、可能和历史重复）

进入页面先拉历史，之后推送按到达顺序追加在末尾（不重排已有部分）。
刷新时重新拉一遍，和当前视图按 message_id 去重后整体重排。
"""
import logging
from typing import Any, Callable, Dict, List, Optional

from grindhub.core.errors import GrindHubError

logger = logging.getLogger(__name__)

Message = Dict[str, Any]


def ordering_key(message: Message):
    """(日期, 当日秒数, 消息ID)，和服务端 list_messages 的排序一致"""
    return (
        str(message.get("sent_date") or ""),
        int(message.get("sent_time") or 0),
        str(message.get("message_id") or ""),
    )


class AssistantTranscript:
    """助手对话记录，只在本地，绝不混入群聊视图"""

    def __init__(self):
        self.entries: List[Dict[str, str]] = []

    def add_user(self, text: str):
        self.entries.append({"sender": "User", "message": text})

    def add_reply(self, data: Dict[str, Any]):
        self.entries.append({
            "sender": str(data.get("sender") or "Bot"),
            "message": str(data.get("message") or ""),
        })

    def context(self) -> List[Dict[str, str]]:
        """提问时作为上下文一并发送"""
        return list(self.entries)


class ChatFacade:

    def __init__(self, group_id: str, pull: Callable[[str], List[Message]]):
        self.group_id = group_id
        self._pull = pull
        self._view: List[Message] = []
        self._seen: set = set()
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._unsubscribe_error: Optional[Callable[[], None]] = None

    @property
    def messages(self) -> List[Message]:
        return list(self._view)

    def _reset(self, messages: List[Message]):
        merged: Dict[str, Message] = {}
        for message in messages:
            message_id = message.get("message_id")
            if message_id and message_id not in merged:
                merged[message_id] = message
        self._view = sorted(merged.values(), key=ordering_key)
        self._seen = set(merged)

    def enter(self) -> List[Message]:
        """进入群聊页面：拉全量历史并排序"""
        self._reset(list(self._pull(self.group_id)))
        return self.messages

    def refresh(self) -> List[Message]:
        """重新拉取历史，和已收到的推送合并去重后重排"""
        pulled = list(self._pull(self.group_id))
        self._reset(pulled + self._view)
        return self.messages

    def handle_push(self, data: Message) -> bool:
        """
        处理一条推送

        Returns:
            是否追加到了视图（别的群 / 重复的消息返回 False）
        """
        if data.get("group_id") != self.group_id:
            return False
        message_id = data.get("message_id")
        if not message_id or message_id in self._seen:
            return False
        self._seen.add(message_id)
        self._view.append(data)
        return True

    def handle_channel_error(self, error: Exception):
        """实时通道出问题：退回到拉取"""
        logger.warning(f"实时通道异常，改为拉取刷新: {error}")
        try:
            self.refresh()
        except GrindHubError as e:
            logger.error(f"刷新群 {self.group_id} 聊天记录失败: {e}")

    def bind(self, session) -> "ChatFacade":
        """订阅实时通道，离开页面时调用 leave()"""
        self.leave()
        self._unsubscribe = session.subscribe(self.handle_push)
        self._unsubscribe_error = session.on_error(self.handle_channel_error)
        return self

    def leave(self):
        for unsubscribe in (self._unsubscribe, self._unsubscribe_error):
            if unsubscribe:
                unsubscribe()
        self._unsubscribe = None
        self._unsubscribe_error = None
