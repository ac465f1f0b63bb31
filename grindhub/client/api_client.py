"""
GrindHub 群聊 REST 客户端

移动端之外的调用方（脚本、测试、聊天机器人服务）用它来拉群聊记录、发消息。
服务端把“空列表”当 404 返回（旧接口行为），这里统一还原成空列表。
"""
import logging
from typing import Any, Dict, List, Optional

import requests

from grindhub.core.errors import NotFoundError, StoreError, ValidationError

logger = logging.getLogger(__name__)


class GrindHubClient:

    def __init__(self, base_url: str, session: Optional[Any] = None, timeout: float = 10):
        self.base_url = base_url.rstrip("/")
        # 允许传入任何带 post(url, json=, timeout=) 的会话对象
        self.session = session or requests.Session()
        self.timeout = timeout

    def _post(self, path: str, body: Dict[str, Any], empty_key: Optional[str] = None) -> Dict[str, Any]:
        try:
            resp = self.session.post(f"{self.base_url}{path}", json=body, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"请求 {path} 失败: {e}")
            raise StoreError("Request failed") from e

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
        message = data.get("message", "")

        if resp.status_code == 404 and empty_key:
            # 列表为空被服务端报成 404
            return {"success": True, empty_key: []}
        if resp.status_code == 404:
            raise NotFoundError(message or "Not found")
        if resp.status_code in (400, 422):
            raise ValidationError(message or "Invalid request")
        if resp.status_code >= 400 or not data.get("success"):
            raise StoreError(message or "Something went wrong")
        return data

    # ==================== 群组 ====================

    def create_group(self, name: str, description: str = "") -> Dict[str, Any]:
        return self._post("/api/groups/create", {"name": name, "description": description})["group"]

    def join_group(self, invitation_code: str, user_id: str) -> Dict[str, Any]:
        body = {"invitation_code": invitation_code, "user_id": user_id}
        return self._post("/api/groups/join", body)["membership"]

    def list_groups(self, user_id: str) -> List[Dict[str, Any]]:
        return self._post("/api/groups/list", {"user_id": user_id}, empty_key="groups")["groups"]

    def group_summary(self, group_id: str) -> Dict[str, Any]:
        data = self._post("/api/groups/summary", {"group_id": group_id})
        return {k: v for k, v in data.items() if k not in ("success", "message")}

    # ==================== 群消息 ====================

    def list_messages(self, group_id: str) -> List[Dict[str, Any]]:
        return self._post("/api/messages/list", {"group_id": group_id}, empty_key="messages")["messages"]

    def send_message(self, group_id: str, user_id: str, content: str) -> Dict[str, Any]:
        body = {"group_id": group_id, "user_id": user_id, "content": content}
        return self._post("/api/messages/send", body)["data"]
