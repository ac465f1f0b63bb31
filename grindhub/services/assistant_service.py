"""
学习助手（聊天机器人）转发

客户端通过实时连接发来问题和当前对话上下文，这里转发给外部的聊天机器人服务，
把回复原样返回。助手的对话不落库，也不会混进群聊记录。
"""
import asyncio
import logging
import aiohttp
from typing import Any, List

from grindhub.core.config import settings

logger = logging.getLogger(__name__)


def _extract_replies(result: Any) -> List[str]:
    """兼容两种返回格式：{"replies": [...]} 或 {"reply": "..."}"""
    if not isinstance(result, dict):
        return []
    replies = result.get("replies")
    if isinstance(replies, list):
        return [str(r) for r in replies if r]
    reply = result.get("reply")
    if reply:
        return [str(reply)]
    return []


async def ask_assistant(message: str, context: list | None = None) -> List[str]:
    """
    向聊天机器人提问

    Args:
        message: 用户输入的问题
        context: 客户端当前可见的对话内容

    Returns:
        零条或多条回复；未配置或请求失败时返回空列表
    """
    api_url = settings.ASSISTANT_API_URL

    if not api_url:
        logger.warning("⚠️ [Assistant] ASSISTANT_API_URL 未配置，助手不回复")
        return []

    payload = {"message": message, "context": context or []}
    timeout = aiohttp.ClientTimeout(total=settings.ASSISTANT_TIMEOUT_SECONDS)

    try:
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(api_url, json=payload) as resp:
                if resp.status != 200:
                    logger.error(f"❌ [Assistant] 请求失败: {resp.status}")
                    return []
                result = await resp.json()
                return _extract_replies(result)

    except aiohttp.ClientError as e:
        logger.error(f"❌ [Assistant] 网络请求异常: {e}")
        return []
    except asyncio.TimeoutError:
        logger.error("❌ [Assistant] 请求超时")
        return []
