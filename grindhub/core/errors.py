"""
业务异常

service 层只抛这些异常，由 api 层 / websocket 层统一转换成对外的响应格式。
"""


class GrindHubError(Exception):
    """所有业务异常的基类"""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ValidationError(GrindHubError):
    """必填字段缺失或为空"""


class NotFoundError(GrindHubError):
    """引用的群组 / 邀请码 / 用户不存在"""


class ConflictError(GrindHubError):
    """重复写入（例如重复入群），目前在入群里按幂等成功处理"""


class StoreError(GrindHubError):
    """数据库读写失败，对外只返回通用错误"""


class ChannelError(GrindHubError):
    """实时连接失败或中断，只在客户端内部作为事件处理"""
