from pydantic import BaseModel, Field
from datetime import date


# 发送群消息
class GroupMessageCreate(BaseModel):
    group_id: str | None = None
    user_id: str | None = None
    content: str | None = None


# 拉取群聊天记录
class GroupMessageListRequest(BaseModel):
    group_id: str | None = None


# 群消息响应
class GroupMessageResponse(BaseModel):
    message_id: str = Field(validation_alias="id")
    group_id: str
    user_id: str
    username: str | None = None
    content: str
    sent_date: date
    sent_time: int

    class Config:
        from_attributes = True
