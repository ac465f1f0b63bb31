from pydantic import BaseModel, Field
from datetime import datetime


# 创建群组（name 为空由 service 层判断，统一返回 400）
class GroupCreate(BaseModel):
    name: str | None = Field(None, max_length=50)
    description: str | None = Field(None, max_length=256)


# 查询群详情
class GroupSummaryRequest(BaseModel):
    group_id: str | None = None


# 群组响应
class GroupResponse(BaseModel):
    group_id: str = Field(validation_alias="id")
    name: str
    description: str | None = None
    invitation_code: str
    created_at: datetime | None = None

    class Config:
        from_attributes = True


# 群列表里的一项
class GroupListItem(BaseModel):
    group_id: str = Field(validation_alias="id")
    name: str

    class Config:
        from_attributes = True


class GroupMemberInfo(BaseModel):
    user_id: str
    username: str


# 群资料面板
class GroupSummary(BaseModel):
    group_id: str
    name: str
    description: str | None = None
    invitation_code: str
    members: list[GroupMemberInfo]
