from pydantic import BaseModel, Field
from datetime import datetime


# 通过邀请码入群
class GroupJoin(BaseModel):
    invitation_code: str | None = None
    user_id: str | None = None


# 查询用户加入的群
class UserGroupsRequest(BaseModel):
    user_id: str | None = None


# 群成员响应
class GroupMemberResponse(BaseModel):
    member_id: str = Field(validation_alias="id")
    group_id: str
    user_id: str
    joined_at: datetime | None = None

    class Config:
        from_attributes = True
