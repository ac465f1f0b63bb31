from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint, func
from grindhub.db.database import Base


class GroupMember(Base):
    __tablename__ = "group_members"
    # 同一个用户在同一个群里只能有一条记录
    __table_args__ = (
        UniqueConstraint("user_id", "group_id", name="uq_group_members_user_group"),
    )

    #成员ID
    id = Column(String(36), primary_key=True, index=True)
    #群ID
    group_id = Column(String(36), ForeignKey("groups.id"), nullable=False, index=True)
    #用户ID
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    #加入时间
    joined_at = Column(DateTime, nullable=False, server_default=func.now())
