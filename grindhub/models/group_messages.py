from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.sql import func
from grindhub.db.database import Base

class GroupMessage(Base):
    __tablename__ = "group_messages"
    # 拉取历史时按 (日期, 当日秒数, id) 排序
    __table_args__ = (
        Index("ix_group_messages_order", "group_id", "sent_date", "sent_time", "id"),
    )

    id = Column(String(36), primary_key=True, index=True)

    # 所属群 & 发送人
    group_id = Column(String(36), ForeignKey("groups.id"), nullable=False, index=True)
    user_id  = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    # 消息内容，只追加，不修改
    content = Column(Text, nullable=False)

    # 服务器收到时的本地日期 & 零点起的秒数
    sent_date = Column(Date, nullable=False)
    sent_time = Column(Integer, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
