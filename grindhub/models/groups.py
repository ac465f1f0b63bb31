from sqlalchemy import Column, DateTime, String, func
from grindhub.db.database import Base

#群表，描述群的基本信息
class Group(Base):
    __tablename__ = "groups"

    #群ID（uuid）
    id = Column(String(36), primary_key=True, index=True)
    #群名
    name = Column(String(50), nullable=False, index=True)
    #描述
    description = Column(String(256), nullable=True)
    #邀请码，入群唯一凭证
    invitation_code = Column(String(16), nullable=False, unique=True, index=True)
    #创建时间
    created_at = Column(DateTime, nullable=False, server_default=func.now())
