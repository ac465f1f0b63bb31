from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func
from grindhub.db.database import Base

# 用户表由登录注册模块维护，群聊这边只读，用来校验 user_id 是否存在
class User(Base):
    __tablename__ = "users"

    id         = Column(String(36), primary_key=True, index=True)
    username   = Column(String(64), nullable=False)
    email      = Column(String(128), unique=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
