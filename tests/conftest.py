"""
测试公共夹具：内存 sqlite + 每个用例重建表
"""
import os

# 必须在导入 grindhub 之前设置
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("WS_SWEEP_INTERVAL_SECONDS", "0")
os.environ.pop("ASSISTANT_API_URL", None)

import uuid
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from grindhub.core.security import create_access_token
from grindhub.db.database import SessionLocal
from grindhub.db import init_db
from grindhub.models.user import User
from grindhub.utils import timezone
from grindhub.websocket.manager import manager


@pytest.fixture(autouse=True)
def reset_db():
    init_db.reset()
    manager.active_connections.clear()
    yield
    manager.active_connections.clear()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    from main import app
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user(db):
    def _make(username: str = None) -> str:
        user_id = str(uuid.uuid4())
        username = username or f"user-{user_id[:8]}"
        db.add(User(id=user_id, username=username, email=f"{user_id}@example.com"))
        db.commit()
        return user_id
    return _make


@pytest.fixture
def token_for():
    def _token(user_id: str) -> str:
        return create_access_token(user_id)
    return _token


@pytest.fixture
def fixed_clock(monkeypatch):
    """把服务器时钟换成可控的时间，调用 set_time(...) 改变下一次写入的时间"""
    state = {"now": datetime(2025, 3, 10, 9, 0, 0, tzinfo=timezone.TIMEZONE)}

    def set_time(moment: datetime):
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.TIMEZONE)
        state["now"] = moment

    monkeypatch.setattr(timezone, "now", lambda: state["now"])
    return set_time
