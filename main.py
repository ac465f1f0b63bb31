from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from grindhub.api import groups, messages
from grindhub.core.exception_handlers import setup_exception_handlers
from grindhub.websocket import router as websocket_router
from grindhub.websocket.manager import manager
from grindhub.core.config import settings
import os
import logging
import cleanup

from grindhub.db.init_db import init

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # ===== 启动阶段 =====
    # 使用环境变量标记，多 worker 部署时只让一个进程建表
    if os.environ.get("SKIP_DB_INIT") != "1":
        try:
            init()   # 建表
        except Exception as e:
            logger.error(f"数据库初始化失败: {e}")
            # 不阻止应用启动，因为表可能已经被其他worker创建

    scheduler = cleanup.start_scheduler()
    yield
    # ===== 关闭阶段 =====
    cleanup.stop_scheduler(scheduler)

app = FastAPI(
    title="GrindHub Group Chat",
    lifespan=lifespan
)
setup_exception_handlers(app)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS_LIST,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

# 注册路由
app.include_router(groups.router, prefix="/api/groups", tags=["Groups"])
app.include_router(messages.router, prefix="/api/messages", tags=["Messages"])
app.include_router(websocket_router.router, tags=["WebSocket"])

# 根路由
@app.get("/")
def root():
    return {"success": True, "message": "GrindHub group chat service is running"}


@app.get("/health")
def health_check():
    """健康检查端点，用于监控服务状态"""
    from grindhub.db.database import engine
    try:
        # 测试数据库连接
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return {
            "status": "healthy",
            "database": "connected",
            "websocket_connections": len(manager.active_connections)
        }
    except Exception as e:
        logger.error(f"健康检查失败: {e}")
        return {
            "status": "unhealthy",
            "database": "disconnected",
            "websocket_connections": len(manager.active_connections)
        }
