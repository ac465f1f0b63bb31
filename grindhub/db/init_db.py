from grindhub.db.database import Base, engine
# 模型必须先导入，Base.metadata 里才有这些表
from grindhub.models import user, groups, group_members, group_messages  # noqa: F401
import time
import logging

logger = logging.getLogger(__name__)

MAX_RETRIES = 5
RETRY_DELAY_SECONDS = 2


def _is_concurrent_ddl(error: Exception) -> bool:
    # MySQL 1684: 多个 worker 同时建表
    message = str(error)
    return "1684" in message or "concurrent DDL" in message


def init(bind=None):
    """建表（已存在的跳过），碰到并发DDL冲突按递增间隔重试"""
    bind = bind or engine
    for attempt in range(1, MAX_RETRIES + 1):
        try:
            Base.metadata.create_all(bind=bind, checkfirst=True)
            logger.info("✅ 群聊数据表已就绪")
            return
        except Exception as e:
            if not _is_concurrent_ddl(e) or attempt == MAX_RETRIES:
                logger.error(f"❌ 数据库初始化失败 (尝试 {attempt}/{MAX_RETRIES}): {e}")
                raise
            wait_time = RETRY_DELAY_SECONDS * attempt
            logger.warning(f"⚠️ 检测到并发DDL操作，{wait_time}秒后重试... (尝试 {attempt}/{MAX_RETRIES})")
            time.sleep(wait_time)


def reset(bind=None):
    """删表重建，只给测试和本地开发用"""
    bind = bind or engine
    Base.metadata.drop_all(bind=bind)
    init(bind)


if __name__ == "__main__":
    init()
