from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    # ---------- MySQL ----------
    DB_HOST: str = "localhost"
    DB_PORT: int = 3306
    DB_USER: str = "root"
    DB_PASSWORD: str = ""
    DB_DATABASE: str = "grindhub"
    # 直接指定连接串时优先使用（测试用 sqlite）
    DATABASE_URL: Optional[str] = None

    #跨域
    CORS_ORIGINS: str = "http://localhost:8081"

    @property
    def DATABASE_URI(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"mysql+pymysql://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_DATABASE}?charset=utf8mb4"
        )

    @property
    def CORS_ORIGINS_LIST(self) -> List[str]:
        return [orig.strip() for orig in self.CORS_ORIGINS.split(",") if orig.strip()]

    # ---------- JWT ----------
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # ---------- 群组 ----------
    # 消息的日期/当日秒数按这个时区计算
    TIMEZONE: str = "Asia/Singapore"
    INVITE_CODE_LENGTH: int = 6
    INVITE_CODE_MAX_RETRIES: int = 5

    # ---------- 实时通道 ----------
    # 聊天机器人服务地址，不配置则助手不回复
    ASSISTANT_API_URL: Optional[str] = None
    ASSISTANT_TIMEOUT_SECONDS: float = 15.0
    # 失效连接巡检间隔（秒），0 表示关闭
    WS_SWEEP_INTERVAL_SECONDS: int = 60

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
