from datetime import datetime, timedelta, timezone
from jose import jwt, JWTError
from grindhub.core.config import settings

# 兼容旧客户端签发的 userid 字段
USER_ID_CLAIMS = ("user_id", "userid")


# -------- 签发 --------
def create_access_token(user_id: str, expires_delta: timedelta = None, **claims) -> str:
    """给实时通道用的令牌，REST 接口本身不校验"""
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    payload = {**claims, "user_id": str(user_id), "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


# -------- 验签 --------
def get_token_user_id(token: str) -> str | None:
    """
    验签并取出用户ID
    签名错误或过期抛 JWTError；没有用户字段返回 None
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise JWTError("Token 无效或已过期")
    for claim in USER_ID_CLAIMS:
        if payload.get(claim):
            return str(payload[claim])
    return None
