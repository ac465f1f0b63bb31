"""
服务器时钟

消息的发送日期和当日秒数都由这里统一生成，调用方不能自己传时间。
"""
from datetime import date, datetime
from zoneinfo import ZoneInfo

from grindhub.core.config import settings

TIMEZONE = ZoneInfo(settings.TIMEZONE)


def now() -> datetime:
    """当前时间（带时区）"""
    return datetime.now(TIMEZONE)


def split_timestamp(moment: datetime) -> tuple[date, int]:
    """拆成 (日期, 当日零点起的秒数)，naive 时间按本地时区处理"""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=TIMEZONE)
    else:
        moment = moment.astimezone(TIMEZONE)
    seconds = moment.hour * 3600 + moment.minute * 60 + moment.second
    return moment.date(), seconds
