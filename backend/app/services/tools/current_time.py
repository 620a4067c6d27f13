import logging
from datetime import datetime
from typing import Dict, Optional

import pytz
from langchain_core.tools import tool

from config import DEFAULT_TIMEZONE

logger = logging.getLogger(__name__)

WEEKDAYS_JA = ("月曜日", "火曜日", "水曜日", "木曜日", "金曜日", "土曜日", "日曜日")


def current_time_in(timezone: Optional[str] = None, now: Optional[datetime] = None) -> Dict[str, str]:
    """
    Format the current moment for ``timezone``.

    Unknown zone names fall back to UTC; the zone actually used is reported
    back so the assistant does not claim a time it did not compute.
    """
    tz_name = timezone or DEFAULT_TIMEZONE
    try:
        tz = pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        logger.warning(f"[CurrentTime] Unknown timezone '{tz_name}', falling back to UTC")
        tz = pytz.UTC
        tz_name = "UTC"

    utc_now = now.astimezone(pytz.UTC) if now else datetime.now(pytz.UTC)
    local = utc_now.astimezone(tz)

    return {
        "current_time": f"{local:%Y年%m月%d日} {WEEKDAYS_JA[local.weekday()]} {local:%H:%M:%S}",
        "timezone": tz_name,
        "timestamp": utc_now.isoformat().replace("+00:00", "Z"),
    }


@tool
def get_current_time(timezone: str = DEFAULT_TIMEZONE) -> Dict[str, str]:
    """現在の日時を取得します。timezone にはタイムゾーン名を指定します (例: Asia/Tokyo, UTC)。"""
    return current_time_in(timezone)


CHAT_TOOLS = [get_current_time]
