import pytz
from datetime import datetime

from bettracker.core.config import settings

TZ = pytz.timezone(settings.TZ)

def now_local() -> datetime:
    return datetime.now(TZ)

def to_naive(dt: datetime) -> datetime:
    if dt.tzinfo:
        return dt.astimezone(TZ).replace(tzinfo=None)
    return dt

def now_naive() -> datetime:
    # stored timestamps are naive, in settings.TZ
    return to_naive(now_local())
