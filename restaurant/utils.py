from datetime import datetime,timedelta,timezone
from zoneinfo import ZoneInfo
from .config import APP_TIMEZONE

LOCAL_TZ=timezone.utc if APP_TIMEZONE.upper()=='UTC' else ZoneInfo(APP_TIMEZONE)

def utcnow()->datetime: return datetime.now(timezone.utc)
def now_local()->datetime: return datetime.now(LOCAL_TZ)

def as_local(value:datetime)->datetime:
  # sqlite hands datetimes back naive; everything is written in UTC
  if value.tzinfo is None: value=value.replace(tzinfo=timezone.utc)
  return value.astimezone(LOCAL_TZ)

def today_bounds(now:datetime|None=None)->tuple[datetime,datetime]:
  """Start (inclusive) and end (exclusive) of the local calendar day, in UTC."""
  now=as_local(now) if now else now_local()
  start=now.replace(hour=0,minute=0,second=0,microsecond=0)
  end=start+timedelta(days=1)
  return start.astimezone(timezone.utc),end.astimezone(timezone.utc)
