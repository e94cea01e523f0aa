from datetime import datetime
import pytz
from library_catalog.config import settings

LIBRARY_TZ = pytz.timezone(settings.timezone)

def now_local() -> datetime:
    """Get current wall-clock datetime in the library timezone, without tzinfo."""
    return datetime.now(LIBRARY_TZ).replace(tzinfo=None)
