"""Server health utilities.

Provides a simple `get_health` function returning server status,
start time and uptime in seconds.
"""
from datetime import datetime, timezone
import time
from typing import Optional

from caffeine_lib import __version__

# record process start time at import
_START_TIME = time.time()


def get_health(backend: Optional[str] = None, broker_stats: Optional[dict] = None) -> dict:
    """Return a dict representing server health.

    Fields:
    - status: always 'ok' while the process serves requests
    - start_time: ISO 8601 UTC timestamp when the process started
    - uptime_seconds: integer seconds since start
    - storage_backend: name of the active backend, if known
    - broker: subscriber/event counters when the broker is enabled
    """
    uptime = int(time.time() - _START_TIME)
    start_dt = datetime.fromtimestamp(_START_TIME, tz=timezone.utc)
    return {
        "status": "ok",
        "start_time": start_dt.isoformat(),
        "uptime_seconds": uptime,
        "version": __version__,
        "storage_backend": backend,
        "broker": broker_stats,
    }
