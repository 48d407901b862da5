from __future__ import annotations

import datetime


def utc_now() -> int:
    """Current time as integer epoch seconds, the unit every model stores."""
    return int(datetime.datetime.now(datetime.UTC).timestamp())
