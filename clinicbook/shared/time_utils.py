from datetime import datetime, timezone
from typing import Callable, Optional

# Injectable current-time provider; returns naive UTC like every stored timestamp
Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Scheduling compares naive UTC instants; aware inputs are converted, naive ones trusted"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
