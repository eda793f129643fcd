import time
from datetime import datetime


def now_ms() -> int:
    """Current time in epoch milliseconds"""
    return int(time.time() * 1000)


def to_ms(moment: datetime) -> int:
    """Epoch milliseconds of a datetime (naive values are local time)"""
    return int(moment.timestamp() * 1000)
