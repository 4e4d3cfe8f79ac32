# backend/core/clock.py
# 시간 헬퍼

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)
