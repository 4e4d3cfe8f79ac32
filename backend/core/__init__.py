# backend/core/__init__.py
# 공통 설정 / 로깅 / 에러

from .errors import ConfigurationError, OperationTimeoutError, SlackAPIError
from .clock import utc_now

__all__ = [
    "ConfigurationError",
    "OperationTimeoutError",
    "SlackAPIError",
    "utc_now",
]
