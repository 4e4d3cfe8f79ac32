# backend/core/errors.py
# 통합 서비스 에러 타입


class ConfigurationError(Exception):
    """설정 오류 (재시도 불가, 시작 시 치명적)"""


class OperationTimeoutError(Exception):
    """작업 타임아웃"""

    def __init__(self, timeout_ms: int):
        self.timeout_ms = timeout_ms
        super().__init__(f"Operation timeout after {timeout_ms}ms")


class SlackAPIError(Exception):
    """Slack Web API 가 ok=false 를 반환"""

    def __init__(self, method: str, error: str):
        self.method = method
        self.error = error
        super().__init__(f"Slack API error on {method}: {error}")
