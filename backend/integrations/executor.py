# backend/integrations/executor.py
# 재시도 + 지표 + 감사 로그 실행기

import asyncio
import logging
import time
import uuid
from collections import deque
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional, Set

from core.clock import utc_now
from core.config import IntegrationConfig, validate_integration_config
from core.errors import OperationTimeoutError

from .types import (
    AuditLogEntry,
    AuditResult,
    IntegrationMetrics,
    OperationMetadata,
    OperationResult,
)


MAX_AUDIT_LOGS = 100
MAX_INACTIVITY = timedelta(minutes=30)

Clock = Callable[[], datetime]
Sleep = Callable[[float], Awaitable[Any]]
Timer = Callable[[], float]


class RetryableOperationExecutor:
    """
    비동기 작업 실행기

    기능:
    - 시도별 타임아웃
    - 지수 백오프 재시도 (retry_delay_ms * 2^(attempt-1))
    - 성공/실패 지표 누적
    - 최근 100건 감사 로그

    작업 실패는 예외 대신 OperationResult 로 반환한다.
    """

    def __init__(
        self,
        service_name: str,
        config: IntegrationConfig,
        logger: Optional[logging.Logger] = None,
        clock: Optional[Clock] = None,
        sleep: Optional[Sleep] = None,
        timer: Optional[Timer] = None
    ):
        validate_integration_config(service_name, config, require_enabled=False)

        self.service_name = service_name
        self.config = config
        self.logger = logger or logging.getLogger(f"integrations.{service_name}")
        self.clock = clock or utc_now
        self.sleep = sleep or asyncio.sleep
        self.timer = timer or time.monotonic

        self.metrics = self._initialize_metrics()
        self.abandoned: Set[asyncio.Future] = set()
        self.audit_logs: Deque[AuditLogEntry] = deque(maxlen=MAX_AUDIT_LOGS)

    async def execute_with_retry(
        self,
        operation: Callable[[], Awaitable[Any]],
        operation_name: str,
        max_attempts: Optional[int] = None
    ) -> OperationResult:
        """작업 실행 (타임아웃 + 재시도)"""
        attempts = self.config.retry_attempts if max_attempts is None else max_attempts
        if attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        started = self.timer()

        for attempt in range(1, attempts + 1):
            self.metrics.total_requests += 1

            try:
                data = await self._with_timeout(operation)
            except Exception as e:
                message = str(e) or e.__class__.__name__
                self.logger.warning(
                    "Attempt %d/%d failed for %s: %s",
                    attempt, attempts, operation_name, message
                )

                if attempt == attempts:
                    return self._final_failure(operation_name, message, attempts, started)

                await self._backoff(attempt)
                continue

            return self._success(data, operation_name, attempt, started)

        return OperationResult.fail("Unexpected error in retry logic")

    async def _with_timeout(self, operation: Callable[[], Awaitable[Any]]) -> Any:
        """
        작업 vs 타이머 경쟁

        타이머가 이기면 작업은 취소 요청만 하고 기다리지 않는다.
        늦게 끝난 작업의 결과/예외는 버린다.
        """
        task = asyncio.ensure_future(operation())
        try:
            done, _ = await asyncio.wait({task}, timeout=self.config.timeout_ms / 1000)
        except asyncio.CancelledError:
            task.cancel()
            raise

        if task in done:
            return task.result()

        task.cancel()
        self.abandoned.add(task)
        task.add_done_callback(self._discard_abandoned)
        raise OperationTimeoutError(self.config.timeout_ms)

    def _discard_abandoned(self, task: asyncio.Future) -> None:
        self.abandoned.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.logger.debug("Abandoned operation finished with error: %s", error)

    async def _backoff(self, attempt: int) -> None:
        delay_ms = self.config.retry_delay_ms * 2 ** (attempt - 1)
        await self.sleep(delay_ms / 1000)

    def _success(
        self,
        data: Any,
        operation_name: str,
        attempt: int,
        started: float
    ) -> OperationResult:
        duration = self._elapsed_ms(started)

        self.metrics.successful_requests += 1
        n = self.metrics.successful_requests
        self.metrics.average_response_time_ms = (
            self.metrics.average_response_time_ms * (n - 1) + duration
        ) / n
        self.metrics.last_activity = self.clock()

        self.add_audit_log(
            action=operation_name,
            result=AuditResult.SUCCESS,
            data={"attempt": attempt, "duration": duration}
        )

        self.logger.debug("%s succeeded on attempt %d (%dms)", operation_name, attempt, duration)

        return OperationResult(
            success=True,
            data=data,
            timestamp=self.clock(),
            metadata=OperationMetadata(attempts=attempt, duration_ms=duration)
        )

    def _final_failure(
        self,
        operation_name: str,
        message: str,
        total_attempts: int,
        started: float
    ) -> OperationResult:
        duration = self._elapsed_ms(started)

        self.metrics.failed_requests += 1

        self.add_audit_log(
            action=operation_name,
            result=AuditResult.FAILURE,
            error=message,
            data={"total_attempts": total_attempts, "duration": duration}
        )

        self.logger.error("%s failed after %d attempts: %s", operation_name, total_attempts, message)

        return OperationResult(
            success=False,
            error=message,
            timestamp=self.clock(),
            metadata=OperationMetadata(attempts=total_attempts, duration_ms=duration)
        )

    def _elapsed_ms(self, started: float) -> int:
        return int((self.timer() - started) * 1000)

    # ------------------------------------------------------------------
    # 감사 로그
    # ------------------------------------------------------------------

    def add_audit_log(
        self,
        action: str,
        result: AuditResult,
        data: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
        contact_id: Optional[str] = None,
        user_id: Optional[str] = None
    ) -> AuditLogEntry:
        """감사 로그 추가 (100건 초과 시 오래된 것부터 제거)"""
        timestamp = self.clock()
        entry = AuditLogEntry(
            id=self._generate_id(timestamp),
            service=self.service_name,
            action=action,
            timestamp=timestamp,
            result=result,
            data=dict(data or {}),
            error=error,
            contact_id=contact_id,
            user_id=user_id
        )
        self.audit_logs.append(entry)
        return entry

    def get_audit_logs(self, limit: Optional[int] = None) -> List[AuditLogEntry]:
        """최근 limit 건 (삽입 순서)"""
        logs = list(self.audit_logs)
        if limit:
            if limit < 0:
                raise ValueError("limit must not be negative")
            return logs[-limit:]
        return logs

    def clear_audit_logs(self) -> None:
        self.audit_logs.clear()

    def _generate_id(self, timestamp: datetime) -> str:
        millis = int(timestamp.timestamp() * 1000)
        return f"{self.service_name}-{millis}-{uuid.uuid4().hex[:9]}"

    # ------------------------------------------------------------------
    # 지표 / 상태
    # ------------------------------------------------------------------

    def _initialize_metrics(self) -> IntegrationMetrics:
        return IntegrationMetrics(uptime_start=self.clock())

    def get_metrics(self) -> IntegrationMetrics:
        return self.metrics.model_copy()

    def reset_metrics(self) -> None:
        """지표 초기화 (감사 로그는 유지)"""
        self.metrics = self._initialize_metrics()
        self.metrics.last_activity = self.clock()

    def is_healthy(self) -> bool:
        """최근 30분 내 성공한 작업이 있는지"""
        last_activity = self.metrics.last_activity
        if last_activity is None:
            return False
        return self.clock() - last_activity <= MAX_INACTIVITY

    def get_status(self, initialized: bool = True) -> OperationResult:
        """상태 스냅샷"""
        return OperationResult(
            success=initialized,
            data={
                "service": self.service_name,
                "initialized": initialized,
                "healthy": self.is_healthy(),
                "metrics": self.get_metrics().model_dump(mode="json"),
                "config": {
                    "enabled": self.config.enabled,
                    "retry_attempts": self.config.retry_attempts,
                    "timeout": self.config.timeout_ms
                }
            },
            timestamp=self.clock()
        )
