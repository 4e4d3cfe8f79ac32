# backend/integrations/base_service.py
# 통합 서비스 베이스

import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional

from core.config import IntegrationConfig, validate_integration_config
from core.logger import get_logger

from .executor import Clock, RetryableOperationExecutor, Sleep
from .types import AuditLogEntry, AuditResult, IntegrationMetrics, OperationResult


class BaseIntegrationService(ABC):
    """
    통합 서비스 베이스

    서비스마다 자기 실행기(지표 + 감사 로그)를 하나씩 소유한다.
    """

    def __init__(
        self,
        service_name: str,
        integration_config: IntegrationConfig,
        logger: Optional[logging.Logger] = None,
        clock: Optional[Clock] = None,
        sleep: Optional[Sleep] = None
    ):
        self.service_name = service_name
        self.integration_config = integration_config
        self.logger = logger or get_logger(f"integrations.{service_name}")
        self.executor = RetryableOperationExecutor(
            service_name,
            integration_config,
            logger=self.logger,
            clock=clock,
            sleep=sleep
        )
        self.is_initialized = False

    @abstractmethod
    async def initialize(self) -> None:
        """서비스 초기화"""
        pass

    async def close(self) -> None:
        """외부 클라이언트 정리 (하위 클래스에서 재정의)"""
        pass

    def validate_config(self) -> None:
        validate_integration_config(self.service_name, self.integration_config)

    def is_healthy(self) -> bool:
        if not self.is_initialized:
            return False
        return self.executor.is_healthy()

    def get_status(self) -> OperationResult:
        status = self.executor.get_status(initialized=self.is_initialized)
        status.data["healthy"] = self.is_healthy()
        return status

    async def cleanup(self) -> None:
        """리소스 정리"""
        self.logger.info("Cleaning up %s", self.service_name)
        self.is_initialized = False
        self.executor.clear_audit_logs()
        await self.close()

    async def execute_with_retry(
        self,
        operation: Callable[[], Awaitable[Any]],
        operation_name: str,
        max_attempts: Optional[int] = None
    ) -> OperationResult:
        return await self.executor.execute_with_retry(operation, operation_name, max_attempts)

    def add_audit_log(
        self,
        action: str,
        result: AuditResult,
        data: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
        contact_id: Optional[str] = None,
        user_id: Optional[str] = None
    ) -> AuditLogEntry:
        return self.executor.add_audit_log(
            action, result, data=data, error=error, contact_id=contact_id, user_id=user_id
        )

    def get_audit_logs(self, limit: Optional[int] = None) -> List[AuditLogEntry]:
        return self.executor.get_audit_logs(limit)

    def get_metrics(self) -> IntegrationMetrics:
        return self.executor.get_metrics()

    def reset_metrics(self) -> None:
        self.executor.reset_metrics()
