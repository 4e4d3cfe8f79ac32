# backend/integrations/__init__.py
# 통합 서비스 모듈

from .types import (
    AuditLogEntry,
    AuditResult,
    IntegrationConfig,
    IntegrationMetrics,
    OperationResult,
)
from .executor import RetryableOperationExecutor
from .base_service import BaseIntegrationService
from .slack_hubspot_service import SlackHubspotService
from .zapier_slack_service import ZapierSlackService
from .integration_service import (
    IntegrationService,
    get_integration_service,
    set_integration_service,
)

__all__ = [
    "AuditLogEntry",
    "AuditResult",
    "IntegrationConfig",
    "IntegrationMetrics",
    "OperationResult",
    "RetryableOperationExecutor",
    "BaseIntegrationService",
    "SlackHubspotService",
    "ZapierSlackService",
    "IntegrationService",
    "get_integration_service",
    "set_integration_service",
]
