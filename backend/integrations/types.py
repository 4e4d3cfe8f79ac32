# backend/integrations/types.py
# 통합 서비스 공용 타입

from enum import Enum
from typing import Any, Dict, Optional
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from core.clock import utc_now
from core.config import IntegrationConfig


class AuditResult(str, Enum):
    """감사 로그 결과"""
    SUCCESS = "success"
    FAILURE = "failure"
    PARTIAL = "partial"


class OperationMetadata(BaseModel):
    """실행 메타데이터"""
    attempts: int
    duration_ms: int


class OperationResult(BaseModel):
    """
    작업 실행 결과

    success=True 이면 data, False 이면 error 가 채워짐
    """
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    timestamp: datetime = Field(default_factory=utc_now)
    metadata: Optional[OperationMetadata] = None

    @classmethod
    def ok(cls, data: Any = None, metadata: Optional[OperationMetadata] = None) -> "OperationResult":
        return cls(success=True, data=data, metadata=metadata)

    @classmethod
    def fail(cls, error: str, metadata: Optional[OperationMetadata] = None) -> "OperationResult":
        return cls(success=False, error=error, metadata=metadata)


class IntegrationMetrics(BaseModel):
    """통합 서비스 누적 지표"""
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    average_response_time_ms: float = 0.0
    last_activity: Optional[datetime] = None
    uptime_start: datetime = Field(default_factory=utc_now)


class AuditLogEntry(BaseModel):
    """감사 로그 (생성 후 불변)"""
    model_config = ConfigDict(frozen=True)

    id: str
    service: str
    action: str
    timestamp: datetime
    result: AuditResult
    data: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None
    contact_id: Optional[str] = None
    user_id: Optional[str] = None


class ConnectionCheck(BaseModel):
    """외부 서비스 연결 확인 결과"""
    success: bool
    connected: bool
    error: Optional[str] = None


class StageAdvancement(BaseModel):
    """HubSpot 라이프사이클 단계 변경"""
    email: str
    name: str
    previous_stage: str
    new_stage: str
    hubspot_contact_id: str


class ZapierContact(BaseModel):
    """Zapier 웹훅으로 들어오는 연락처"""
    model_config = ConfigDict(extra="allow")

    name: str = ""
    email: str = ""
    hubspot_contact_id: str = ""
    ritual_silencioso: bool = False
    usuario_imposible: bool = False
    reason: Optional[str] = None


__all__ = [
    "AuditResult",
    "AuditLogEntry",
    "ConnectionCheck",
    "IntegrationConfig",
    "IntegrationMetrics",
    "OperationMetadata",
    "OperationResult",
    "StageAdvancement",
    "ZapierContact",
]
