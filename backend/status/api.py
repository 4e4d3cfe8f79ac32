# backend/status/api.py
# 헬스체크 / 통합 서비스 상태 API

import time
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from core.clock import utc_now
from core.config import APP_VERSION, load_settings
from integrations.base_service import BaseIntegrationService
from integrations.integration_service import IntegrationService, get_integration_service

router = APIRouter()

_started = time.monotonic()


def _get_service(name: str, integration: IntegrationService) -> BaseIntegrationService:
    service = integration.get_service(name)
    if service is None:
        raise HTTPException(status_code=404, detail=f"Unknown integration service: {name}")
    return service


@router.get("/health")
async def health():
    """헬스체크"""
    return {
        "status": "ok",
        "timestamp": utc_now().isoformat(),
        "version": APP_VERSION,
        "uptime": round(time.monotonic() - _started, 3),
        "environment": load_settings().environment
    }


@router.get("/health/detailed")
async def health_detailed(integration: IntegrationService = Depends(get_integration_service)):
    """
    상세 헬스체크

    외부 API 연결 + 서비스 상태, 하나라도 실패 시 503
    """
    connections = await integration.check_connections()
    services = integration.get_status()

    errors = [
        {"service": name, "message": check.error}
        for name, check in connections.items()
        if not check.connected
    ]
    healthy = not errors and integration.is_healthy()

    body = {
        "status": "ok" if healthy else "error",
        "timestamp": utc_now().isoformat(),
        "version": APP_VERSION,
        "connections": {name: check.model_dump() for name, check in connections.items()},
        "services": services,
        "errors": errors
    }
    return JSONResponse(status_code=200 if healthy else 503, content=body)


@router.get("/integrations/status")
async def integrations_status(integration: IntegrationService = Depends(get_integration_service)):
    """전체 통합 서비스 상태"""
    return {"services": integration.get_status()}


@router.get("/integrations/{service_name}/audit-logs")
async def audit_logs(
    service_name: str,
    limit: Optional[int] = Query(None, ge=1, le=100),
    integration: IntegrationService = Depends(get_integration_service)
):
    """감사 로그 (최근 limit 건)"""
    service = _get_service(service_name, integration)
    logs = service.get_audit_logs(limit)
    return {
        "service": service_name,
        "total": len(logs),
        "logs": [entry.model_dump(mode="json") for entry in logs]
    }


@router.get("/integrations/{service_name}/metrics")
async def metrics(
    service_name: str,
    integration: IntegrationService = Depends(get_integration_service)
):
    service = _get_service(service_name, integration)
    return service.get_metrics().model_dump(mode="json")


@router.post("/integrations/{service_name}/metrics/reset")
async def reset_metrics(
    service_name: str,
    integration: IntegrationService = Depends(get_integration_service)
):
    """지표 초기화 (감사 로그 유지)"""
    service = _get_service(service_name, integration)
    service.reset_metrics()
    return {"success": True, "metrics": service.get_metrics().model_dump(mode="json")}
