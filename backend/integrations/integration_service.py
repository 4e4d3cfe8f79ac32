# backend/integrations/integration_service.py
# 웹훅 이벤트 라우팅 (Slack / HubSpot / Zapier)

import logging
from typing import Any, Dict, List, Optional

from fastapi import HTTPException

from core.config import Settings
from core.logger import get_logger

from .base_service import BaseIntegrationService
from .slack_hubspot_service import SlackHubspotService
from .types import ConnectionCheck, OperationResult, StageAdvancement
from .zapier_slack_service import ZapierSlackService


LIFECYCLE_PROPERTY = "lifecyclestage"
PROPERTY_CHANGE = "contact.propertyChange"


def is_lifecycle_change(event: Dict[str, Any]) -> bool:
    return (
        event.get("subscriptionType") == PROPERTY_CHANGE
        and event.get("propertyName") == LIFECYCLE_PROPERTY
    )


def previous_stage(event: Dict[str, Any]) -> str:
    # 이전 값은 propertyValue 객체 또는 previousValue 필드로 올 수 있음
    value = event.get("propertyValue")
    if isinstance(value, dict):
        return value.get("previousValue") or "unknown"
    return event.get("previousValue") or "unknown"


def new_stage(event: Dict[str, Any]) -> str:
    value = event.get("propertyValue")
    if isinstance(value, dict):
        return value.get("value") or ""
    return value or ""


class IntegrationService:
    """
    통합 서비스 오케스트레이터

    인바운드 이벤트 → 하위 서비스 액션
    - Slack message → HubSpot 노트/연락처
    - HubSpot lifecyclestage 변경 → Slack 알림
    - Zapier payload → Slack 알림
    """

    def __init__(
        self,
        slack_hubspot: SlackHubspotService,
        zapier_slack: ZapierSlackService,
        logger: Optional[logging.Logger] = None
    ):
        self.slack_hubspot = slack_hubspot
        self.zapier_slack = zapier_slack
        self.logger = logger or get_logger("integrations.integration-service")
        self.channels: Dict[str, Optional[str]] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "IntegrationService":
        return cls(
            SlackHubspotService.from_settings(settings),
            ZapierSlackService.from_settings(settings),
        )

    @property
    def services(self) -> Dict[str, BaseIntegrationService]:
        return {
            self.slack_hubspot.service_name: self.slack_hubspot,
            self.zapier_slack.service_name: self.zapier_slack,
        }

    def get_service(self, name: str) -> Optional[BaseIntegrationService]:
        return self.services.get(name)

    async def initialize(self) -> None:
        """모든 통합 서비스 초기화"""
        self.logger.info("🔗 Initializing integration services...")
        await self.zapier_slack.initialize()
        await self.slack_hubspot.initialize()
        self.channels = await self.zapier_slack.verify_channels()
        self.logger.info("✅ Integration services initialized")

    async def cleanup(self) -> None:
        for service in self.services.values():
            await service.cleanup()

    async def handle_slack_event(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """Slack Events API 페이로드 처리"""
        event_type = body.get("type")

        if event_type == "url_verification":
            return {"challenge": body.get("challenge")}

        event = body.get("event") or {}
        if event_type == "event_callback" and event.get("type") == "message":
            result = await self.slack_hubspot.sync_channel_message(event.get("channel"), event)
            return {"success": True, "result": result.model_dump(mode="json")}

        self.logger.debug("Ignoring Slack event %s/%s", event_type, event.get("type"))
        return {"success": True, "ignored": True}

    async def handle_hubspot_events(self, events: List[Dict[str, Any]]) -> List[OperationResult]:
        """HubSpot 웹훅 이벤트 목록 처리 (lifecyclestage 변경만)"""
        results = []

        for event in events:
            if not is_lifecycle_change(event):
                continue

            contact_id = str(event.get("objectId"))
            contact = await self.slack_hubspot.fetch_contact(contact_id)
            if not contact.success:
                results.append(contact)
                continue

            properties = (contact.data or {}).get("properties") or {}
            name = f"{properties.get('firstname') or ''} {properties.get('lastname') or ''}".strip()

            advancement = StageAdvancement(
                email=properties.get("email") or "",
                name=name,
                previous_stage=previous_stage(event),
                new_stage=new_stage(event) or properties.get(LIFECYCLE_PROPERTY) or "",
                hubspot_contact_id=contact_id,
            )
            results.append(await self.slack_hubspot.notify_stage_advancement(advancement))

        return results

    async def handle_zapier_webhook(self, payload: Dict[str, Any]) -> OperationResult:
        return await self.zapier_slack.handle_zapier_webhook(payload)

    def get_status(self) -> Dict[str, Any]:
        return {
            name: service.get_status().model_dump(mode="json")
            for name, service in self.services.items()
        }

    def is_healthy(self) -> bool:
        return all(service.is_healthy() for service in self.services.values())

    async def check_connections(self) -> Dict[str, ConnectionCheck]:
        return {
            "slack": await self.slack_hubspot.check_slack_connection(),
            "hubspot": await self.slack_hubspot.check_hubspot_connection(),
        }


# 프로세스 단위 인스턴스 (main.py lifespan 에서 설정)
_integration_service: Optional[IntegrationService] = None


def set_integration_service(service: Optional[IntegrationService]) -> None:
    global _integration_service
    _integration_service = service


def get_integration_service() -> IntegrationService:
    """FastAPI 의존성"""
    if _integration_service is None:
        raise HTTPException(status_code=503, detail="Integration service not initialized")
    return _integration_service
