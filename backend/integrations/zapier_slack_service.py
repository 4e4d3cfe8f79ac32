# backend/integrations/zapier_slack_service.py
# Zapier → Slack 알림 서비스

import logging
from typing import Any, Dict, List, Optional

from core.config import IntegrationConfig, Settings
from core.errors import ConfigurationError

from .base_service import BaseIntegrationService
from .executor import Clock, Sleep
from .slack_client import SlackClient
from .slack_hubspot_service import hubspot_contact_url
from .types import OperationResult, ZapierContact


RITUAL_CHANNEL = "rituales-silenciosos"
IMPOSSIBLE_RETURN_CHANNEL = "privado-retornos"
REQUIRED_CHANNELS = (RITUAL_CHANNEL, IMPOSSIBLE_RETURN_CHANNEL)


def build_ritual_message(contact: ZapierContact, portal_id: str) -> Dict[str, Any]:
    return {
        "channel": f"#{RITUAL_CHANNEL}",
        "text": "🧘 New silent ritual detected",
        "blocks": [
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": (
                        "*🧘 Silent Ritual Activated*\n\n"
                        f"*Contact:* {contact.name}\n"
                        f"*Email:* {contact.email}\n"
                        f"*HubSpot ID:* {contact.hubspot_contact_id}\n\n"
                        "The contact has switched to silent ritual mode. "
                        "Keep outreach minimal and spaced out."
                    )
                }
            },
            {
                "type": "actions",
                "elements": [
                    {
                        "type": "button",
                        "text": {"type": "plain_text", "text": "View in HubSpot"},
                        "url": hubspot_contact_url(portal_id, contact.hubspot_contact_id),
                        "style": "primary"
                    }
                ]
            }
        ]
    }


def build_impossible_return_message(contact: ZapierContact, portal_id: str) -> Dict[str, Any]:
    reason = f"*Reason:* {contact.reason}\n" if contact.reason else ""
    return {
        "channel": f"#{IMPOSSIBLE_RETURN_CHANNEL}",
        "text": "⚠️ User marked as impossible return",
        "blocks": [
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": (
                        "*⚠️ Impossible Return*\n\n"
                        f"*Contact:* {contact.name}\n"
                        f"*Email:* {contact.email}\n"
                        f"*HubSpot ID:* {contact.hubspot_contact_id}\n"
                        f"{reason}"
                        "\n❌ This user has been marked as an impossible return. "
                        "Stop reactivation efforts."
                    )
                }
            },
            {
                "type": "actions",
                "elements": [
                    {
                        "type": "button",
                        "text": {"type": "plain_text", "text": "View in HubSpot"},
                        "url": hubspot_contact_url(portal_id, contact.hubspot_contact_id),
                        "style": "danger"
                    },
                    {
                        "type": "button",
                        "text": {"type": "plain_text", "text": "Update Status"},
                        "action_id": "update_impossible_user"
                    }
                ]
            }
        ]
    }


class ZapierSlackService(BaseIntegrationService):
    """HubSpot(Zapier 경유) 이벤트를 Slack 채널로 알림"""

    SERVICE_NAME = "zapier-slack"

    def __init__(
        self,
        integration_config: IntegrationConfig,
        slack_token: Optional[str] = None,
        portal_id: str = "",
        slack_client: Optional[SlackClient] = None,
        logger: Optional[logging.Logger] = None,
        clock: Optional[Clock] = None,
        sleep: Optional[Sleep] = None
    ):
        if slack_client is None and not slack_token:
            raise ConfigurationError("SLACK_BOT_TOKEN not found in environment")

        super().__init__(self.SERVICE_NAME, integration_config, logger=logger, clock=clock, sleep=sleep)

        self.slack = slack_client or SlackClient(slack_token)
        self.portal_id = portal_id

    @classmethod
    def from_settings(cls, settings: Settings) -> "ZapierSlackService":
        return cls(
            settings.zapier_slack,
            slack_token=settings.slack.bot_token,
            portal_id=settings.hubspot.portal_id,
        )

    async def initialize(self) -> None:
        self.validate_config()
        self.is_initialized = True
        self.logger.info("Zapier → Slack service initialized")

    async def close(self) -> None:
        await self.slack.close()

    async def _post(self, message: Dict[str, Any], operation_name: str) -> OperationResult:
        return await self.execute_with_retry(
            lambda: self.slack.post_message(message["channel"], message["text"], message["blocks"]),
            operation_name
        )

    async def notify_ritual_silencioso(self, contact: ZapierContact) -> OperationResult:
        """ritual_silencioso=true 인 연락처 알림"""
        if not contact.ritual_silencioso:
            return OperationResult.ok({"skipped": True})

        result = await self._post(build_ritual_message(contact, self.portal_id), "slack.notify_ritual_silencioso")
        if result.success:
            self.logger.info("Silent ritual notification sent (contact=%s)", contact.hubspot_contact_id)
        return result

    async def notify_retorno_imposible(self, contact: ZapierContact) -> OperationResult:
        """usuario_imposible=true 인 연락처 알림"""
        if not contact.usuario_imposible:
            return OperationResult.ok({"skipped": True})

        result = await self._post(
            build_impossible_return_message(contact, self.portal_id),
            "slack.notify_retorno_imposible"
        )
        if result.success:
            self.logger.info("Impossible return notification sent (contact=%s)", contact.hubspot_contact_id)
        return result

    async def handle_zapier_webhook(self, payload: Dict[str, Any]) -> OperationResult:
        """
        event_type 별 처리

        contact 형식이 잘못되면 pydantic ValidationError
        """
        event_type = payload.get("event_type")
        self.logger.info("Zapier webhook received (event_type=%s)", event_type)

        contact_data = payload.get("contact")
        contact = ZapierContact.model_validate({} if contact_data is None else contact_data)

        if event_type == "ritual_silencioso":
            return await self.notify_ritual_silencioso(contact)
        if event_type == "usuario_imposible":
            return await self.notify_retorno_imposible(contact)

        self.logger.warning("Unknown Zapier event type: %s", event_type)
        return OperationResult.fail(f"Unknown event type: {event_type}")

    async def verify_channels(self) -> Dict[str, Optional[str]]:
        """
        봇 인증 + 필수 채널 존재 확인

        Returns: {channel_name: channel_id | None}
        """
        auth = await self.execute_with_retry(self.slack.auth_test, "slack.auth_test")
        if not auth.success:
            raise ConfigurationError(f"Slack bot authentication failed: {auth.error}")

        self.logger.info(
            "Slack bot authenticated (team=%s, user=%s)",
            auth.data.get("team"), auth.data.get("user")
        )

        channels_result = await self.execute_with_retry(self.slack.conversations_list, "slack.conversations_list")
        channels: List[Dict[str, Any]] = (channels_result.data or []) if channels_result.success else []

        found: Dict[str, Optional[str]] = {}
        for name in REQUIRED_CHANNELS:
            match = next((c for c in channels if c.get("name") == name), None)
            found[name] = match.get("id") if match else None
            if match is None:
                self.logger.warning("Channel #%s not found. It must be created manually.", name)

        return found
