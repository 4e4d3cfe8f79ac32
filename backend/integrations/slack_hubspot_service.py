# backend/integrations/slack_hubspot_service.py
# Slack ↔ HubSpot 동기화 서비스

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

import httpx

from core.config import IntegrationConfig, Settings
from core.errors import ConfigurationError, SlackAPIError

from .base_service import BaseIntegrationService
from .executor import Clock, Sleep
from .hubspot_client import HubSpotClient
from .slack_client import SlackClient
from .types import AuditResult, ConnectionCheck, OperationResult, StageAdvancement


# 동기화 대상 채널
MONITORED_CHANNELS = ("growth-marketing", "soporte-y-clientes")

# 라이프사이클 단계 → (채널, 아이콘)
STAGE_ROUTES = {
    "customer": ("growth-marketing", "🎉"),
    "opportunity": ("soporte-y-clientes", "🔥"),
    "qualified": ("growth-marketing", "✅"),
}
DEFAULT_STAGE_ROUTE = ("general", "📈")

CUSTOMER_DM_TEXT = (
    "Congratulations! 🎉 You are now a customer in our system. "
    "Thank you for trusting us!"
)


def hubspot_contact_url(portal_id: str, contact_id: str) -> str:
    return f"https://app.hubspot.com/contacts/{portal_id}/contact/{contact_id}"


def route_stage(new_stage: str) -> Tuple[str, str]:
    """새 단계에 맞는 알림 채널/아이콘"""
    return STAGE_ROUTES.get(new_stage.lower(), DEFAULT_STAGE_ROUTE)


def format_slack_ts(ts: Optional[str], fallback: datetime) -> str:
    """Slack ts("1700000000.000100") → ISO 문자열"""
    try:
        return datetime.fromtimestamp(float(ts), tz=timezone.utc).isoformat()
    except (TypeError, ValueError):
        return fallback.isoformat()


def build_note_body(channel: str, slack_user: str, timestamp: str, text: str) -> str:
    """HubSpot 노트 본문"""
    return (
        f"📱 Message from Slack #{channel}\n\n"
        f"User: {slack_user}\n"
        f"Timestamp: {timestamp}\n\n"
        f"Message:\n{text}\n\n"
        "---\n"
        "Synced automatically from Slack"
    )


def build_stage_message(advancement: StageAdvancement, portal_id: str) -> Dict[str, Any]:
    """단계 변경 Slack 메시지 (channel, text, blocks)"""
    channel, icon = route_stage(advancement.new_stage)
    return {
        "channel": f"#{channel}",
        "text": f"{icon} Stage advancement in HubSpot",
        "blocks": [
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": (
                        f"*{icon} Stage Advancement*\n\n"
                        f"*Contact:* {advancement.name}\n"
                        f"*Email:* {advancement.email}\n"
                        f"*Previous stage:* {advancement.previous_stage}\n"
                        f"*New stage:* {advancement.new_stage}\n\n"
                        "The contact has moved forward in the sales funnel!"
                    )
                }
            },
            {
                "type": "actions",
                "elements": [
                    {
                        "type": "button",
                        "text": {"type": "plain_text", "text": "View in HubSpot"},
                        "url": hubspot_contact_url(portal_id, advancement.hubspot_contact_id),
                        "style": "primary"
                    },
                    {
                        "type": "button",
                        "text": {"type": "plain_text", "text": "Contact"},
                        "action_id": "contact_user"
                    }
                ]
            }
        ]
    }


def split_name(slack_user: Dict[str, Any]) -> Tuple[str, str]:
    profile = slack_user.get("profile") or {}
    parts = (slack_user.get("real_name") or "").split()
    first = profile.get("first_name") or (parts[0] if parts else "")
    last = profile.get("last_name") or " ".join(parts[1:])
    return first, last


class SlackHubspotService(BaseIntegrationService):
    """
    Slack → HubSpot 메시지 동기화 + HubSpot → Slack 단계 알림

    외부 호출은 모두 execute_with_retry 를 거친다.
    """

    SERVICE_NAME = "slack-hubspot"

    def __init__(
        self,
        integration_config: IntegrationConfig,
        slack_token: Optional[str] = None,
        hubspot_api_key: Optional[str] = None,
        portal_id: str = "",
        slack_client: Optional[SlackClient] = None,
        hubspot_client: Optional[HubSpotClient] = None,
        logger: Optional[logging.Logger] = None,
        clock: Optional[Clock] = None,
        sleep: Optional[Sleep] = None
    ):
        if slack_client is None and not slack_token:
            raise ConfigurationError("SLACK_BOT_TOKEN not found in environment")
        if hubspot_client is None and not hubspot_api_key:
            raise ConfigurationError("HUBSPOT_API_KEY not found in environment")

        super().__init__(self.SERVICE_NAME, integration_config, logger=logger, clock=clock, sleep=sleep)

        self.slack = slack_client or SlackClient(slack_token)
        self.hubspot = hubspot_client or HubSpotClient(hubspot_api_key)
        self.portal_id = portal_id

    @classmethod
    def from_settings(cls, settings: Settings) -> "SlackHubspotService":
        return cls(
            settings.slack_hubspot,
            slack_token=settings.slack.bot_token,
            hubspot_api_key=settings.hubspot.api_key,
            portal_id=settings.hubspot.portal_id,
        )

    async def initialize(self) -> None:
        self.validate_config()
        self.is_initialized = True
        self.logger.info("Slack ↔ HubSpot service initialized (channels: %s)", ", ".join(MONITORED_CHANNELS))

    async def close(self) -> None:
        await self.slack.close()
        await self.hubspot.close()

    def _now_ms(self) -> int:
        return int(self.executor.clock().timestamp() * 1000)

    async def sync_channel_message(self, channel_id: str, message: Dict[str, Any]) -> OperationResult:
        """
        모니터링 채널 메시지를 HubSpot 연락처 노트로 동기화

        결과 data.action:
        - skipped: 대상 아님 (채널/봇 메시지/이메일 없음)
        - note_added: 기존 연락처에 노트 추가
        - contact_created: 새 연락처(lead) 생성 후 노트 추가
        """
        if message.get("bot_id") or message.get("subtype"):
            return OperationResult.ok({"action": "skipped", "reason": "bot_or_subtype_message"})

        channel_result = await self.execute_with_retry(
            lambda: self.slack.conversations_info(channel_id),
            "slack.conversations_info"
        )
        if not channel_result.success:
            return channel_result

        channel_name = (channel_result.data or {}).get("name")
        if not channel_name or channel_name not in MONITORED_CHANNELS:
            return OperationResult.ok({"action": "skipped", "reason": "channel_not_monitored"})

        self.logger.info(
            "Processing message from #%s (ts=%s, user=%s)",
            channel_name, message.get("ts"), message.get("user")
        )

        user_result = await self.execute_with_retry(
            lambda: self.slack.users_info(message.get("user")),
            "slack.users_info"
        )
        if not user_result.success:
            return user_result

        slack_user = user_result.data or {}
        email = (slack_user.get("profile") or {}).get("email")
        if not email:
            self.logger.warning("Could not resolve email for Slack user %s", message.get("user"))
            return OperationResult.ok({"action": "skipped", "reason": "missing_email"})

        search_result = await self.execute_with_retry(
            lambda: self.hubspot.search_contact_by_email(email),
            "hubspot.search_contact"
        )
        if not search_result.success:
            return search_result

        display_name = slack_user.get("real_name") or "Unknown user"
        note_body = build_note_body(
            channel_name,
            display_name,
            format_slack_ts(message.get("ts"), self.executor.clock()),
            message.get("text", "")
        )

        contact = search_result.data
        if contact:
            contact_id = str(contact.get("id"))
            note_result = await self.execute_with_retry(
                lambda: self.hubspot.create_note(contact_id, note_body, self._now_ms()),
                "hubspot.create_note"
            )
            if not note_result.success:
                return note_result

            self.logger.info("Note added to HubSpot contact %s", contact_id)
            return OperationResult.ok({
                "action": "note_added",
                "contact_id": contact_id,
                "channel": channel_name
            })

        return await self._create_contact_from_slack(slack_user, email, channel_name, note_body)

    async def _create_contact_from_slack(
        self,
        slack_user: Dict[str, Any],
        email: str,
        channel_name: str,
        note_body: str
    ) -> OperationResult:
        first_name, last_name = split_name(slack_user)
        properties = {
            "email": email,
            "firstname": first_name,
            "lastname": last_name,
            "source_slack_channel": channel_name,
            "source_slack_user_id": slack_user.get("id"),
            "lifecyclestage": "lead"
        }

        created = await self.execute_with_retry(
            lambda: self.hubspot.create_contact(properties),
            "hubspot.create_contact"
        )
        if not created.success:
            return created

        contact_id = str((created.data or {}).get("id"))

        note_result = await self.execute_with_retry(
            lambda: self.hubspot.create_note(contact_id, note_body, self._now_ms()),
            "hubspot.create_note"
        )
        if not note_result.success:
            # 연락처는 생성됐지만 노트 실패
            self.add_audit_log(
                action="sync_slack_message",
                result=AuditResult.PARTIAL,
                data={"channel": channel_name, "failed_step": "hubspot.create_note"},
                error=note_result.error,
                contact_id=contact_id,
                user_id=slack_user.get("id")
            )

        self.logger.info("New HubSpot contact %s created from Slack", contact_id)
        return OperationResult.ok({
            "action": "contact_created",
            "contact_id": contact_id,
            "channel": channel_name,
            "note_added": note_result.success
        })

    async def notify_stage_advancement(self, advancement: StageAdvancement) -> OperationResult:
        """HubSpot 단계 변경을 Slack 채널로 알림"""
        users_result = await self.execute_with_retry(self.slack.users_list, "slack.users_list")
        if not users_result.success:
            return users_result

        slack_user = next(
            (
                user for user in users_result.data or []
                if (user.get("profile") or {}).get("email") == advancement.email
            ),
            None
        )
        if slack_user is None:
            self.logger.warning("Slack user not found for stage notification (email=%s)", advancement.email)
            return OperationResult.fail(f"Slack user not found for {advancement.email}")

        message = build_stage_message(advancement, self.portal_id)
        posted = await self.execute_with_retry(
            lambda: self.slack.post_message(message["channel"], message["text"], message["blocks"]),
            "slack.post_message"
        )
        if not posted.success:
            return posted

        direct_message = False
        if advancement.new_stage.lower() == "customer":
            dm_result = await self.execute_with_retry(
                lambda: self.slack.post_message(slack_user["id"], CUSTOMER_DM_TEXT),
                "slack.post_direct_message"
            )
            direct_message = dm_result.success

        self.logger.info(
            "Stage notification sent for contact %s (%s)",
            advancement.hubspot_contact_id, advancement.new_stage
        )
        return OperationResult.ok({
            "channel": message["channel"],
            "message_ts": (posted.data or {}).get("ts"),
            "direct_message": direct_message
        })

    async def fetch_contact(self, contact_id: str) -> OperationResult:
        """단계 알림용 연락처 조회"""
        return await self.execute_with_retry(
            lambda: self.hubspot.get_contact(
                contact_id, ["email", "firstname", "lastname", "lifecyclestage"]
            ),
            "hubspot.get_contact"
        )

    async def check_slack_connection(self) -> ConnectionCheck:
        try:
            await self.slack.auth_test()
        except (httpx.HTTPError, SlackAPIError) as e:
            self.logger.error("Slack connection check failed: %s", e)
            return ConnectionCheck(success=False, connected=False, error=str(e))
        return ConnectionCheck(success=True, connected=True)

    async def check_hubspot_connection(self) -> ConnectionCheck:
        try:
            await self.hubspot.ping()
        except httpx.HTTPError as e:
            self.logger.error("HubSpot connection check failed: %s", e)
            return ConnectionCheck(success=False, connected=False, error=str(e) or e.__class__.__name__)
        return ConnectionCheck(success=True, connected=True)
