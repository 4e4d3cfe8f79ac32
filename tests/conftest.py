# tests/conftest.py
# Pytest 공통 설정 및 Fixtures

import pytest
import sys
import os
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

# 백엔드 경로 추가
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

from fastapi.testclient import TestClient

from core.config import IntegrationConfig, load_settings
from integrations.integration_service import IntegrationService, get_integration_service
from integrations.slack_hubspot_service import SlackHubspotService
from integrations.zapier_slack_service import ZapierSlackService


# 테스트마다 초기화하는 보안 관련 환경 변수
SECRET_ENV = ("SLACK_SIGNING_SECRET", "HUBSPOT_CLIENT_SECRET", "ZAPIER_API_KEY")


class FakeClock:
    """수동으로 진행시키는 시계"""

    def __init__(self, start=None):
        self.now = start or datetime(2026, 1, 2, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


class RecordingSleep:
    """대기 없이 요청된 지연(초)만 기록"""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def mock_logger():
    return MagicMock()


@pytest.fixture
def integration_config():
    """기본 통합 설정 (retry 3, delay 100ms, timeout 5s)"""
    return IntegrationConfig(retry_attempts=3, retry_delay_ms=100, timeout_ms=5000, enabled=True)


@pytest.fixture
def sample_slack_message_event():
    """Slack message 이벤트 샘플"""
    return {
        "type": "event_callback",
        "team_id": "T123",
        "event": {
            "type": "message",
            "channel": "C_GROWTH",
            "user": "U_ANA",
            "text": "Hola, quiero saber más del plan anual",
            "ts": "1767344400.000100"
        }
    }


@pytest.fixture
def sample_hubspot_events():
    """HubSpot 웹훅 이벤트 샘플"""
    return [
        {
            "eventId": 1001,
            "subscriptionType": "contact.propertyChange",
            "objectId": 551,
            "propertyName": "lifecyclestage",
            "propertyValue": {"value": "customer", "previousValue": "opportunity"}
        },
        {
            "eventId": 1002,
            "subscriptionType": "contact.creation",
            "objectId": 552
        }
    ]


@pytest.fixture
def sample_hubspot_contact():
    """HubSpot 연락처 샘플"""
    return {
        "id": "551",
        "properties": {
            "email": "ana@example.com",
            "firstname": "Ana",
            "lastname": "Rojas",
            "lifecyclestage": "customer"
        }
    }


@pytest.fixture
def sample_zapier_payload():
    """Zapier 웹훅 샘플 페이로드"""
    return {
        "event_type": "ritual_silencioso",
        "contact": {
            "name": "Ana Rojas",
            "email": "ana@example.com",
            "ritual_silencioso": True,
            "hubspot_contact_id": "551"
        }
    }


# ----------------------------------------------------------------------
# 통합 서비스 Fixtures (외부 API 는 AsyncMock)
# ----------------------------------------------------------------------

ANA = {
    "id": "U_ANA",
    "real_name": "Ana Rojas",
    "profile": {"email": "ana@example.com"}
}


@pytest.fixture
def slack():
    """Slack 클라이언트 mock"""
    client = AsyncMock()
    client.auth_test.return_value = {"ok": True, "team": "Kopp", "user": "crm-bot"}
    client.conversations_info.return_value = {"id": "C_GROWTH", "name": "growth-marketing"}
    client.conversations_list.return_value = [
        {"id": "C_RITUAL", "name": "rituales-silenciosos"},
        {"id": "C_RETURN", "name": "privado-retornos"}
    ]
    client.users_info.return_value = ANA
    client.users_list.return_value = [ANA, {"id": "U_BOT", "profile": {}}]
    client.post_message.return_value = {"ok": True, "ts": "1767344400.000200"}
    return client


@pytest.fixture
def hubspot(sample_hubspot_contact):
    """HubSpot 클라이언트 mock"""
    client = AsyncMock()
    client.search_contact_by_email.return_value = {"id": "551"}
    client.create_contact.return_value = {"id": "777"}
    client.create_note.return_value = {"id": "note_1"}
    client.get_contact.return_value = sample_hubspot_contact
    client.ping.return_value = {"results": []}
    return client


@pytest.fixture
def slack_hubspot(integration_config, slack, hubspot, mock_logger, fake_clock, recording_sleep):
    return SlackHubspotService(
        integration_config,
        portal_id="12345",
        slack_client=slack,
        hubspot_client=hubspot,
        logger=mock_logger,
        clock=fake_clock,
        sleep=recording_sleep
    )


@pytest.fixture
def zapier_slack(integration_config, slack, mock_logger, fake_clock, recording_sleep):
    return ZapierSlackService(
        integration_config,
        portal_id="12345",
        slack_client=slack,
        logger=mock_logger,
        clock=fake_clock,
        sleep=recording_sleep
    )


@pytest.fixture
def integration_service(slack_hubspot, zapier_slack, mock_logger):
    return IntegrationService(slack_hubspot, zapier_slack, logger=mock_logger)


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """환경 변수 변경이 load_settings 캐시에 남지 않도록"""
    for name in SECRET_ENV:
        monkeypatch.delenv(name, raising=False)
    load_settings.cache_clear()
    yield
    load_settings.cache_clear()


@pytest.fixture
def client(integration_service):
    """integration_service 를 주입한 API 클라이언트 (lifespan 미실행)"""
    from main import app

    app.dependency_overrides[get_integration_service] = lambda: integration_service
    yield TestClient(app)
    app.dependency_overrides.clear()
