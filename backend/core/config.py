# backend/core/config.py
# 환경 변수 기반 설정

import os
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, Field

from .errors import ConfigurationError


APP_NAME = "Kopp CRM Automation"
APP_VERSION = "2.0.0"

# 통합 서비스별 환경 변수 prefix
SLACK_HUBSPOT_PREFIX = "SLACK_HUBSPOT"
ZAPIER_SLACK_PREFIX = "ZAPIER_SLACK"

MIN_TIMEOUT_MS = 1000


class IntegrationConfig(BaseModel):
    """통합 서비스 재시도/타임아웃 설정"""
    retry_attempts: int = 3
    retry_delay_ms: int = 1000
    timeout_ms: int = 30000
    enabled: bool = True


class LoggingSettings(BaseModel):
    level: str = "INFO"
    file: Optional[str] = None


class SlackSettings(BaseModel):
    bot_token: Optional[str] = None
    signing_secret: Optional[str] = None
    base_url: str = "https://slack.com/api"


class HubSpotSettings(BaseModel):
    api_key: Optional[str] = None
    client_secret: Optional[str] = None
    portal_id: str = ""
    base_url: str = "https://api.hubapi.com"


class ZapierSettings(BaseModel):
    api_key: Optional[str] = None
    webhook_url: str = ""


class Settings(BaseModel):
    environment: str = "development"
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    slack: SlackSettings = Field(default_factory=SlackSettings)
    hubspot: HubSpotSettings = Field(default_factory=HubSpotSettings)
    zapier: ZapierSettings = Field(default_factory=ZapierSettings)
    slack_hubspot: IntegrationConfig = Field(default_factory=IntegrationConfig)
    zapier_slack: IntegrationConfig = Field(default_factory=IntegrationConfig)

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_str(name: str) -> Optional[str]:
    value = os.getenv(name)
    return value or None


def load_integration_config(prefix: str) -> IntegrationConfig:
    """{PREFIX}_RETRY_ATTEMPTS 등에서 통합 설정 로드"""
    defaults = IntegrationConfig()
    return IntegrationConfig(
        retry_attempts=_env_int(f"{prefix}_RETRY_ATTEMPTS", defaults.retry_attempts),
        retry_delay_ms=_env_int(f"{prefix}_RETRY_DELAY_MS", defaults.retry_delay_ms),
        timeout_ms=_env_int(f"{prefix}_TIMEOUT_MS", defaults.timeout_ms),
        enabled=_env_bool(f"{prefix}_ENABLED", defaults.enabled),
    )


def validate_integration_config(
    service_name: str,
    config: IntegrationConfig,
    require_enabled: bool = True
) -> None:
    """
    통합 설정 검증

    실패 시 ConfigurationError (재시도 대상 아님)
    """
    if require_enabled and not config.enabled:
        raise ConfigurationError(f"Service {service_name} is disabled")

    if config.retry_attempts < 1:
        raise ConfigurationError("retry_attempts must be at least 1")

    if config.timeout_ms < MIN_TIMEOUT_MS:
        raise ConfigurationError(f"timeout_ms must be at least {MIN_TIMEOUT_MS}ms")

    if config.retry_delay_ms < 0:
        raise ConfigurationError("retry_delay_ms must not be negative")


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """환경 변수에서 전체 설정 로드 (캐시됨)"""
    return Settings(
        environment=os.getenv("APP_ENV", "development"),
        logging=LoggingSettings(
            level=os.getenv("LOG_LEVEL", "INFO"),
            file=_env_str("LOG_FILE"),
        ),
        slack=SlackSettings(
            bot_token=_env_str("SLACK_BOT_TOKEN"),
            signing_secret=_env_str("SLACK_SIGNING_SECRET"),
        ),
        hubspot=HubSpotSettings(
            api_key=_env_str("HUBSPOT_API_KEY"),
            client_secret=_env_str("HUBSPOT_CLIENT_SECRET"),
            portal_id=os.getenv("HUBSPOT_PORTAL_ID", ""),
        ),
        zapier=ZapierSettings(
            api_key=_env_str("ZAPIER_API_KEY"),
            webhook_url=os.getenv("ZAPIER_WEBHOOK_URL", ""),
        ),
        slack_hubspot=load_integration_config(SLACK_HUBSPOT_PREFIX),
        zapier_slack=load_integration_config(ZAPIER_SLACK_PREFIX),
    )
