# backend/main.py
# Kopp CRM Automation API - Slack / HubSpot / Zapier 연동

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import APP_NAME, APP_VERSION, load_settings
from core.logger import configure_logging
from integrations.integration_service import IntegrationService, set_integration_service

# 라우터 임포트
from webhooks.slack_webhook import router as slack_router
from webhooks.hubspot_webhook import router as hubspot_router
from webhooks.zapier_webhook import router as zapier_router
from status.api import router as status_router

logger = logging.getLogger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """앱 라이프사이클"""
    configure_logging()
    logger.info("🚀 %s starting", APP_NAME)

    # 설정 오류는 시작 실패로 처리
    service = IntegrationService.from_settings(load_settings())
    await service.initialize()
    set_integration_service(service)

    yield

    await service.cleanup()
    set_integration_service(None)
    logger.info("👋 %s stopped", APP_NAME)


app = FastAPI(
    title=APP_NAME,
    description="""
## Kopp CRM Automation API

### Features
- **Slack → HubSpot**: monitored channel messages become contact notes
- **HubSpot → Slack**: lifecycle stage changes are announced per channel
- **Zapier → Slack**: silent ritual / impossible return notifications
- **Status**: retry metrics, audit logs and health per integration
    """,
    version=APP_VERSION,
    lifespan=lifespan
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# 라우터 등록
app.include_router(slack_router, prefix="/webhooks/slack", tags=["Webhook - Slack"])
app.include_router(hubspot_router, prefix="/webhooks/hubspot", tags=["Webhook - HubSpot"])
app.include_router(zapier_router, prefix="/webhooks/zapier", tags=["Webhook - Zapier"])
app.include_router(status_router, tags=["Status"])


@app.get("/")
async def root():
    """API 정보"""
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "endpoints": {
            "webhooks": [
                "/webhooks/slack",
                "/webhooks/hubspot",
                "/webhooks/zapier"
            ],
            "status": [
                "/health",
                "/health/detailed",
                "/integrations/status",
                "/integrations/{service}/audit-logs",
                "/integrations/{service}/metrics",
                "/integrations/{service}/metrics/reset"
            ]
        }
    }


# 직접 실행 시
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
