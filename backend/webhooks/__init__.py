# backend/webhooks/__init__.py
# Slack / HubSpot / Zapier 웹훅 라우터

from .slack_webhook import router as slack_router
from .hubspot_webhook import router as hubspot_router
from .zapier_webhook import router as zapier_router

__all__ = ["slack_router", "hubspot_router", "zapier_router"]
