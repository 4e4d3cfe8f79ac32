# backend/webhooks/hubspot_webhook.py
# HubSpot 웹훅 (contact.propertyChange)

import hmac
import logging
import hashlib
import json
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.responses import JSONResponse

from core.config import load_settings
from integrations.integration_service import IntegrationService, get_integration_service

router = APIRouter()
logger = logging.getLogger("webhooks.hubspot")


def verify_hubspot_signature(payload: bytes, signature: Optional[str], client_secret: str) -> bool:
    """HubSpot v1 서명 검증: sha256(client_secret + body)"""
    if not signature:
        return False
    expected = hashlib.sha256(client_secret.encode() + payload).hexdigest()
    return hmac.compare_digest(expected, signature)


@router.post("")
async def hubspot_webhook(
    request: Request,
    x_hubspot_signature: Optional[str] = Header(None),
    service: IntegrationService = Depends(get_integration_service)
):
    """
    HubSpot 웹훅 엔드포인트

    lifecyclestage 변경 → Slack 단계 알림
    """
    payload = await request.body()

    secret = load_settings().hubspot.client_secret
    if secret and not verify_hubspot_signature(payload, x_hubspot_signature, secret):
        raise HTTPException(status_code=401, detail="Invalid HubSpot signature")

    try:
        data = json.loads(payload)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    # 단일 이벤트도 허용
    events = data if isinstance(data, list) else [data]

    try:
        results = await service.handle_hubspot_events(events)
    except Exception:
        logger.exception("Error processing HubSpot webhook")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    return {
        "success": True,
        "received": len(events),
        "processed": len(results),
        "results": [r.model_dump(mode="json") for r in results]
    }
