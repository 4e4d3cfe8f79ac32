# backend/webhooks/slack_webhook.py
# Slack Events API 웹훅

import hmac
import logging
import hashlib
import json
import time
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from core.config import load_settings
from integrations.integration_service import IntegrationService, get_integration_service

router = APIRouter()
logger = logging.getLogger("webhooks.slack")

# 재전송 공격 방지 허용 오차 (초)
MAX_CLOCK_SKEW = 60 * 5


def verify_slack_signature(
    payload: bytes,
    timestamp: Optional[str],
    signature: Optional[str],
    secret: str,
    now: Optional[float] = None
) -> bool:
    """Slack v0 서명 검증"""
    if not timestamp or not signature:
        return False

    try:
        request_time = int(timestamp)
    except ValueError:
        return False

    current = time.time() if now is None else now
    if abs(current - request_time) > MAX_CLOCK_SKEW:
        return False

    base = f"v0:{timestamp}:".encode() + payload
    expected = "v0=" + hmac.new(secret.encode(), base, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature)


@router.post("")
async def slack_webhook(
    request: Request,
    x_slack_signature: Optional[str] = Header(None),
    x_slack_request_timestamp: Optional[str] = Header(None),
    service: IntegrationService = Depends(get_integration_service)
):
    """
    Slack 이벤트 엔드포인트

    - url_verification → challenge 그대로 반환
    - event_callback(message) → HubSpot 동기화
    """
    payload = await request.body()

    secret = load_settings().slack.signing_secret
    if secret and not verify_slack_signature(payload, x_slack_request_timestamp, x_slack_signature, secret):
        raise HTTPException(status_code=401, detail="Invalid Slack signature")

    try:
        body = json.loads(payload)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    try:
        result = await service.handle_slack_event(body)
    except Exception:
        logger.exception("Error processing Slack webhook")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    if "challenge" in result:
        return PlainTextResponse(result["challenge"] or "")

    return result
