# backend/webhooks/zapier_webhook.py
# Zapier 웹훅

import hmac
import logging
import json
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from core.config import load_settings
from integrations.integration_service import IntegrationService, get_integration_service

router = APIRouter()
logger = logging.getLogger("webhooks.zapier")


@router.post("")
async def zapier_webhook(
    request: Request,
    x_api_key: Optional[str] = Header(None),
    service: IntegrationService = Depends(get_integration_service)
):
    """
    Zapier 웹훅 엔드포인트

    지원 이벤트:
    - ritual_silencioso → #rituales-silenciosos
    - usuario_imposible → #privado-retornos
    """
    api_key = load_settings().zapier.api_key
    if api_key and not (x_api_key and hmac.compare_digest(api_key, x_api_key)):
        raise HTTPException(status_code=401, detail="Invalid API key")

    try:
        payload = json.loads(await request.body())
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Payload must be a JSON object")

    try:
        result = await service.handle_zapier_webhook(payload)
    except ValidationError as e:
        logger.warning("Invalid Zapier contact payload: %s", e)
        raise HTTPException(status_code=400, detail="Invalid contact payload")
    except Exception:
        logger.exception("Error processing Zapier webhook")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    return {"success": result.success, "result": result.model_dump(mode="json")}
