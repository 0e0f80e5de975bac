"""
Billing provider webhook endpoint.

Events are accepted only with a valid ``X-Billing-Signature`` header, the hex
HMAC-SHA256 of the raw request body.
"""

import json
import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool

from ..config import settings
from ..services.credits_service import (
    CreditsService, InvalidSignatureError, BillingEventError, verify_signature
)
from .dependencies import get_credits_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/webhooks", tags=["webhooks"])


@router.post("/billing")
async def billing_webhook(
    request: Request,
    x_billing_signature: str = Header(None),
    credits_service: CreditsService = Depends(get_credits_service)
):
    """Apply a signed billing event to the local credits view."""
    body = await request.body()

    try:
        verify_signature(body, x_billing_signature, settings.billing_webhook_secret)
    except InvalidSignatureError as e:
        logger.warning(f"Billing webhook rejected: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Webhook signature verification failed")

    try:
        event = json.loads(body)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON payload")
    if not isinstance(event, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid event payload")

    try:
        applied = await run_in_threadpool(credits_service.apply_billing_event, event)
    except BillingEventError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return {"received": True, "applied": applied}
