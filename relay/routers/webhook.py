import json
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Query, Request
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError

from relay.config import settings
from relay.logging_config import get_logger
from relay.schemas.whatsapp import WebhookAck, WhatsAppWebhook
from relay.services.inbound_service import extract_inbound
from relay.services.relay_service import RelayService

logger = get_logger("webhook")

router = APIRouter()


def get_relay_service(request: Request) -> RelayService:
    return request.app.state.relay_service


@router.get("/webhook", response_class=PlainTextResponse)
async def verify_webhook(
    mode: Optional[str] = Query(default=None, alias="hub.mode"),
    token: Optional[str] = Query(default=None, alias="hub.verify_token"),
    challenge: Optional[str] = Query(default=None, alias="hub.challenge"),
):
    """Meta subscription handshake: echo the challenge when the token matches."""
    if mode == "subscribe" and settings.verify_token and token == settings.verify_token:
        logger.info("Webhook verified")
        return PlainTextResponse(challenge or "")
    logger.warning("Webhook verification rejected", extra={"context": {"mode": mode}})
    return PlainTextResponse("Forbidden", status_code=403)


@router.post("/webhook", response_model=WebhookAck)
async def handle_webhook(request: Request, background_tasks: BackgroundTasks):
    """Acknowledge at once; events are processed after the response is sent."""
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning(f"Webhook payload is not JSON: {e}")
        return WebhookAck(status="ignored")

    try:
        payload = WhatsAppWebhook.model_validate(body)
    except ValidationError as e:
        logger.warning("Webhook payload rejected", extra={"context": {"errors": e.error_count()}})
        return WebhookAck(status="ignored")

    events = [extract_inbound(message) for message in payload.iter_messages()]
    if events:
        background_tasks.add_task(get_relay_service(request).process_batch, events)
    return WebhookAck(messages=len(events))
