from dataclasses import dataclass
from typing import Any, Optional, Protocol

import httpx

from relay.logging_config import get_logger
from relay.services.authorization import normalize_identity

logger = get_logger("whatsapp_service")


@dataclass
class SendResult:
    ok: bool
    response: Optional[dict] = None
    error: Optional[str] = None

    @staticmethod
    def success(response: Optional[dict] = None) -> "SendResult":
        return SendResult(ok=True, response=response)

    @staticmethod
    def failure(error: str) -> "SendResult":
        return SendResult(ok=False, error=error)


class OutboundSender(Protocol):
    async def send_text(self, to: str, text: str) -> SendResult: ...

    async def send_interactive(self, to: str, payload: dict) -> SendResult: ...


class WhatsAppService:
    """Service for sending messages through the WhatsApp Cloud API.

    Sends never raise: transport and API errors are logged and returned as a
    failed SendResult so a reply can never undo state that was already changed.
    """

    BASE_URL = "https://graph.facebook.com/{version}/{phone_number_id}/messages"

    def __init__(
        self,
        phone_number_id: str,
        access_token: str,
        api_version: str = "v17.0",
        timeout_seconds: float = 60.0,
    ):
        self.phone_number_id = phone_number_id
        self.access_token = access_token
        self.timeout_seconds = timeout_seconds
        self.url = self.BASE_URL.format(version=api_version, phone_number_id=phone_number_id)

    async def _make_request(self, payload: dict[str, Any]) -> SendResult:
        if not self.phone_number_id or not self.access_token:
            logger.warning("WhatsApp credentials missing, message not sent")
            return SendResult.failure("not_configured")

        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.post(
                    self.url,
                    headers={
                        "Authorization": f"Bearer {self.access_token}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                )
        except Exception as e:
            logger.error(f"WhatsApp API error: {e}", extra={"context": {"to": payload.get("to")}})
            return SendResult.failure(str(e))

        if response.status_code >= 400:
            logger.error(
                f"WhatsApp API rejected message: {response.status_code}",
                extra={"context": {"to": payload.get("to"), "body": response.text[:500]}},
            )
            return SendResult.failure(f"http_{response.status_code}")

        try:
            return SendResult.success(response.json())
        except ValueError:
            return SendResult.success(None)

    async def send_text(self, to: str, text: str) -> SendResult:
        """Send a plain text message; ``to`` may be a bare number or a JID."""
        payload = {
            "messaging_product": "whatsapp",
            "to": normalize_identity(to),
            "type": "text",
            "text": {"body": text},
        }
        return await self._make_request(payload)

    async def send_interactive(self, to: str, interactive: dict) -> SendResult:
        """Send an interactive list or button message."""
        payload = {
            "messaging_product": "whatsapp",
            "to": normalize_identity(to),
            "type": "interactive",
            "interactive": interactive,
        }
        return await self._make_request(payload)
