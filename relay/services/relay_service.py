from __future__ import annotations

from typing import Iterable, Optional

from relay.config import Settings
from relay.logging_config import get_logger, identity_logger
from relay.services.authorization import AuthorizationGate
from relay.services.command_router import CommandRouter, CommandRegistry, RouteResult
from relay.services.commands import build_default_registry
from relay.services.conversation_store import ConversationStore
from relay.services.errors import CompletionError
from relay.services.identity_locks import IdentityLocks
from relay.services.inbound_service import InboundMessage
from relay.services.llm.base import LLMProvider
from relay.services.llm.openai_provider import OpenAIProvider
from relay.services.poll_registry import PollRegistry
from relay.services.safety_filter import SafetyFilter
from relay.services.whatsapp_service import OutboundSender, WhatsAppService

logger = get_logger("relay_service")

MSG_COMPLETION_ERROR = "Sorry, I couldn't create a reply at the moment."


class RelayService:
    """Processes inbound events one identity at a time.

    Commands go through the router; anything the router leaves unhandled is
    answered conversationally from the stored history.
    """

    def __init__(
        self,
        store: ConversationStore,
        router: CommandRouter,
        outbound: OutboundSender,
        completion: Optional[LLMProvider] = None,
        locks: Optional[IdentityLocks] = None,
    ):
        self.store = store
        self.router = router
        self.outbound = outbound
        self.completion = completion
        self.locks = locks or IdentityLocks()

    async def process(self, event: InboundMessage) -> RouteResult:
        async with self.locks.hold(event.sender):
            if event.media is not None:
                self.store.set_media(event.sender, event.media)

            result = await self.router.handle(event.sender, event.text)
            if not result.handled:
                await self.converse(event.sender, event.text or event.placeholder)
            return result

    async def process_batch(self, events: Iterable[InboundMessage]) -> None:
        for event in events:
            try:
                await self.process(event)
            except Exception as e:
                logger.error(
                    "Inbound event processing failed",
                    extra={"context": {"sender": event.sender, "message_id": event.message_id, "error": str(e)}},
                    exc_info=True,
                )

    async def converse(self, sender: str, text: str) -> str:
        """Record the user turn, ask the completion service, record and send the reply.

        The user turn is kept even when no reply can be produced.
        """
        log = identity_logger("relay_service", sender)
        self.store.append_user(sender, text)
        conversation = self.store.get_conversation(sender)

        reply = MSG_COMPLETION_ERROR
        if self.completion is None:
            log.warning("Completion service not configured")
        else:
            try:
                reply = await self.completion.generate_reply(conversation)
                self.store.append_assistant(sender, reply)
            except CompletionError as e:
                log.error("Completion failed", context={"error": str(e)})

        result = await self.outbound.send_text(sender, reply)
        if not result.ok:
            log.warning("Reply not delivered", context={"error": result.error})
        return reply

    def sweep(self) -> int:
        evicted = self.store.sweep_expired()
        if evicted:
            logger.info("Session sweep finished", extra={"context": {"evicted": len(evicted), "remaining": len(self.store)}})
        return len(evicted)


def build_relay_service(
    settings: Settings,
    outbound: Optional[OutboundSender] = None,
    completion: Optional[LLMProvider] = None,
    registry: Optional[CommandRegistry] = None,
) -> RelayService:
    """Wire stores, gates, adapters and the router from settings."""
    store = ConversationStore(
        system_prompt=settings.system_prompt,
        max_turns=settings.session_max_messages,
        ttl_seconds=settings.session_ttl_seconds,
    )
    polls = PollRegistry(max_options=settings.poll_max_options)
    if outbound is None:
        outbound = WhatsAppService(
            phone_number_id=settings.whatsapp_phone_number_id,
            access_token=settings.whatsapp_access_token,
            api_version=settings.whatsapp_api_version,
            timeout_seconds=settings.whatsapp_timeout_seconds,
        )
    if completion is None and settings.openai_api_key:
        completion = OpenAIProvider(
            api_key=settings.openai_api_key,
            default_model=settings.openai_model,
            temperature=settings.openai_temperature,
            max_tokens=settings.openai_max_tokens,
            timeout_seconds=settings.openai_timeout_seconds,
        )
    router = CommandRouter(
        registry=registry or build_default_registry(),
        store=store,
        polls=polls,
        outbound=outbound,
        gate=AuthorizationGate(settings.admin_number_list),
        safety=SafetyFilter(settings.prohibited_term_list, settings.protected_term_list),
        completion=completion,
        broadcast_recipients=settings.broadcast_number_list,
    )
    return RelayService(store=store, router=router, outbound=outbound, completion=completion)
