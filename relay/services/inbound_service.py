from dataclasses import dataclass
from typing import Optional

from relay.schemas.whatsapp import WhatsAppMessage
from relay.services.command_parser import COMMAND_SIGIL
from relay.services.command_router import SELECTION_PREFIX
from relay.services.conversation_store import MediaPointer

_MEDIA_TYPES = ("image", "video", "audio", "document", "sticker")
_DEFAULT_EXTENSIONS = {"video": ".mp4", "audio": ".ogg"}


@dataclass(frozen=True)
class InboundMessage:
    sender: str
    text: str
    message_type: str = "text"
    media: Optional[MediaPointer] = None
    message_id: Optional[str] = None

    @property
    def placeholder(self) -> str:
        return f"[{self.message_type} message received]"


def _media_pointer(kind: str, message: WhatsAppMessage) -> Optional[MediaPointer]:
    media = getattr(message, kind, None)
    if media is None:
        return None
    filename = media.filename or f"{kind}_{media.id}{_DEFAULT_EXTENSIONS.get(kind, '')}"
    return MediaPointer(media_id=media.id, mime_type=media.mime_type, filename=filename)


def _interactive_text(message: WhatsAppMessage) -> str:
    interactive = message.interactive
    if interactive is None:
        return ""
    reply = interactive.list_reply or interactive.button_reply
    if reply is None:
        return ""
    # Menu rows carry their command in the id; turn the selection back into a command.
    if reply.id.startswith(SELECTION_PREFIX):
        return f"{COMMAND_SIGIL}{reply.id}"
    return reply.title or reply.id


def extract_inbound(message: WhatsAppMessage) -> InboundMessage:
    """Flatten one Cloud API message into what the relay needs."""
    kind = message.type
    text = ""
    media = None

    if kind == "text" and message.text is not None:
        text = message.text.body
    elif kind == "interactive":
        text = _interactive_text(message)
    elif kind == "button" and message.button is not None:
        text = message.button.text or message.button.payload or ""
    elif kind in _MEDIA_TYPES:
        media = _media_pointer(kind, message)
        payload = getattr(message, kind, None)
        text = (payload.caption or "") if payload is not None else ""

    return InboundMessage(
        sender=message.from_number,
        text=text.strip(),
        message_type=kind,
        media=media,
        message_id=message.id,
    )
