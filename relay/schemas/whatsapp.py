from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class WhatsAppText(BaseModel):
    body: str = ""


class WhatsAppMedia(BaseModel):
    id: str
    mime_type: Optional[str] = None
    filename: Optional[str] = None
    caption: Optional[str] = None
    sha256: Optional[str] = None


class WhatsAppReply(BaseModel):
    id: str
    title: Optional[str] = None
    description: Optional[str] = None


class WhatsAppInteractive(BaseModel):
    type: str
    button_reply: Optional[WhatsAppReply] = None
    list_reply: Optional[WhatsAppReply] = None


class WhatsAppButton(BaseModel):
    text: Optional[str] = None
    payload: Optional[str] = None


class WhatsAppMessage(BaseModel):
    from_number: str = Field(alias="from")  # "from" is reserved in Python
    id: Optional[str] = None
    timestamp: Optional[str] = None
    type: str = "text"
    text: Optional[WhatsAppText] = None
    image: Optional[WhatsAppMedia] = None
    video: Optional[WhatsAppMedia] = None
    audio: Optional[WhatsAppMedia] = None
    document: Optional[WhatsAppMedia] = None
    sticker: Optional[WhatsAppMedia] = None
    interactive: Optional[WhatsAppInteractive] = None
    button: Optional[WhatsAppButton] = None

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class WhatsAppValue(BaseModel):
    messaging_product: Optional[str] = None
    messages: list[WhatsAppMessage] = []

    model_config = ConfigDict(extra="ignore")


class WhatsAppChange(BaseModel):
    field: Optional[str] = None
    value: Optional[WhatsAppValue] = None


class WhatsAppEntry(BaseModel):
    id: Optional[str] = None
    changes: list[WhatsAppChange] = []


class WhatsAppWebhook(BaseModel):
    object: Optional[str] = None
    entry: list[WhatsAppEntry] = []

    def iter_messages(self):
        for entry in self.entry:
            for change in entry.changes:
                if change.value is None:
                    continue
                yield from change.value.messages


class WebhookAck(BaseModel):
    status: str = "ok"
    messages: int = 0
