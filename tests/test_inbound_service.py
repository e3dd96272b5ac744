from relay.schemas.whatsapp import WhatsAppMessage, WhatsAppWebhook
from relay.services.conversation_store import MediaPointer
from relay.services.inbound_service import extract_inbound


def _message(**fields):
    return WhatsAppMessage.model_validate({"from": "15550100", "id": "wamid.1", **fields})


class TestExtractInbound:
    def test_text(self):
        event = extract_inbound(_message(type="text", text={"body": "  hi there "}))

        assert event.sender == "15550100"
        assert event.text == "hi there"
        assert event.media is None
        assert event.message_id == "wamid.1"

    def test_image_with_caption(self):
        event = extract_inbound(
            _message(type="image", image={"id": "m1", "mime_type": "image/jpeg", "caption": "/media"})
        )

        assert event.text == "/media"
        assert event.media == MediaPointer("m1", "image/jpeg", "image_m1")

    def test_video_without_caption_gets_default_filename(self):
        event = extract_inbound(_message(type="video", video={"id": "v9", "mime_type": "video/mp4"}))

        assert event.text == ""
        assert event.media.filename == "video_v9.mp4"
        assert event.placeholder == "[video message received]"

    def test_document_keeps_its_filename(self):
        event = extract_inbound(
            _message(type="document", document={"id": "d1", "filename": "report.pdf", "mime_type": "application/pdf"})
        )

        assert event.media.filename == "report.pdf"

    def test_menu_list_reply_becomes_command(self):
        event = extract_inbound(
            _message(type="interactive", interactive={"type": "list_reply", "list_reply": {"id": "cmd:joke", "title": "Joke"}})
        )

        assert event.text == "/cmd:joke"

    def test_other_button_reply_uses_title(self):
        event = extract_inbound(
            _message(
                type="interactive",
                interactive={"type": "button_reply", "button_reply": {"id": "yes_1", "title": "Yes"}},
            )
        )

        assert event.text == "Yes"

    def test_template_button(self):
        event = extract_inbound(_message(type="button", button={"text": "Stop", "payload": "STOP"}))

        assert event.text == "Stop"

    def test_unsupported_type(self):
        event = extract_inbound(_message(type="location"))

        assert event.text == ""
        assert event.media is None
        assert event.placeholder == "[location message received]"


class TestWebhookPayload:
    def test_iter_messages_skips_status_updates(self):
        payload = WhatsAppWebhook.model_validate(
            {
                "object": "whatsapp_business_account",
                "entry": [
                    {
                        "id": "1",
                        "changes": [
                            {"field": "messages", "value": {"statuses": [{"id": "wamid.0", "status": "read"}]}},
                            {
                                "field": "messages",
                                "value": {
                                    "messaging_product": "whatsapp",
                                    "messages": [{"from": "15550100", "type": "text", "text": {"body": "hi"}}],
                                },
                            },
                        ],
                    }
                ],
            }
        )

        messages = list(payload.iter_messages())
        assert len(messages) == 1
        assert messages[0].from_number == "15550100"
