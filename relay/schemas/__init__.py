from relay.schemas.whatsapp import WebhookAck, WhatsAppMessage, WhatsAppWebhook

__all__ = ["WebhookAck", "WhatsAppMessage", "WhatsAppWebhook"]
