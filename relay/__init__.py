"""WhatsApp conversational relay: sessions, commands and polls behind a webhook."""

__version__ = "0.1.0"
