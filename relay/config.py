from pydantic_settings import BaseSettings

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful WhatsApp assistant. Keep replies concise and friendly. "
    "Use casual, short messages suitable for WhatsApp."
)
DEFAULT_PROTECTED_TERMS = (
    "race,religion,muslim,jew,black,white,asian,gay,lesbian,trans,immigrant,disability"
)


def split_csv(value: str | None) -> list[str]:
    """Split a comma-separated setting into trimmed, non-empty items."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    whatsapp_phone_number_id: str = ""
    whatsapp_access_token: str = ""
    whatsapp_api_version: str = "v17.0"
    whatsapp_timeout_seconds: float = 60.0
    verify_token: str = ""

    openai_api_key: str = ""
    openai_model: str = "gpt-3.5-turbo"
    openai_max_tokens: int = 600
    openai_temperature: float = 0.7
    openai_timeout_seconds: float = 60.0

    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    session_max_messages: int = 12
    session_ttl_minutes: int = 60
    session_sweep_interval_seconds: float = 300.0
    session_sweep_enabled: bool = True

    admin_numbers: str = ""
    broadcast_numbers: str = ""
    prohibited_terms: str = "badword1,badword2"
    protected_terms: str = DEFAULT_PROTECTED_TERMS
    poll_max_options: int = 10

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def admin_number_list(self) -> list[str]:
        return split_csv(self.admin_numbers)

    @property
    def broadcast_number_list(self) -> list[str]:
        return split_csv(self.broadcast_numbers)

    @property
    def prohibited_term_list(self) -> list[str]:
        return split_csv(self.prohibited_terms)

    @property
    def protected_term_list(self) -> list[str]:
        return split_csv(self.protected_terms)

    @property
    def session_ttl_seconds(self) -> float:
        return self.session_ttl_minutes * 60.0


settings = Settings()
