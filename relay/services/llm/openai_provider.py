from typing import List, Optional

import httpx

from relay.logging_config import get_logger
from relay.services.errors import CompletionError
from relay.services.llm.base import LLMProvider, LLMResponse

logger = get_logger("llm.openai")

CHAT_COMPLETIONS_URL = "https://api.openai.com/v1/chat/completions"


def _first_choice_content(data: dict) -> str:
    choices = data.get("choices") or []
    if not choices:
        return ""
    return (choices[0].get("message") or {}).get("content") or ""


class OpenAIProvider(LLMProvider):
    """Chat completions over the OpenAI HTTP API.

    Transport failures and non-200 responses surface as ``CompletionError`` so
    callers only ever handle one exception type.
    """

    def __init__(
        self,
        api_key: str,
        default_model: str = "gpt-3.5-turbo",
        temperature: float = 0.7,
        max_tokens: int = 600,
        timeout_seconds: float = 60.0,
        url: str = CHAT_COMPLETIONS_URL,
    ):
        self.api_key = api_key
        self.default_model = default_model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds
        self.url = url

    def _payload(
        self,
        messages: List[dict],
        model: Optional[str],
        temperature: Optional[float],
        max_tokens: Optional[int],
    ) -> dict:
        return {
            "model": model or self.default_model,
            "messages": messages,
            "temperature": self.temperature if temperature is None else temperature,
            "max_tokens": max_tokens or self.max_tokens,
        }

    async def generate(
        self,
        messages: List[dict],
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        payload = self._payload(messages, model, temperature, max_tokens)
        logger.debug(
            "Completion requested",
            extra={"context": {"model": payload["model"], "messages": len(messages)}},
        )

        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.post(
                    self.url,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json=payload,
                )
        except httpx.HTTPError as e:
            logger.error("Completion transport failed", extra={"context": {"error": str(e)}})
            raise CompletionError(f"completion transport failed: {e}") from e

        if response.status_code != 200:
            logger.error(
                "Completion rejected",
                extra={"context": {"status": response.status_code, "body": response.text[:500]}},
            )
            raise CompletionError(f"completion API returned {response.status_code}")

        try:
            data = response.json()
            return LLMResponse(
                content=_first_choice_content(data),
                model=data.get("model", payload["model"]),
                usage=data.get("usage"),
            )
        except (ValueError, AttributeError, TypeError, IndexError) as e:
            logger.error(
                "Completion response malformed",
                extra={"context": {"error": str(e), "body": response.text[:500]}},
            )
            raise CompletionError(f"completion response malformed: {e}") from e
