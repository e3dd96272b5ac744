from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from relay.services.errors import CompletionError


@dataclass
class LLMResponse:
    content: str
    model: str
    usage: Optional[dict] = None


class LLMProvider(ABC):
    """Abstract base class for completion providers."""

    @abstractmethod
    async def generate(
        self,
        messages: List[dict],
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        """Generate response from LLM."""

    async def generate_reply(self, messages: List[dict]) -> str:
        """Return the trimmed reply text; an empty reply is a CompletionError."""
        response = await self.generate(messages)
        content = (response.content or "").strip()
        if not content:
            raise CompletionError("No content in completion response")
        return content
