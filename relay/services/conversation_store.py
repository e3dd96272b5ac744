"""In-memory conversation sessions with bounded history and TTL eviction."""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from relay.logging_config import get_logger

logger = get_logger("conversation_store")


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ChatMessage:
    role: Role
    content: str

    def as_dict(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


@dataclass(frozen=True)
class MediaPointer:
    media_id: str
    mime_type: Optional[str] = None
    filename: Optional[str] = None


@dataclass
class ConversationSession:
    history: list[ChatMessage]
    last_activity: float
    last_media: Optional[MediaPointer] = None
    # Turns appended since creation, including ones trimmed away.
    total_turns: int = 0


_ROLE_LABELS = {Role.USER: "User", Role.ASSISTANT: "Assistant"}


class ConversationStore:
    """Owns every conversation session, keyed by conversation identity.

    Each session keeps the persona preamble as a single SYSTEM message at index
    0 followed by at most ``max_turns`` user/assistant turns. None of the
    methods await, so on a single event loop every call is atomic.
    """

    def __init__(
        self,
        system_prompt: str,
        max_turns: int = 12,
        ttl_seconds: float = 3600.0,
        clock: Callable[[], float] = time.time,
    ):
        if max_turns < 0:
            raise ValueError("max_turns must be >= 0")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.system_prompt = system_prompt
        self.max_turns = max_turns
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: dict[str, ConversationSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, identity: str) -> bool:
        return identity in self._sessions

    def _system_message(self) -> ChatMessage:
        return ChatMessage(Role.SYSTEM, self.system_prompt)

    def _ensure_session(self, identity: str) -> ConversationSession:
        session = self._sessions.get(identity)
        if session is None:
            session = ConversationSession(history=[self._system_message()], last_activity=self._clock())
            self._sessions[identity] = session
            logger.debug("Session created", extra={"context": {"sender": identity}})
        return session

    def _trim(self, session: ConversationSession) -> None:
        turns = session.history[1:]
        if len(turns) > self.max_turns:
            kept = turns[len(turns) - self.max_turns :] if self.max_turns else []
            session.history = [session.history[0], *kept]

    def _append(self, identity: str, role: Role, text: Optional[str]) -> None:
        if not text or not text.strip():
            return
        session = self._ensure_session(identity)
        session.history.append(ChatMessage(role, text))
        session.total_turns += 1
        session.last_activity = self._clock()
        self._trim(session)

    def append_user(self, identity: str, text: Optional[str]) -> None:
        self._append(identity, Role.USER, text)

    def append_assistant(self, identity: str, text: Optional[str]) -> None:
        self._append(identity, Role.ASSISTANT, text)

    def get_conversation(self, identity: str) -> list[dict[str, str]]:
        """Return a fresh copy of the history, ready for a chat completion call."""
        session = self._sessions.get(identity)
        if session is None:
            return [self._system_message().as_dict()]
        return [message.as_dict() for message in session.history]

    def set_media(self, identity: str, media: MediaPointer) -> None:
        session = self._ensure_session(identity)
        session.last_media = media
        session.last_activity = self._clock()

    def get_last_media(self, identity: str) -> Optional[MediaPointer]:
        session = self._sessions.get(identity)
        return session.last_media if session else None

    def reset(self, identity: str) -> None:
        session = self._sessions.get(identity)
        if session is None:
            return
        session.history = [self._system_message()]
        session.last_media = None
        session.last_activity = self._clock()

    def export_text(self, identity: str) -> str:
        session = self._sessions.get(identity)
        if session is None:
            return ""
        return "\n".join(
            f"{_ROLE_LABELS[message.role]}: {message.content}" for message in session.history[1:]
        )

    def sweep_expired(self, now: Optional[float] = None) -> list[str]:
        """Drop sessions idle for longer than the TTL and return their identities."""
        now = self._clock() if now is None else now
        evicted = []
        for identity, session in list(self._sessions.items()):
            if now - session.last_activity > self.ttl_seconds:
                del self._sessions[identity]
                evicted.append(identity)
        if evicted:
            logger.info("Expired sessions evicted", extra={"context": {"count": len(evicted)}})
        return evicted

    def stats(self) -> dict[str, int]:
        return {
            "sessions": len(self._sessions),
            "turns": sum(session.total_turns for session in self._sessions.values()),
        }
