from unittest.mock import AsyncMock, Mock

import pytest

from relay.services.authorization import AuthorizationGate
from relay.services.command_router import CommandRouter
from relay.services.commands import build_default_registry
from relay.services.conversation_store import ConversationStore
from relay.services.poll_registry import PollRegistry
from relay.services.safety_filter import SafetyFilter
from relay.services.whatsapp_service import SendResult

SYSTEM_PROMPT = "You are a test assistant."
ADMIN = "15550100"


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def sent_texts(outbound) -> list[str]:
    return [call.args[1] for call in outbound.send_text.call_args_list]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return ConversationStore(SYSTEM_PROMPT, max_turns=4, ttl_seconds=60, clock=clock)


@pytest.fixture
def polls(clock):
    return PollRegistry(max_options=10, clock=clock)


@pytest.fixture
def outbound():
    """Outbound sender double; every send succeeds unless a test overrides it."""
    sender = Mock()
    sender.send_text = AsyncMock(return_value=SendResult.success({"messages": [{"id": "wamid.1"}]}))
    sender.send_interactive = AsyncMock(return_value=SendResult.success({"messages": [{"id": "wamid.2"}]}))
    return sender


@pytest.fixture
def safety():
    return SafetyFilter(["badword1", "badword2"], ["religion", "immigrant"])


@pytest.fixture
def gate():
    return AuthorizationGate([ADMIN])


@pytest.fixture
def completion():
    provider = Mock()
    provider.generate_reply = AsyncMock(return_value="Hello from the model")
    return provider


@pytest.fixture
def router(store, polls, outbound, gate, safety):
    return CommandRouter(
        registry=build_default_registry(),
        store=store,
        polls=polls,
        outbound=outbound,
        gate=gate,
        safety=safety,
        completion=None,
        broadcast_recipients=["+1 555 0101", "15550102"],
    )


@pytest.fixture
def mock_env(monkeypatch):
    """Set test environment variables."""
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    monkeypatch.setenv("WHATSAPP_ACCESS_TOKEN", "test-token")
    monkeypatch.setenv("WHATSAPP_PHONE_NUMBER_ID", "123456")
