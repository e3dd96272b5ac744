from relay.services.authorization import AuthorizationGate, normalize_identity
from relay.services.command_parser import Command, parse_command, split_quoted
from relay.services.command_router import CommandContext, CommandRegistry, CommandRouter, CommandSpec, RouteResult
from relay.services.conversation_store import ConversationStore, MediaPointer, Role
from relay.services.dispatch_state import DispatchOutcome, DispatchState, InvalidTransitionError
from relay.services.errors import (
    CompletionError,
    InvalidOptionError,
    InvalidPollError,
    PollNotFoundError,
    RelayError,
)
from relay.services.poll_registry import PollRegistry, PollSnapshot
from relay.services.safety_filter import SafetyFilter
