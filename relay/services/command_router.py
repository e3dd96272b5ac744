"""Routes inbound text through the safety filter, parser and authorization gate.

The router never raises for a bad message: every branch ends in a
``RouteResult`` whose ``handled`` flag tells the caller whether the
conversational fallback should still run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable, Iterator, Optional, Sequence

from relay.logging_config import get_logger
from relay.services.authorization import AuthorizationGate
from relay.services.command_parser import Command, parse_command
from relay.services.conversation_store import ConversationStore
from relay.services.dispatch_state import DispatchOutcome, DispatchState, is_handled, transition
from relay.services.llm.base import LLMProvider
from relay.services.poll_registry import PollRegistry
from relay.services.safety_filter import SafetyFilter
from relay.services.whatsapp_service import OutboundSender, SendResult

logger = get_logger("command_router")

SELECTION_PREFIX = "cmd:"

MSG_PROHIBITED = "Please avoid profanity."
MSG_UNAUTHORIZED = "❌ Not authorized."
MSG_HANDLER_FAULT = "Sorry, an error occurred while running that command."
MSG_UNKNOWN_COMMAND = 'Unknown command "/{name}". Send /help or /menu.'

Handler = Callable[["CommandContext", Sequence[str]], Awaitable[None]]


@dataclass(frozen=True)
class CommandSpec:
    name: str
    handler: Handler
    title: str
    description: str
    usage: str
    category: str = "General"
    admin_only: bool = False


class CommandRegistry:
    """Static, ordered catalog of commands. Drives dispatch, /help and /menu."""

    def __init__(self, specs: Iterable[CommandSpec] = ()):
        self._specs: dict[str, CommandSpec] = {}
        for spec in specs:
            self.register(spec)

    def register(self, spec: CommandSpec) -> None:
        name = spec.name.lower()
        if not name or SELECTION_PREFIX in name:
            raise ValueError(f"Invalid command name: {spec.name!r}")
        if name in self._specs:
            raise ValueError(f"Command already registered: {name}")
        self._specs[name] = spec

    def __iter__(self) -> Iterator[CommandSpec]:
        return iter(self._specs.values())

    def __len__(self) -> int:
        return len(self._specs)

    def get(self, name: str) -> Optional[CommandSpec]:
        return self._specs.get(name.lower())

    def resolve(self, name: str) -> Optional[CommandSpec]:
        """Look up a typed name, then the ``cmd:<id>`` form sent by menu selections."""
        spec = self.get(name)
        if spec is None and name.startswith(SELECTION_PREFIX):
            spec = self.get(name[len(SELECTION_PREFIX) :])
        return spec

    def by_category(self) -> dict[str, list[CommandSpec]]:
        grouped: dict[str, list[CommandSpec]] = {}
        for spec in self._specs.values():
            grouped.setdefault(spec.category, []).append(spec)
        return grouped


@dataclass
class CommandContext:
    """Everything a handler may touch while serving one command."""

    sender: str
    command: Command
    outbound: OutboundSender
    store: ConversationStore
    polls: PollRegistry
    registry: CommandRegistry
    gate: AuthorizationGate
    safety: SafetyFilter
    completion: Optional[LLMProvider] = None
    broadcast_recipients: list[str] = field(default_factory=list)

    async def send_text(self, text: str, to: Optional[str] = None) -> SendResult:
        return await self.outbound.send_text(to or self.sender, text)

    async def send_menu(self, payload: dict, to: Optional[str] = None) -> SendResult:
        return await self.outbound.send_interactive(to or self.sender, payload)


@dataclass(frozen=True)
class RouteResult:
    outcome: DispatchOutcome
    command: Optional[str] = None
    states: tuple[DispatchState, ...] = ()

    @property
    def handled(self) -> bool:
        return is_handled(self.outcome)


class _StateTrail:
    def __init__(self) -> None:
        self.state = DispatchState.RECEIVED
        self.states = [self.state]

    def advance(self, to_state: DispatchState) -> None:
        self.state = transition(self.state, to_state)
        self.states.append(self.state)


class CommandRouter:
    def __init__(
        self,
        registry: CommandRegistry,
        store: ConversationStore,
        polls: PollRegistry,
        outbound: OutboundSender,
        gate: AuthorizationGate,
        safety: SafetyFilter,
        completion: Optional[LLMProvider] = None,
        broadcast_recipients: Iterable[str] = (),
    ):
        self.registry = registry
        self.store = store
        self.polls = polls
        self.outbound = outbound
        self.gate = gate
        self.safety = safety
        self.completion = completion
        self.broadcast_recipients = list(broadcast_recipients)

    def _finish(self, trail: _StateTrail, outcome: DispatchOutcome, command: Optional[str] = None) -> RouteResult:
        if trail.state != DispatchState.COMPLETED:
            trail.advance(DispatchState.COMPLETED)
        return RouteResult(outcome=outcome, command=command, states=tuple(trail.states))

    def _build_context(self, sender: str, command: Command) -> CommandContext:
        return CommandContext(
            sender=sender,
            command=command,
            outbound=self.outbound,
            store=self.store,
            polls=self.polls,
            registry=self.registry,
            gate=self.gate,
            safety=self.safety,
            completion=self.completion,
            broadcast_recipients=list(self.broadcast_recipients),
        )

    async def handle(self, sender: str, text: Optional[str]) -> RouteResult:
        trail = _StateTrail()

        trail.advance(DispatchState.FILTERED)
        if self.safety.contains_prohibited_term(text):
            logger.info("Message rejected by safety filter", extra={"context": {"sender": sender}})
            await self.outbound.send_text(sender, MSG_PROHIBITED)
            return self._finish(trail, DispatchOutcome.FILTER_REJECTED)

        command = parse_command(text)
        trail.advance(DispatchState.PARSED)
        if command is None:
            return self._finish(trail, DispatchOutcome.FREEFORM)

        spec = self.registry.resolve(command.name)
        if spec is None:
            logger.info("Unknown command", extra={"context": {"sender": sender, "command": command.name}})
            await self.outbound.send_text(sender, MSG_UNKNOWN_COMMAND.format(name=command.name))
            return self._finish(trail, DispatchOutcome.UNKNOWN_COMMAND, command.name)

        # A menu selection carries no arguments of its own.
        args = () if command.name.startswith(SELECTION_PREFIX) else command.args

        if spec.admin_only:
            trail.advance(DispatchState.AUTHORIZED)
            if not self.gate.is_privileged(sender):
                logger.warning(
                    "Admin command denied",
                    extra={"context": {"sender": sender, "command": spec.name}},
                )
                await self.outbound.send_text(sender, MSG_UNAUTHORIZED)
                return self._finish(trail, DispatchOutcome.UNAUTHORIZED, spec.name)

        trail.advance(DispatchState.DISPATCHED)
        context = self._build_context(sender, command)
        try:
            await spec.handler(context, args)
        except Exception as e:
            logger.error(
                "Command handler failed",
                extra={"context": {"command": spec.name, "sender": sender, "error": str(e)}},
                exc_info=True,
            )
            await self.outbound.send_text(sender, MSG_HANDLER_FAULT)
            return self._finish(trail, DispatchOutcome.HANDLER_FAULT, spec.name)

        return self._finish(trail, DispatchOutcome.COMPLETED, spec.name)
