from __future__ import annotations

import random
import string
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from relay.logging_config import get_logger
from relay.services.errors import InvalidOptionError, InvalidPollError, PollNotFoundError

logger = get_logger("poll_registry")

_BASE36 = string.digits + string.ascii_lowercase
MIN_OPTIONS = 2


def _to_base36(value: int) -> str:
    if value <= 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


@dataclass
class Poll:
    poll_id: str
    question: str
    options: list[str]
    creator: str
    created_at: float
    votes: dict[int, set[str]] = field(default_factory=dict)

    def tally(self) -> list[tuple[str, int]]:
        return [(option, len(self.votes[idx])) for idx, option in enumerate(self.options)]


@dataclass(frozen=True)
class PollSnapshot:
    poll_id: str
    question: str
    options: tuple[str, ...]
    creator: str
    tally: list[tuple[str, int]]


class PollRegistry:
    """Process-lifetime store of ephemeral polls.

    A voter sits in at most one option's voter set per poll: voting again moves
    the vote instead of adding a second one.
    """

    def __init__(
        self,
        max_options: int = 10,
        clock: Callable[[], float] = time.time,
        rng: Optional[random.Random] = None,
    ):
        self.max_options = max_options
        self._clock = clock
        self._rng = rng or random.Random()
        self._polls: dict[str, Poll] = {}

    def __len__(self) -> int:
        return len(self._polls)

    def __contains__(self, poll_id: str) -> bool:
        return poll_id in self._polls

    def _generate_id(self) -> str:
        while True:
            stamp = _to_base36(int(self._clock() * 1000))[-5:]
            suffix = "".join(self._rng.choice(_BASE36) for _ in range(3))
            poll_id = f"p{stamp}{suffix}"
            if poll_id not in self._polls:
                return poll_id

    def _get(self, poll_id: str) -> Poll:
        poll = self._polls.get(poll_id)
        if poll is None:
            raise PollNotFoundError(poll_id)
        return poll

    @staticmethod
    def _snapshot(poll: Poll) -> PollSnapshot:
        return PollSnapshot(
            poll_id=poll.poll_id,
            question=poll.question,
            options=tuple(poll.options),
            creator=poll.creator,
            tally=poll.tally(),
        )

    def create(self, question: str, options: Sequence[str], creator: str) -> PollSnapshot:
        question = (question or "").strip()
        cleaned = [option.strip() for option in options if option and option.strip()]
        if not question:
            raise InvalidPollError("Poll question must not be empty")
        if len(cleaned) < MIN_OPTIONS:
            raise InvalidPollError(f"A poll needs at least {MIN_OPTIONS} options")
        if len(cleaned) > self.max_options:
            raise InvalidPollError(f"A poll can have at most {self.max_options} options")

        poll = Poll(
            poll_id=self._generate_id(),
            question=question,
            options=cleaned,
            creator=creator,
            created_at=self._clock(),
            votes={idx: set() for idx in range(len(cleaned))},
        )
        self._polls[poll.poll_id] = poll
        logger.info(
            "Poll created",
            extra={"context": {"poll_id": poll.poll_id, "creator": creator, "options": len(cleaned)}},
        )
        return self._snapshot(poll)

    def vote(self, poll_id: str, voter: str, option_index: int) -> list[tuple[str, int]]:
        poll = self._get(poll_id)
        if not 0 <= option_index < len(poll.options):
            raise InvalidOptionError(poll_id, option_index, len(poll.options))

        for voters in poll.votes.values():
            voters.discard(voter)
        poll.votes[option_index].add(voter)
        return poll.tally()

    def get_tally(self, poll_id: str) -> list[tuple[str, int]]:
        return self._get(poll_id).tally()

    def get(self, poll_id: str) -> PollSnapshot:
        return self._snapshot(self._get(poll_id))

    def voters_of(self, poll_id: str, voter: str) -> list[int]:
        """Option indexes the voter currently sits in (zero or one)."""
        poll = self._get(poll_id)
        return [idx for idx, voters in poll.votes.items() if voter in voters]
