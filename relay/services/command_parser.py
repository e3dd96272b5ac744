import re
from dataclasses import dataclass
from typing import Optional

COMMAND_SIGIL = "/"

# Phones often substitute typographic quotes for ASCII ones.
_QUOTE_TRANSLATION = str.maketrans({"“": '"', "”": '"', "„": '"', "«": '"', "»": '"'})
_QUOTED_TOKEN = re.compile(r'"([^"]*)"|(\S+)')


@dataclass(frozen=True)
class Command:
    name: str
    args: tuple[str, ...]
    raw: str
    # Raw text after the command name, inner whitespace and quotes preserved.
    rest: str = ""


def parse_command(text: Optional[str], sigil: str = COMMAND_SIGIL) -> Optional[Command]:
    """Return the command in ``text`` or None if it is free-form content."""
    if not text:
        return None
    trimmed = text.strip()
    if not trimmed.startswith(sigil):
        return None
    body = trimmed[len(sigil) :]
    parts = body.split()
    if not parts:
        return Command(name="", args=(), raw=trimmed)
    head = body.split(None, 1)
    rest = head[1].strip() if len(head) > 1 else ""
    return Command(name=parts[0].lower(), args=tuple(parts[1:]), raw=trimmed, rest=rest)


def split_quoted(text: Optional[str]) -> list[str]:
    """Split text into tokens, keeping each double-quoted run as a single token.

    >>> split_quoted('"Lunch today?" pizza "sushi bar"')
    ['Lunch today?', 'pizza', 'sushi bar']
    """
    if not text:
        return []
    normalized = text.translate(_QUOTE_TRANSLATION)
    tokens = []
    for quoted, bare in _QUOTED_TOKEN.findall(normalized):
        token = (quoted or bare.strip('"')).strip()
        if token:
            tokens.append(token)
    return tokens
