import re
from typing import Iterable

_NON_DIGITS = re.compile(r"\D")


def normalize_identity(identity: str | None) -> str:
    """Reduce a phone number or JID ("+1 555-0100", "15550100@c.us") to bare digits."""
    return _NON_DIGITS.sub("", str(identity or ""))


class AuthorizationGate:
    """Allow-list of identities privileged for admin-only commands."""

    def __init__(self, admin_identities: Iterable[str]):
        self._admins = frozenset(
            normalized for normalized in (normalize_identity(item) for item in admin_identities) if normalized
        )

    def __len__(self) -> int:
        return len(self._admins)

    def is_privileged(self, identity: str | None) -> bool:
        normalized = normalize_identity(identity)
        return bool(normalized) and normalized in self._admins
