from typing import Iterable, Optional


def _normalize_terms(terms: Iterable[str]) -> tuple[str, ...]:
    return tuple(term.strip().lower() for term in terms if term and term.strip())


class SafetyFilter:
    """Coarse substring guards applied before any command handler runs.

    This is a gate, not a moderation system: matching is a case-insensitive
    substring test against configured term lists.
    """

    def __init__(self, prohibited_terms: Iterable[str], protected_terms: Iterable[str]):
        self.prohibited_terms = _normalize_terms(prohibited_terms)
        self.protected_terms = _normalize_terms(protected_terms)

    @staticmethod
    def _matches(text: Optional[str], terms: tuple[str, ...]) -> bool:
        if not text or not terms:
            return False
        lowered = text.lower()
        return any(term in lowered for term in terms)

    def contains_prohibited_term(self, text: Optional[str]) -> bool:
        return self._matches(text, self.prohibited_terms)

    def touches_protected_class(self, text: Optional[str]) -> bool:
        return self._matches(text, self.protected_terms)
