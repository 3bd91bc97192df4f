"""
credit.py - Bounded per-identity credit scores

Scores are integers in [CREDIT_SCORE_MIN, CREDIT_SCORE_MAX]. Unknown
identities score CREDIT_SCORE_MIN. Only authorized callers (in practice the
lending pool's own identity) may move a score, and every mutation clamps at
the bounds instead of failing.
"""

from __future__ import annotations
from typing import Dict, Iterable, Set

from .core import AuthorizationError, CREDIT_SCORE_MIN, CREDIT_SCORE_MAX


def clamp_score(score: int) -> int:
    return max(CREDIT_SCORE_MIN, min(CREDIT_SCORE_MAX, score))


class CreditLedger:
    """
    Credit-score store with authorization-gated mutation.

    Example:
        credit = CreditLedger(owner="admin")
        credit.authorize("admin", "pool")
        credit.increase_score("pool", "alice", 10)
    """

    def __init__(self, owner: str, authorized: Iterable[str] = ()):
        self.owner = owner
        self._authorized: Set[str] = set(authorized)
        self._scores: Dict[str, int] = {}

    def authorize(self, caller: str, identity: str) -> None:
        """Allow ``identity`` to mutate scores. Owner only."""
        if caller != self.owner:
            raise AuthorizationError(f"{caller} cannot authorize credit mutators")
        self._authorized.add(identity)

    def is_authorized(self, identity: str) -> bool:
        return identity in self._authorized

    def get_score(self, identity: str) -> int:
        return self._scores.get(identity, CREDIT_SCORE_MIN)

    def set_score(self, caller: str, identity: str, score: int) -> int:
        """Seed a score directly (clamped). Owner only."""
        if caller != self.owner:
            raise AuthorizationError(f"{caller} cannot set credit scores")
        self._scores[identity] = clamp_score(score)
        return self._scores[identity]

    def increase_score(self, caller: str, identity: str, amount: int) -> int:
        self._require_authorized(caller)
        self._scores[identity] = clamp_score(self.get_score(identity) + amount)
        return self._scores[identity]

    def decrease_score(self, caller: str, identity: str, amount: int) -> int:
        self._require_authorized(caller)
        self._scores[identity] = clamp_score(self.get_score(identity) - amount)
        return self._scores[identity]

    def _require_authorized(self, caller: str) -> None:
        if caller not in self._authorized:
            raise AuthorizationError(f"{caller} is not authorized to change credit scores")
