from __future__ import annotations
from typing import Any, Dict, List, Optional, Sequence
from datetime import datetime, timezone

from storefront.core.errors import InvalidTransition, OptimisticLockError


HistoryEntry = Dict[str, Any]


def forward_transitions(ordering: Sequence[str]) -> Dict[str, List[str]]:
    """
    Build an allowed-transitions map for a strictly ordered lifecycle: every state
    may move to itself or to any later state, never back.
    """
    return {state: list(ordering[idx:]) for idx, state in enumerate(ordering)}


class StateMachine:
    """
    Small, generic state machine with:
      - allowed transitions map
      - history recording (with actor / metadata)
      - optimistic versioning (caller may supply expected_version)

    Usage:
      sm = StateMachine(state="PLACED", allowed_transitions=forward_transitions(STATUSES))
      result = sm.apply("SHIPPED", actor=admin_id, expected_version=order.version)
      order.status = result["state"]
      order.status_history = result["history"]
      order.version = result["version"]
    """

    def __init__(self, state: str, allowed_transitions: Dict[str, List[str]], version: int = 0,
                 history: Optional[List[HistoryEntry]] = None, ordering: Optional[Sequence[str]] = None):
        self.state = state or ""
        self.allowed_transitions = allowed_transitions or {}
        self.version = int(version or 0)
        self.history: List[HistoryEntry] = list(history or [])
        self.ordering = list(ordering or [])

    def can_transition(self, to_state: str) -> bool:
        allowed = self.allowed_transitions.get(self.state, [])
        return to_state in allowed

    def _is_downgrade(self, to_state: str) -> bool:
        if self.state not in self.ordering or to_state not in self.ordering:
            return False
        return self.ordering.index(to_state) < self.ordering.index(self.state)

    def apply(self, to_state: str, actor: Optional[str] = None, meta: Optional[Dict[str, Any]] = None,
              expected_version: Optional[int] = None) -> Dict[str, Any]:
        """
        Attempt to transition to `to_state`. Raises InvalidTransition or OptimisticLockError.
        Returns dict with keys: state, history (full list), version (new), changed.
        """
        to_state = (to_state or "").strip()
        if not to_state:
            raise InvalidTransition("Empty target state")

        # optimistic lock check
        if expected_version is not None and int(expected_version) != int(self.version):
            raise OptimisticLockError(f"Version mismatch (expected {expected_version}, got {self.version})")

        # idempotent: already in desired state, no-op
        if to_state == self.state:
            return {"state": self.state, "history": list(self.history), "version": self.version, "changed": False}

        if not self.can_transition(to_state):
            if self._is_downgrade(to_state):
                raise InvalidTransition(f"Cannot downgrade status from {self.state} to {to_state}")
            raise InvalidTransition(f"Invalid transition: {self.state} -> {to_state}")

        entry: HistoryEntry = {
            "from": self.state,
            "to": to_state,
            "at": datetime.now(timezone.utc).isoformat(sep=" "),
            "actor": actor,
            "meta": dict(meta or {}),
        }
        self.state = to_state
        self.history.append(entry)
        self.version = int(self.version) + 1

        return {"state": self.state, "history": list(self.history), "version": self.version, "changed": True}
