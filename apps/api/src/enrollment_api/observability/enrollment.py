from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from threading import Lock
from typing import Dict


@dataclass
class EnrollmentSnapshot:
    invitations: Dict[str, int]
    transitions: Dict[str, int]
    reconciliation: Dict[str, int]

    def as_dict(self) -> Dict[str, object]:
        return {
            "invitations": dict(self.invitations),
            "transitions": dict(self.transitions),
            "reconciliation": dict(self.reconciliation),
        }


class EnrollmentObservabilityStore:
    """Count invitation, transition and reconciliation outcomes for dashboards."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._invitations: Dict[str, int] = defaultdict(int)
        self._transitions: Dict[str, int] = defaultdict(int)
        self._reconciliation: Dict[str, int] = defaultdict(int)

    def record_invitation_event(self, event: str, count: int = 1) -> None:
        with self._lock:
            self._invitations[event] += count

    def record_transition(self, outcome: str) -> None:
        with self._lock:
            self._transitions[outcome] += 1

    def record_reconciliation(self, *, scanned: int, repaired: int, failed: int, orphaned: int) -> None:
        with self._lock:
            self._reconciliation["runs"] += 1
            self._reconciliation["scanned"] += scanned
            self._reconciliation["repaired"] += repaired
            self._reconciliation["failed"] += failed
            self._reconciliation["orphaned_cards"] += orphaned

    def snapshot(self) -> EnrollmentSnapshot:
        with self._lock:
            return EnrollmentSnapshot(
                invitations=dict(self._invitations),
                transitions=dict(self._transitions),
                reconciliation=dict(self._reconciliation),
            )

    def reset(self) -> None:
        with self._lock:
            self._invitations.clear()
            self._transitions.clear()
            self._reconciliation.clear()


_STORE = EnrollmentObservabilityStore()


def get_enrollment_store() -> EnrollmentObservabilityStore:
    return _STORE


__all__ = ["get_enrollment_store", "EnrollmentObservabilityStore", "EnrollmentSnapshot"]
